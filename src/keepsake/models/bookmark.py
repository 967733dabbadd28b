"""Bookmark model for storing saved URLs and their extracted content."""
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from keepsake.models.base import Base, ModifiedMixin
from keepsake.models.tag import bookmark_tags

if TYPE_CHECKING:
    from keepsake.models.tag import Tag
    from keepsake.models.video import Video


class Bookmark(Base, ModifiedMixin):
    """
    Bookmark model - stores a URL with extracted metadata, tags and optional video.

    When `is_video` is true, `html` holds a self-contained player fragment instead
    of article markup, and at most one Video row references the bookmark.
    """

    __tablename__ = "bookmarks"

    id: Mapped[int] = mapped_column(primary_key=True)
    url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    author: Mapped[str] = mapped_column(String(250), nullable=False, default="")
    min_read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    html: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_video: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    downloaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    tags: Mapped[list["Tag"]] = relationship(
        secondary=bookmark_tags,
        back_populates="bookmarks",
        order_by="Tag.name",
    )
    video: Mapped["Video | None"] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
