"""Video model for media files downloaded for video bookmarks."""
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from keepsake.models.base import Base

if TYPE_CHECKING:
    from keepsake.models.bookmark import Bookmark


class Video(Base):
    """Video model - one row per video bookmark, keyed by bookmark_id."""

    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(primary_key=True)
    bookmark_id: Mapped[int] = mapped_column(
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        unique=True,
        index=True,
    )
    filename: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Path relative to the media directory",
    )
    downloaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    bookmark: Mapped["Bookmark"] = relationship(back_populates="video")
