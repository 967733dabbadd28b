"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from keepsake.schemas.tag import TagIn, TagResponse
from keepsake.services.url_normalizer import normalize_space


def coerce_tags(v: Any) -> Any:
    """Accept tags as plain strings or as objects; a leading '-' marks a tombstone."""
    if v is None:
        return []
    if isinstance(v, str):
        v = v.split(",")
    coerced = []
    for item in v:
        if isinstance(item, str):
            name = item.strip()
            if name.startswith("-"):
                coerced.append({"name": name[1:], "deleted": True})
            else:
                coerced.append({"name": name})
        else:
            coerced.append(item)
    return coerced


class BookmarkPatch(BaseModel):
    """
    Fields a caller may supply when creating or updating bookmarks.

    Empty strings mean "not supplied".
    """

    url: str = ""
    title: str = Field(default="", max_length=500)
    excerpt: str = ""
    tags: list[TagIn] = []

    @field_validator("title", "excerpt", mode="before")
    @classmethod
    def collapse_whitespace(cls, v: str | None) -> str:
        """Collapse runs of whitespace in free-text fields."""
        return normalize_space(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> Any:
        """Allow tags as strings or objects."""
        return coerce_tags(v)

    @property
    def active_tag_names(self) -> list[str]:
        """Names of tags to add, in submission order."""
        return [tag.name for tag in self.tags if tag.name and not tag.deleted]

    @property
    def deleted_tag_names(self) -> set[str]:
        """Names of tags marked for removal."""
        return {tag.name for tag in self.tags if tag.name and tag.deleted}


class BookmarkCreate(BookmarkPatch):
    """Schema for creating a new bookmark; the URL is required."""

    url: str = Field(..., min_length=1)


class BookmarkUpdate(BookmarkPatch):
    """Schema for the PUT endpoint: a patch addressed to one bookmark id."""

    id: int = Field(..., ge=0)


class BookmarkResponse(BaseModel):
    """
    Schema for bookmark responses.

    Note: `content` and `html` are excluded to keep list responses small.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    excerpt: str
    image_url: str
    author: str
    min_read_time: int
    max_read_time: int
    modified: datetime
    tags: list[TagResponse]
    is_video: bool
    downloaded: bool


class BookmarkDetailResponse(BookmarkResponse):
    """Bookmark response including extracted content and rendered HTML."""

    content: str
    html: str
