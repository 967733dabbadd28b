"""Pydantic schemas for tag endpoints and tag patches."""
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TagIn(BaseModel):
    """
    A tag as submitted by a caller.

    `deleted` marks a tombstone: the tag is removed from the bookmark on update.
    """

    name: str = Field(..., max_length=250)
    deleted: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Trim surrounding whitespace; case is kept as provided."""
        return v.strip()


class TagResponse(BaseModel):
    """Schema for a tag attached to a bookmark."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TagCount(BaseModel):
    """Schema for a tag with the number of bookmarks carrying it."""

    id: int
    name: str
    n_bookmarks: int
