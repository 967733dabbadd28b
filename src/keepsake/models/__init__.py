"""SQLAlchemy models."""
from keepsake.models.account import Account
from keepsake.models.base import Base, ModifiedMixin
from keepsake.models.tag import Tag, bookmark_tags  # Must be before bookmark due to import
from keepsake.models.bookmark import Bookmark
from keepsake.models.video import Video

__all__ = [
    "Account",
    "Base",
    "Bookmark",
    "ModifiedMixin",
    "Tag",
    "Video",
    "bookmark_tags",
]
