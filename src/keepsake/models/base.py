"""SQLAlchemy declarative base with common mixins."""
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Current wall-clock time, timezone-aware."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ModifiedMixin:
    """
    Mixin that adds a `modified` column maintained by the store.

    Set on insert and refreshed on every UPDATE issued through the ORM, so
    "most recently modified first" ordering works without caller involvement.
    """

    modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        index=True,  # Index for "sort by recently modified" queries
    )
