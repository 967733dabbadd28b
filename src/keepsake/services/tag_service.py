"""Service layer for tag operations."""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.models.tag import Tag, bookmark_tags
from keepsake.schemas.tag import TagCount
from keepsake.services.utils import flush_or_fail


def normalize_tag_names(names: list[str]) -> list[str]:
    """Trim tag names, drop empty ones and de-duplicate keeping first occurrence."""
    seen: dict[str, None] = {}
    for name in names:
        trimmed = name.strip()
        if trimmed:
            seen.setdefault(trimmed, None)
    return list(seen)


async def get_or_create_tags(
    db: AsyncSession,
    tag_names: list[str],
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Args:
        db: Database session.
        tag_names: List of tag names to get or create (trimmed, case kept).

    Returns:
        List of Tag objects (existing or newly created) in the order given.
    """
    normalized = normalize_tag_names(tag_names)
    if not normalized:
        return []

    result = await db.execute(select(Tag).where(Tag.name.in_(normalized)))
    existing_tags = {tag.name: tag for tag in result.scalars()}

    tags = []
    for name in normalized:
        if name in existing_tags:
            tags.append(existing_tags[name])
        else:
            new_tag = Tag(name=name)
            db.add(new_tag)
            tags.append(new_tag)

    await flush_or_fail(db, "tag creation")
    return tags


async def get_tags_with_counts(db: AsyncSession) -> list[TagCount]:
    """
    Get all tags referenced by at least one bookmark, with their bookmark counts.

    Tags no longer referenced by any bookmark are left out.

    Returns:
        List of TagCount objects sorted by name.
    """
    result = await db.execute(
        select(
            Tag.id,
            Tag.name,
            func.count(bookmark_tags.c.bookmark_id).label("n_bookmarks"),
        )
        .join(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .group_by(Tag.id, Tag.name)
        .order_by(Tag.name.asc()),
    )
    return [
        TagCount(id=row.id, name=row.name, n_bookmarks=row.n_bookmarks)
        for row in result
    ]
