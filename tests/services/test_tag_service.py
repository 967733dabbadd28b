"""Tests for tag creation and tag listing."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.models.bookmark import Bookmark
from keepsake.models.tag import Tag
from keepsake.services.tag_service import (
    get_or_create_tags,
    get_tags_with_counts,
    normalize_tag_names,
)


def test__normalize_tag_names__trims_drops_empty_and_dedupes() -> None:
    assert normalize_tag_names([" python ", "", "web", "python", "  "]) == ["python", "web"]


def test__normalize_tag_names__keeps_case() -> None:
    assert normalize_tag_names(["Go", "go"]) == ["Go", "go"]


async def test__get_or_create_tags__reuses_existing_rows(db_session: AsyncSession) -> None:
    first = await get_or_create_tags(db_session, ["python", "web"])
    second = await get_or_create_tags(db_session, ["web", "new"])

    assert [t.name for t in second] == ["web", "new"]
    assert second[0].id == first[1].id

    result = await db_session.execute(select(Tag))
    assert sorted(t.name for t in result.scalars()) == ["new", "python", "web"]


async def test__get_or_create_tags__empty_input(db_session: AsyncSession) -> None:
    assert await get_or_create_tags(db_session, ["", " "]) == []


async def test__get_tags_with_counts__only_referenced_tags_sorted_by_name(
    db_session: AsyncSession,
) -> None:
    zeta, alpha, _unused = await get_or_create_tags(db_session, ["zeta", "alpha", "unused"])
    db_session.add_all([
        Bookmark(url="https://a.example/", title="A", tags=[zeta, alpha]),
        Bookmark(url="https://b.example/", title="B", tags=[zeta]),
    ])
    await db_session.flush()

    counts = await get_tags_with_counts(db_session)

    assert [(c.name, c.n_bookmarks) for c in counts] == [("alpha", 1), ("zeta", 2)]
