"""Service layer for the bookmark lifecycle: create, read, update, delete and search."""
import asyncio
import dataclasses
import logging
from dataclasses import dataclass

from sqlalchemy import ColumnElement, delete, exists, false, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer, selectinload

from keepsake.core.config import Settings, get_settings
from keepsake.models.base import utc_now
from keepsake.models.bookmark import Bookmark
from keepsake.models.tag import Tag, bookmark_tags
from keepsake.models.video import Video
from keepsake.schemas.bookmark import BookmarkCreate, BookmarkPatch
from keepsake.services import video_service
from keepsake.services.exceptions import InvalidIndexError, NotFoundError
from keepsake.services.reconciler import UNTITLED, BookmarkFields, reconcile
from keepsake.services.tag_service import get_or_create_tags, normalize_tag_names
from keepsake.services.url_normalizer import is_video_url, normalize_url
from keepsake.services.utils import flush_or_fail

logger = logging.getLogger(__name__)

# Largest id the integer primary key can hold; larger ids can never exist
MAX_ID = 2**31 - 1


@dataclass(frozen=True)
class IndexRange:
    """Inclusive range of bookmark ids, written as "start-end"."""

    start: int
    end: int

    def __contains__(self, bookmark_id: int) -> bool:
        return self.start <= bookmark_id <= self.end


IndexSpec = int | IndexRange


def _parse_id(text: str, raw: str) -> int:
    """Parse one non-negative decimal id, rejecting signs, spaces and non-ASCII digits."""
    if not (text.isascii() and text.isdigit()):
        raise InvalidIndexError(raw)
    return int(text)


def parse_indices(indices: list[str]) -> list[IndexSpec]:
    """
    Parse index specifications: single ids ("7") or inclusive ranges ("3-9").

    Every entry is validated before anything is returned, so a single bad entry
    rejects the whole batch.

    Raises:
        InvalidIndexError: On a negative, non-numeric or inverted entry.
    """
    specs: list[IndexSpec] = []
    for raw in indices:
        text = str(raw).strip()
        if "-" in text:
            parts = text.split("-")
            if len(parts) != 2:
                raise InvalidIndexError(raw)
            start, end = _parse_id(parts[0], raw), _parse_id(parts[1], raw)
            if start > end:
                raise InvalidIndexError(raw)
            specs.append(IndexRange(start, end))
        else:
            specs.append(_parse_id(text, raw))
    return specs


def _id_condition(specs: list[IndexSpec]) -> ColumnElement[bool]:
    """
    SQL condition matching bookmark ids covered by any of the specs.

    Ids above MAX_ID are left out of the query, since the driver cannot bind them;
    range ends are clamped to it.
    """
    singles = [spec for spec in specs if isinstance(spec, int) and spec <= MAX_ID]
    conditions = [
        Bookmark.id.between(spec.start, min(spec.end, MAX_ID))
        for spec in specs
        if isinstance(spec, IndexRange) and spec.start <= MAX_ID
    ]
    if singles:
        conditions.append(Bookmark.id.in_(singles))
    if not conditions:
        return false()
    return or_(*conditions)


def _order_by_specs(specs: list[IndexSpec], found: dict[int, Bookmark]) -> list[Bookmark]:
    """Order bookmarks as their specs were given; ranges expand in ascending id order."""
    ordered: list[Bookmark] = []
    seen: set[int] = set()
    for spec in specs:
        ids = [spec] if isinstance(spec, int) else sorted(i for i in found if i in spec)
        for bookmark_id in ids:
            if bookmark_id in found and bookmark_id not in seen:
                seen.add(bookmark_id)
                ordered.append(found[bookmark_id])
    return ordered


async def _load_by_specs(
    db: AsyncSession,
    specs: list[IndexSpec],
    with_content: bool = True,
) -> list[Bookmark]:
    if not specs:
        return []
    query = (
        select(Bookmark)
        .options(selectinload(Bookmark.tags))
        .where(_id_condition(specs))
        .execution_options(populate_existing=True)
    )
    if not with_content:
        query = query.options(defer(Bookmark.content), defer(Bookmark.html))
    result = await db.execute(query)
    found = {bookmark.id: bookmark for bookmark in result.scalars()}
    return _order_by_specs(specs, found)


async def get_bookmarks(
    db: AsyncSession,
    indices: list[str],
    with_content: bool = False,
) -> list[Bookmark]:
    """
    Get bookmarks by index specifications, in the order given.

    Ids that don't exist are skipped; an empty result is not an error here.

    Raises:
        InvalidIndexError: If any index specification is malformed.
    """
    return await _load_by_specs(db, parse_indices(indices), with_content)


async def create_bookmark(
    db: AsyncSession,
    data: BookmarkCreate,
    offline: bool = False,
    settings: Settings | None = None,
) -> Bookmark:
    """
    Create a bookmark from a URL plus optional title, excerpt and tags.

    Flow:
    1. Validate the URL and strip tracking parameters
    2. Reconcile with the content extractor unless offline (caller wins on
       title/excerpt, extractor wins on everything else)
    3. Persist the bookmark and its tags
    4. For video URLs, download the media and attach it

    Raises:
        InvalidURLError: If the URL is not absolute or has no host.
        DownloadFailedError: If a video encoding was selected but its download failed.
        StoreFailureError: If the store rejects the insert.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    settings = settings or get_settings()
    url = normalize_url(data.url)

    fields, _ = await reconcile(
        BookmarkFields(url=url, title=data.title, excerpt=data.excerpt),
        offline=offline,
        timeout=settings.fetch_timeout,
    )
    if not fields.title:
        fields = dataclasses.replace(fields, title=UNTITLED)

    bookmark = Bookmark(**dataclasses.asdict(fields))
    bookmark.tags = await get_or_create_tags(db, data.active_tag_names)
    db.add(bookmark)
    await flush_or_fail(db, "bookmark creation")

    if is_video_url(bookmark.url, settings.video_hosts):
        filename = await video_service.download_video(
            bookmark.url, settings.media_dir, settings.download_timeout,
        )
        if filename is not None:
            await video_service.attach_video(
                db, bookmark, filename, settings.media_url_path,
            )

    return bookmark


def _apply_refresh(bookmark: Bookmark, fields: BookmarkFields, overwrite: bool) -> None:
    """
    Copy freshly extracted metadata onto a stored bookmark.

    Without ``overwrite`` the fetched title and excerpt only fill empty fields, so
    a refresh updates content while keeping the stored metadata.
    """
    bookmark.url = fields.url
    if fields.title and (overwrite or not bookmark.title):
        bookmark.title = fields.title
    if fields.excerpt and (overwrite or not bookmark.excerpt):
        bookmark.excerpt = fields.excerpt
    bookmark.image_url = fields.image_url
    bookmark.author = fields.author
    bookmark.min_read_time = fields.min_read_time
    bookmark.max_read_time = fields.max_read_time
    bookmark.content = fields.content
    # A video bookmark keeps its player fragment
    if not bookmark.is_video:
        bookmark.html = fields.html


def _apply_patch(
    bookmark: Bookmark,
    patch: BookmarkPatch,
    overwrite: bool,
    added_tags: list[Tag],
) -> None:
    """
    Apply a patch's title, excerpt and tags to one bookmark.

    Non-empty patch values replace stored ones and empty ones keep them, in both
    modes. With ``overwrite`` a patch carrying tags replaces the stored tag set;
    without it the tags are merged. Tombstoned tags are removed in both modes.
    """
    if patch.title:
        bookmark.title = patch.title
    if patch.excerpt:
        bookmark.excerpt = patch.excerpt

    deleted = patch.deleted_tag_names
    if overwrite and added_tags:
        tags = list(added_tags)
    else:
        tags = list(bookmark.tags)
        present = {tag.name for tag in tags}
        tags.extend(tag for tag in added_tags if tag.name not in present)
    bookmark.tags = [tag for tag in tags if tag.name not in deleted]
    # Tag-only changes do not touch the bookmark row itself
    bookmark.modified = utc_now()


async def update_bookmarks(
    db: AsyncSession,
    indices: list[str],
    patch: BookmarkPatch,
    offline: bool = False,
    overwrite: bool = True,
    settings: Settings | None = None,
) -> list[Bookmark]:
    """
    Update every bookmark selected by ``indices`` with ``patch``.

    All index specifications are validated before any bookmark is touched. Every
    single id must exist; ranges match whatever exists inside them. A URL in the
    patch only applies when exactly one bookmark is selected. Unless offline, each
    bookmark is refreshed from the content extractor before the patch is applied.

    Returns:
        The updated bookmarks in the order of ``indices``.

    Raises:
        InvalidIndexError: If any index is malformed (nothing is modified).
        InvalidURLError: If the patch carries an invalid URL (nothing is modified).
        NotFoundError: If nothing matches, or any single id does not exist.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    settings = settings or get_settings()
    specs = parse_indices(indices)
    new_url = normalize_url(patch.url) if patch.url else ""

    bookmarks = await _load_by_specs(db, specs)
    if not bookmarks:
        raise NotFoundError

    found_ids = {bookmark.id for bookmark in bookmarks}
    missing = [spec for spec in specs if isinstance(spec, int) and spec not in found_ids]
    if missing:
        raise NotFoundError(
            "No matching index found for: " + ", ".join(str(i) for i in missing),
        )

    if new_url:
        if len(bookmarks) == 1:
            bookmarks[0].url = new_url
        else:
            logger.warning("Ignoring URL in patch for a batch of %d bookmarks", len(bookmarks))

    if not offline:
        results = await asyncio.gather(*(
            reconcile(
                BookmarkFields(url=bookmark.url),
                offline=False,
                timeout=settings.fetch_timeout,
            )
            for bookmark in bookmarks
        ))
        for bookmark, (fields, fetched) in zip(bookmarks, results, strict=True):
            if fetched:
                _apply_refresh(bookmark, fields, overwrite)

    added_tags = await get_or_create_tags(db, patch.active_tag_names)
    for bookmark in bookmarks:
        _apply_patch(bookmark, patch, overwrite, added_tags)

    await flush_or_fail(db, "bookmark update")
    return bookmarks


async def delete_bookmarks(db: AsyncSession, indices: list[str]) -> int:
    """
    Delete bookmarks selected by ``indices`` along with their tag links and videos.

    Ids that don't exist are ignored, so deleting twice is harmless.

    Returns:
        Number of bookmarks removed.

    Raises:
        InvalidIndexError: If any index is malformed (nothing is deleted).

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    specs = parse_indices(indices)
    if not specs:
        return 0

    selected_ids = select(Bookmark.id).where(_id_condition(specs))
    await db.execute(delete(Video).where(Video.bookmark_id.in_(selected_ids)))
    await db.execute(
        delete(bookmark_tags).where(bookmark_tags.c.bookmark_id.in_(selected_ids)),
    )
    result = await db.execute(
        delete(Bookmark)
        .where(_id_condition(specs))
        .execution_options(synchronize_session="fetch"),
    )
    await flush_or_fail(db, "bookmark deletion")
    return result.rowcount or 0


def escape_like(value: str) -> str:
    r"""
    Escape special LIKE characters so they match literally.

    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def search_bookmarks(
    db: AsyncSession,
    keyword: str = "",
    tags: list[str] | None = None,
    with_content: bool = False,
) -> list[Bookmark]:
    """
    Search bookmarks by keyword and tags.

    - **keyword**: case-insensitive substring of title, excerpt or content; empty
      matches everything
    - **tags**: a bookmark must carry every listed tag (intersection)

    Results are ordered most recently modified first. Without ``with_content`` the
    content and HTML columns are not loaded.
    """
    query = select(Bookmark).options(selectinload(Bookmark.tags))
    if not with_content:
        query = query.options(defer(Bookmark.content), defer(Bookmark.html))

    keyword = keyword.strip()
    if keyword:
        pattern = f"%{escape_like(keyword)}%"
        query = query.where(
            or_(
                Bookmark.title.ilike(pattern, escape="\\"),
                Bookmark.excerpt.ilike(pattern, escape="\\"),
                Bookmark.content.ilike(pattern, escape="\\"),
            ),
        )

    for tag_name in normalize_tag_names(tags or []):
        # EXISTS subquery per tag: bookmark must have all of them
        query = query.where(
            exists(
                select(bookmark_tags.c.bookmark_id)
                .join(Tag, bookmark_tags.c.tag_id == Tag.id)
                .where(
                    bookmark_tags.c.bookmark_id == Bookmark.id,
                    Tag.name == tag_name,
                ),
            ),
        )

    query = query.order_by(Bookmark.modified.desc(), Bookmark.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())
