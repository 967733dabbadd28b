"""Bookmark endpoints for API clients."""
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.api.dependencies import get_api_claims, get_async_session, get_settings
from keepsake.core.config import Settings
from keepsake.schemas.bookmark import BookmarkCreate, BookmarkResponse, BookmarkUpdate
from keepsake.schemas.token import AccessClaims
from keepsake.services import bookmark_service

router = APIRouter(prefix="/api/bookmarks", tags=["bookmarks"])


def split_tags(tags: str) -> list[str]:
    """Split a tags query value on whitespace or commas."""
    return tags.replace(",", " ").split()


@router.get("", response_model=list[BookmarkResponse])
async def list_bookmarks(
    keyword: str = Query(default="", description="Case-insensitive match on title, excerpt and content"),  # noqa: E501
    tags: str = Query(default="", description="Space separated tags; a bookmark must have all of them"),  # noqa: E501
    _claims: AccessClaims = Depends(get_api_claims),
    db: AsyncSession = Depends(get_async_session),
) -> list[BookmarkResponse]:
    """
    Search bookmarks, most recently modified first.

    - **keyword**: Empty matches every bookmark
    - **tags**: Intersection filter; tag names must match exactly
    """
    bookmarks = await bookmark_service.search_bookmarks(
        db, keyword=keyword, tags=split_tags(tags),
    )
    return [BookmarkResponse.model_validate(b) for b in bookmarks]


@router.post("", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    _claims: AccessClaims = Depends(get_api_claims),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> BookmarkResponse:
    """
    Create a bookmark, fetching its metadata from the page.

    Video URLs are downloaded and attached. Returns 400 for an invalid URL.
    """
    bookmark = await bookmark_service.create_bookmark(db, data, settings=settings)
    return BookmarkResponse.model_validate(bookmark)


@router.put("", response_model=BookmarkResponse)
async def update_bookmark(
    data: BookmarkUpdate,
    dont_overwrite: str | None = Query(
        default=None,
        alias="dont-overwrite",
        description="When present, keep stored metadata on refresh and merge tags",
    ),
    _claims: AccessClaims = Depends(get_api_claims),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> BookmarkResponse:
    """
    Refresh a bookmark from its page and apply the submitted fields.

    Returns 404 if the id doesn't exist.
    """
    bookmarks = await bookmark_service.update_bookmarks(
        db,
        [str(data.id)],
        data,
        overwrite=dont_overwrite is None,
        settings=settings,
    )
    return BookmarkResponse.model_validate(bookmarks[0])


@router.delete("", response_model=list[str])
async def delete_bookmarks(
    indices: list[str] = Body(..., description="Ids (\"7\") or inclusive ranges (\"3-9\")"),
    _claims: AccessClaims = Depends(get_api_claims),
    db: AsyncSession = Depends(get_async_session),
) -> list[str]:
    """
    Delete bookmarks by index and echo the submitted indices.

    Ids that don't exist are ignored. Returns 400 if any index is malformed, in
    which case nothing is deleted.
    """
    await bookmark_service.delete_bookmarks(db, indices)
    return indices
