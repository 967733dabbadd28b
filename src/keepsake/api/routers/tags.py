"""Tag listing endpoint."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.api.dependencies import get_api_claims, get_async_session
from keepsake.schemas.tag import TagCount
from keepsake.schemas.token import AccessClaims
from keepsake.services.tag_service import get_tags_with_counts

router = APIRouter(prefix="/api/tags", tags=["tags"])


@router.get("", response_model=list[TagCount])
async def list_tags(
    _claims: AccessClaims = Depends(get_api_claims),
    db: AsyncSession = Depends(get_async_session),
) -> list[TagCount]:
    """Get every tag in use with its bookmark count, sorted by name."""
    return await get_tags_with_counts(db)
