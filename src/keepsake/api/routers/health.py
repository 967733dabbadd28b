"""Liveness endpoint reporting store connectivity."""
import logging
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake import __version__
from keepsake.api.dependencies import get_async_session, get_settings
from keepsake.core.config import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthStatus(BaseModel):
    """Service status; `degraded` when the store does not answer."""

    status: Literal["healthy", "degraded"]
    database: Literal["healthy", "unhealthy"]
    media_dir: Literal["ready", "missing"]
    version: str


async def ping_database(db: AsyncSession) -> bool:
    """Run a trivial query; False if the store rejects it."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return False
    return True


@router.get("/health", response_model=HealthStatus)
async def health(
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> HealthStatus:
    """
    Report database connectivity and whether the media directory exists yet.

    A missing media directory is normal before the first video download.
    """
    database_ok = await ping_database(db)
    return HealthStatus(
        status="healthy" if database_ok else "degraded",
        database="healthy" if database_ok else "unhealthy",
        media_dir="ready" if settings.media_dir.is_dir() else "missing",
        version=__version__,
    )
