"""Small helpers shared by service modules."""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.services.exceptions import StoreFailureError


async def flush_or_fail(db: AsyncSession, operation: str) -> None:
    """Flush pending changes, wrapping persistence errors in StoreFailureError."""
    try:
        await db.flush()
    except SQLAlchemyError as e:
        raise StoreFailureError(operation) from e
