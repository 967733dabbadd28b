"""Login endpoint."""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.api.dependencies import get_async_session, get_token_manager
from keepsake.core.auth import SESSION_COOKIE
from keepsake.schemas.token import LoginRequest
from keepsake.services import token_service
from keepsake.services.token_service import REMEMBER_LIFETIME, SESSION_LIFETIME, TokenManager

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/login", response_model=str)
async def login(
    data: LoginRequest,
    response: Response,
    manager: TokenManager = Depends(get_token_manager),
    db: AsyncSession = Depends(get_async_session),
) -> str:
    """
    Exchange a username and password for an access token.

    The token is returned in the body for API clients and also set as the `token`
    cookie so the web pages recognize the session. With `remember` the token lives
    7 days instead of 12 hours.

    Returns 401 with the same message for an unknown user or a wrong password.
    """
    token = await token_service.login(db, manager, data)
    lifetime = REMEMBER_LIFETIME if data.remember else SESSION_LIFETIME
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=int(lifetime.total_seconds()),
        httponly=True,
        samesite="lax",
    )
    return token
