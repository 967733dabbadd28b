"""Authentication dependencies for bearer API calls and cookie sessions."""
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from keepsake.schemas.token import AccessClaims
from keepsake.services.exceptions import AuthorizationFailedError
from keepsake.services.token_service import TokenManager

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

SESSION_COOKIE = "token"


def get_token_manager(request: Request) -> TokenManager:
    """Return the process-wide token manager created at startup."""
    return request.app.state.token_manager


async def get_api_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    manager: TokenManager = Depends(get_token_manager),
) -> AccessClaims:
    """
    Dependency that validates the bearer token of an API call.

    Raises:
        AuthorizationFailedError: If the header is missing or the token is invalid.
    """
    if credentials is None:
        raise AuthorizationFailedError("Not authenticated")
    return manager.validate(credentials.credentials)


async def get_session_claims(
    request: Request,
    manager: TokenManager = Depends(get_token_manager),
) -> AccessClaims | None:
    """
    Dependency that validates the session cookie of a page request.

    Returns None instead of raising so page routes can redirect to the login view.
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    try:
        return manager.validate(token)
    except AuthorizationFailedError as e:
        logger.debug("Rejected session cookie: %s", e)
        return None
