"""FastAPI dependencies for injection."""
from keepsake.core.auth import get_api_claims, get_session_claims, get_token_manager
from keepsake.core.config import get_settings
from keepsake.db.session import get_async_session

__all__ = [
    "get_api_claims",
    "get_async_session",
    "get_session_claims",
    "get_settings",
    "get_token_manager",
]
