"""Issue and validate signed access tokens."""
import logging
import secrets
from datetime import UTC, datetime, timedelta

import jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.schemas.token import AccessClaims, LoginRequest
from keepsake.services.account_service import authenticate
from keepsake.services.exceptions import AuthorizationFailedError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
KEY_BYTES = 32
SESSION_LIFETIME = timedelta(hours=12)
REMEMBER_LIFETIME = timedelta(days=7)


class TokenManager:
    """
    Signs and validates access tokens with a process-wide HMAC key.

    One instance is created at startup and is read-only afterwards; the key is
    never rotated while the process runs. Cookie sessions and bearer API calls
    share the same claims contract and validation.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) < KEY_BYTES:
            raise ValueError(f"Signing key must be at least {KEY_BYTES} bytes")
        self._key = key

    @classmethod
    def generate(cls) -> "TokenManager":
        """Create a manager with a fresh random signing key."""
        return cls(secrets.token_bytes(KEY_BYTES))

    def issue(
        self,
        account_id: int,
        remember: bool = False,
        now: datetime | None = None,
    ) -> str:
        """
        Issue a token for an account.

        Valid from ``now`` for 12 hours, or 7 days when ``remember`` is set.
        """
        issued_at = now or datetime.now(UTC)
        lifetime = REMEMBER_LIFETIME if remember else SESSION_LIFETIME
        payload = {
            "nbf": int(issued_at.timestamp()),
            "exp": int((issued_at + lifetime).timestamp()),
            # RFC 7519 subjects are strings; AccessClaims parses it back to int
            "sub": str(account_id),
        }
        return jwt.encode(payload, self._key, algorithm=ALGORITHM)

    def validate(self, token: str, now: datetime | None = None) -> AccessClaims:
        """
        Verify a token's signature and validity window.

        Only HS256 is accepted, so tokens signed with "none" or any other algorithm
        are rejected. Expiry is checked strictly: a token is invalid from its `exp`
        second onward regardless of its signature.

        Raises:
            AuthorizationFailedError: If the token is malformed, forged, not yet
                valid, expired, or lacks a subject.
        """
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                options={
                    "require": ["nbf", "exp", "sub"],
                    # The validity window is checked below against an explicit clock
                    "verify_exp": False,
                    "verify_nbf": False,
                },
            )
        except jwt.PyJWTError as e:
            raise AuthorizationFailedError(f"Invalid token: {e}") from e

        try:
            claims = AccessClaims.model_validate(payload)
        except ValidationError as e:
            raise AuthorizationFailedError("Invalid token: malformed claims") from e

        current = int((now or datetime.now(UTC)).timestamp())
        if current < claims.nbf:
            raise AuthorizationFailedError("Token is not yet valid")
        if current >= claims.exp:
            raise AuthorizationFailedError("Token has expired")
        return claims


async def login(
    db: AsyncSession,
    manager: TokenManager,
    request: LoginRequest,
    now: datetime | None = None,
) -> str:
    """
    Verify credentials and issue a token whose subject is the account id.

    Raises:
        AuthenticationFailedError: If the username or password is wrong.
    """
    account = await authenticate(db, request.username, request.password)
    logger.info("Account %s logged in", account.id)
    return manager.issue(account.id, remember=request.remember, now=now)
