"""Service layer for account administration and password verification."""
import logging
from functools import lru_cache

import bcrypt
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.models.account import Account
from keepsake.services.exceptions import AuthenticationFailedError, StoreFailureError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class AccountExistsError(Exception):
    """Raised when creating an account whose username is taken."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"Account '{username}' already exists")


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    raw = password.encode()
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Compare a password against a bcrypt hash in constant time."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed hash or over-long password
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """Hash used to spend the same bcrypt work when the username is unknown."""
    return hash_password("keepsake-dummy-password")


async def create_account(db: AsyncSession, username: str, password: str) -> Account:
    """
    Create an account with a bcrypt-hashed password.

    Raises:
        ValueError: If the username is empty or the password is empty or too long.
        AccountExistsError: If the username is already taken.

    Note: Does not commit. Caller handles commit.
    """
    username = username.strip()
    if not username:
        raise ValueError("Username must not be empty")
    if not password:
        raise ValueError("Password must not be empty")

    account = Account(username=username, password=hash_password(password))
    db.add(account)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise AccountExistsError(username) from e
    return account


async def get_accounts(
    db: AsyncSession,
    keyword: str = "",
    exact: bool = False,
) -> list[Account]:
    """
    Get accounts by username.

    With ``exact`` the username must equal ``keyword``; otherwise ``keyword`` is a
    substring filter (empty keyword lists every account).
    """
    query = select(Account).order_by(Account.username.asc())
    if exact:
        query = query.where(Account.username == keyword)
    elif keyword:
        query = query.where(Account.username.contains(keyword, autoescape=True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def delete_accounts(db: AsyncSession, usernames: list[str]) -> int:
    """Delete accounts by username. Returns the number of rows removed."""
    if not usernames:
        return 0
    try:
        result = await db.execute(delete(Account).where(Account.username.in_(usernames)))
    except IntegrityError as e:
        raise StoreFailureError("account deletion") from e
    return result.rowcount or 0


async def authenticate(db: AsyncSession, username: str, password: str) -> Account:
    """
    Verify credentials and return the matching account.

    The username must match exactly. A bcrypt comparison runs even when the
    username is unknown so both failure paths cost the same.

    Raises:
        AuthenticationFailedError: For an unknown username or a wrong password alike.
    """
    accounts = await get_accounts(db, username, exact=True)
    account = accounts[0] if accounts else None

    password_hash = account.password if account is not None else _dummy_hash()
    password_ok = verify_password(password, password_hash)

    if account is None or not password_ok:
        logger.info("Failed login attempt")
        raise AuthenticationFailedError()
    return account
