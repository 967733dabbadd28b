"""Pytest fixtures for testing."""
import os
from collections.abc import AsyncGenerator
from pathlib import Path

# Must be set before any app imports that trigger Settings validation
os.environ["KEEPSAKE_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["KEEPSAKE_CREATE_SCHEMA"] = "false"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from keepsake.core.config import Settings  # noqa: E402
from keepsake.models.base import Base  # noqa: E402
from keepsake.services.account_service import create_account  # noqa: E402
from keepsake.services.token_service import TokenManager  # noqa: E402


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create a fresh in-memory SQLite engine with the schema for one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        # One shared connection, so every session sees the same in-memory database
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create an async session; each test gets its own database."""
    session_factory = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing media storage at a temporary directory."""
    return Settings(
        database_url="sqlite+aiosqlite://",
        media_dir=tmp_path / "videos",
        media_url_path="/videos",
        video_hosts_str="youtube.com,youtu.be",
        fetch_timeout=1.0,
        download_timeout=1.0,
    )


@pytest.fixture
def token_manager() -> TokenManager:
    """Token manager with a fixed key so tests can sign their own tokens."""
    return TokenManager(b"k" * 32)


@pytest.fixture
async def client(
    db_session: AsyncSession,
    settings: Settings,
    token_manager: TokenManager,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session and settings overrides."""
    from keepsake.api.main import app
    from keepsake.core.config import get_settings
    from keepsake.db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = lambda: settings
    # ASGITransport does not run the lifespan, which normally creates the manager
    app.state.token_manager = token_manager

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def account_id(db_session: AsyncSession) -> int:
    """An account named 'owner' with password 'correct horse'."""
    account = await create_account(db_session, "owner", "correct horse")
    return account.id


@pytest.fixture
def auth_headers(token_manager: TokenManager, account_id: int) -> dict[str, str]:
    """Bearer header for the 'owner' account."""
    return {"Authorization": f"Bearer {token_manager.issue(account_id)}"}
