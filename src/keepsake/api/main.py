"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from keepsake import __version__
from keepsake.api.errors import register_exception_handlers
from keepsake.api.routers import auth, bookmarks, health, pages, tags
from keepsake.core.config import get_settings
from keepsake.core.logging import configure_logging
from keepsake.db.session import init_db
from keepsake.services.token_service import TokenManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()
    configure_logging(app_settings.log_level)

    # Startup: Create missing tables
    if app_settings.create_schema:
        await init_db()

    # Startup: One signing key per process, never rotated while running
    app.state.token_manager = TokenManager.generate()
    logger.info("Keepsake %s started", __version__)

    yield

    # Shutdown: Tokens issued by this process die with its key
    app.state.token_manager = None


app_settings = get_settings()

app = FastAPI(
    title="Keepsake API",
    description="A bookmark manager that archives page content and videos.",
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(bookmarks.router)
app.include_router(tags.router)
app.include_router(pages.router)

# The directory is created by the first download
app.mount(
    app_settings.media_url_path,
    StaticFiles(directory=app_settings.media_dir, check_dir=False),
    name="media",
)
