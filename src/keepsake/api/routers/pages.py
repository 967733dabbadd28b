"""HTML pages for browser sessions."""
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, RedirectResponse
from jinja2 import Environment, PackageLoader, select_autoescape
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake.api.dependencies import get_async_session, get_session_claims
from keepsake.schemas.token import AccessClaims
from keepsake.services import bookmark_service
from keepsake.services.exceptions import NotFoundError

router = APIRouter(tags=["pages"], include_in_schema=False)

_jinja_env = Environment(
    loader=PackageLoader("keepsake.api", "templates"),
    autoescape=select_autoescape(["html"]),
)

# Redirects depend on the session cookie, so neither browsers nor proxies may reuse them
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def redirect(location: str) -> RedirectResponse:
    """Temporary redirect that is never cached."""
    return RedirectResponse(location, status_code=302, headers=NO_CACHE_HEADERS)


def render(template_name: str, **context: object) -> HTMLResponse:
    """Render a page template."""
    template = _jinja_env.get_template(template_name)
    return HTMLResponse(template.render(**context), headers=NO_CACHE_HEADERS)


@router.get("/", response_model=None)
async def index_page(
    claims: AccessClaims | None = Depends(get_session_claims),
    db: AsyncSession = Depends(get_async_session),
) -> HTMLResponse | RedirectResponse:
    """Bookmark list; visitors without a valid session are sent to the login page."""
    if claims is None:
        return redirect("/login")
    bookmarks = await bookmark_service.search_bookmarks(db)
    return render("index.html", bookmarks=bookmarks)


@router.get("/login", response_model=None)
async def login_page(
    claims: AccessClaims | None = Depends(get_session_claims),
) -> HTMLResponse | RedirectResponse:
    """Login form; an already signed-in visitor goes straight to the list."""
    if claims is not None:
        return redirect("/")
    return render("login.html")


@router.get("/bookmark/{bookmark_id}", response_class=HTMLResponse)
async def cached_page(
    bookmark_id: int,
    db: AsyncSession = Depends(get_async_session),
) -> HTMLResponse:
    """
    Stored copy of a bookmarked page: title, metadata and archived HTML.

    Returns 404 if the id doesn't exist.
    """
    bookmarks = await bookmark_service.get_bookmarks(db, [str(bookmark_id)], with_content=True)
    if not bookmarks:
        raise NotFoundError(f"No bookmark with id {bookmark_id}")
    return render("cache.html", bookmark=bookmarks[0])
