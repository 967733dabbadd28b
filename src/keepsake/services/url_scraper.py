"""Content extractor: fetch a page and pull out article text, HTML and metadata."""
import asyncio
import ipaddress
import math
import socket
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup

from keepsake.services.exceptions import FetchFailedError

USER_AGENT = 'Mozilla/5.0 (compatible; Keepsake/1.0)'
DEFAULT_TIMEOUT = 10.0

# Words per minute used for read-time estimates
FAST_READING_SPEED = 300
SLOW_READING_SPEED = 200

STRIPPED_TAGS = ['script', 'style', 'noscript', 'iframe', 'form', 'nav', 'footer']

# Column sizes of the bookmark title and author
MAX_TITLE_LENGTH = 500
MAX_AUTHOR_LENGTH = 250


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # Unparseable addresses are treated as internal
        return True


def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname to check the actual IP address, preventing
    DNS rebinding attacks where a hostname resolves to an internal IP.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the host does not resolve.
    """
    parsed = urlparse(url)
    hostname = parsed.hostname

    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw HTML before extraction)."""

    html: str | None
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None


@dataclass
class PageMetadata:
    """Metadata read from an HTML document's head."""

    title: str
    excerpt: str
    author: str
    image_url: str


@dataclass
class Article:
    """Everything the content extractor returns for one URL."""

    url: str
    title: str
    author: str
    excerpt: str
    image_url: str
    min_read_time: int
    max_read_time: int
    content: str
    raw_content: str


def _failed(
    url: str,
    error: str,
    status_code: int | None = None,
    content_type: str | None = None,
) -> FetchResult:
    return FetchResult(
        html=None,
        final_url=url,
        status_code=status_code,
        content_type=content_type,
        error=error,
    )


async def _check_public(url: str) -> str | None:
    """Return why ``url`` may not be fetched, or None if it targets a public host."""
    try:
        await asyncio.to_thread(validate_url_not_private, url)
    except (SSRFBlockedError, ValueError) as e:
        return str(e)
    return None


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    Fetch HTML from a URL.

    Best-effort fetch that returns error info on failure rather than raising.
    Follows redirects and captures the final URL; both the submitted and the
    final URL must resolve to public addresses.
    """
    blocked = await _check_public(url)
    if blocked:
        return _failed(url, blocked)

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException:
        return _failed(url, "Request timed out")
    except httpx.RequestError as e:
        return _failed(url, f"Request failed: {e}")

    final_url = str(response.url)
    if final_url != url:
        blocked = await _check_public(final_url)
        if blocked:
            return _failed(final_url, f"Redirect blocked: {blocked}", response.status_code)

    content_type = response.headers.get('content-type', '')
    if not response.is_success:
        return _failed(
            final_url, f"HTTP {response.status_code}", response.status_code, content_type,
        )
    if 'text/html' not in content_type.lower():
        return _failed(
            final_url,
            f"Unsupported content type: {content_type}",
            response.status_code,
            content_type,
        )

    return FetchResult(
        html=response.text,
        final_url=final_url,
        status_code=response.status_code,
        content_type=content_type,
        error=None,
    )


def _meta_content(soup: BeautifulSoup, *selectors: dict[str, str]) -> str:
    """Return the first non-empty ``content`` of the meta tags matching selectors."""
    for attrs in selectors:
        tag = soup.find('meta', attrs=attrs)
        if tag and tag.get('content'):
            return tag['content'].strip()
    return ''


def extract_html_metadata(html: str, base_url: str = '') -> PageMetadata:
    """
    Extract title, excerpt, author and lead image from HTML.

    Pure function with no I/O. Uses BeautifulSoup for parsing.

    Title priority: og:title, twitter:title, then <title>.
    Excerpt priority: description, og:description, twitter:description.
    Relative image URLs are resolved against ``base_url``. Title and author are
    cut to the lengths the bookmark table stores.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = _meta_content(soup, {'property': 'og:title'}, {'name': 'twitter:title'})
    if not title:
        title_tag = soup.find('title')
        if title_tag and title_tag.string:
            title = title_tag.string.strip()

    excerpt = _meta_content(
        soup,
        {'name': 'description'},
        {'property': 'og:description'},
        {'name': 'twitter:description'},
    )
    author = _meta_content(soup, {'name': 'author'}, {'property': 'article:author'})
    image_url = _meta_content(soup, {'property': 'og:image'}, {'name': 'twitter:image'})
    if image_url and base_url:
        image_url = urljoin(base_url, image_url)

    return PageMetadata(
        title=' '.join(title.split())[:MAX_TITLE_LENGTH],
        excerpt=' '.join(excerpt.split()),
        author=author[:MAX_AUTHOR_LENGTH],
        image_url=image_url,
    )


def extract_html_content(html: str) -> str:
    """
    Extract main readable text from HTML using trafilatura.

    Pure function with no I/O. Returns an empty string when nothing readable is found.
    """
    return trafilatura.extract(html) or ''


def extract_article_html(html: str) -> str:
    """
    Return the markup of the page's main content node.

    Prefers <article>, then <main>, then <body>; scripts, styles, forms and
    navigation are removed so the fragment can be rendered as a cached page.
    """
    soup = BeautifulSoup(html, 'lxml')
    for tag in soup.find_all(STRIPPED_TAGS):
        tag.decompose()
    # Inline handlers and javascript: links would run when the copy is rendered
    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            value = tag.attrs[attr]
            if attr.lower().startswith('on') or (
                isinstance(value, str) and value.strip().lower().startswith('javascript:')
            ):
                del tag.attrs[attr]
    node = soup.find('article') or soup.find('main') or soup.body
    if node is None:
        return ''
    return str(node)


def estimate_read_time(text: str) -> tuple[int, int]:
    """Return (min, max) read time in minutes for a block of plain text."""
    words = len(text.split())
    if words == 0:
        return 0, 0
    return (
        max(1, math.floor(words / FAST_READING_SPEED)),
        max(1, math.ceil(words / SLOW_READING_SPEED)),
    )


def parse_article(html: str, final_url: str) -> Article:
    """Build an Article from fetched HTML. CPU bound; run it off the event loop."""
    metadata = extract_html_metadata(html, final_url)
    content = extract_html_content(html)
    min_read_time, max_read_time = estimate_read_time(content)
    return Article(
        url=final_url,
        title=metadata.title,
        author=metadata.author,
        excerpt=metadata.excerpt,
        image_url=metadata.image_url,
        min_read_time=min_read_time,
        max_read_time=max_read_time,
        content=content,
        raw_content=extract_article_html(html),
    )


async def extract_article(url: str, timeout: float = DEFAULT_TIMEOUT) -> Article:  # noqa: ASYNC109
    """
    Fetch a URL and extract its article.

    This is the content extractor used by bookmark reconciliation.

    Raises:
        FetchFailedError: If the page could not be fetched or is not HTML.
    """
    result = await fetch_url(url, timeout)
    if result.error or result.html is None:
        raise FetchFailedError(url, result.error or "Empty response")

    return await asyncio.to_thread(parse_article, result.html, result.final_url)
