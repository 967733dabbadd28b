"""
Tests for the content extractor.

Tests cover:
- fetch_url: HTTP fetching with mocked responses (success, timeout, errors, non-HTML, SSRF)
- extract_html_metadata / extract_article_html: pure parsing functions
- estimate_read_time: read-time bounds from word counts
- extract_article: end-to-end with a mocked fetch
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from keepsake.services.exceptions import FetchFailedError
from keepsake.services.url_scraper import (
    DEFAULT_TIMEOUT,
    MAX_AUTHOR_LENGTH,
    MAX_TITLE_LENGTH,
    USER_AGENT,
    FetchResult,
    SSRFBlockedError,
    estimate_read_time,
    extract_article,
    extract_article_html,
    extract_html_metadata,
    fetch_url,
    is_private_ip,
    validate_url_not_private,
)


def mock_async_client(mock_client_class: object, response: object = None, error: Exception | None = None) -> AsyncMock:  # noqa: E501
    mock_client = AsyncMock()
    if error is not None:
        mock_client.get.side_effect = error
    else:
        mock_client.get.return_value = response
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None
    mock_client_class.return_value = mock_client
    return mock_client


class TestFetchUrl:
    """Tests for fetch_url function."""

    @pytest.fixture(autouse=True)
    def _public_dns(self):  # noqa: ANN202
        with patch("keepsake.services.url_scraper.validate_url_not_private"):
            yield

    async def test__fetch_url__success(self) -> None:
        """Successful fetch returns HTML content and metadata."""
        html = '<html><head><title>Test</title></head><body>Content</body></html>'
        mock_response = AsyncMock()
        mock_response.text = html
        mock_response.url = 'https://example.com/page'
        mock_response.status_code = 200
        mock_response.is_success = True
        mock_response.headers = {'content-type': 'text/html; charset=utf-8'}

        with patch('keepsake.services.url_scraper.httpx.AsyncClient') as mock_client_class:
            mock_async_client(mock_client_class, response=mock_response)

            result = await fetch_url('https://example.com')

            assert result.html == html
            assert result.final_url == 'https://example.com/page'
            assert result.status_code == 200
            assert result.error is None

            mock_client_class.assert_called_once_with(
                follow_redirects=True,
                timeout=DEFAULT_TIMEOUT,
                headers={'User-Agent': USER_AGENT},
                http2=True,
            )

    async def test__fetch_url__timeout(self) -> None:
        """Timeout returns error info without raising."""
        with patch('keepsake.services.url_scraper.httpx.AsyncClient') as mock_client_class:
            mock_async_client(mock_client_class, error=httpx.TimeoutException("timed out"))

            result = await fetch_url('https://example.com')

        assert result.html is None
        assert result.error == "Request timed out"

    async def test__fetch_url__http_error_status(self) -> None:
        mock_response = AsyncMock()
        mock_response.url = 'https://example.com/missing'
        mock_response.status_code = 404
        mock_response.is_success = False
        mock_response.headers = {'content-type': 'text/html'}

        with patch('keepsake.services.url_scraper.httpx.AsyncClient') as mock_client_class:
            mock_async_client(mock_client_class, response=mock_response)
            result = await fetch_url('https://example.com/missing')

        assert result.html is None
        assert result.error == "HTTP 404"

    async def test__fetch_url__non_html_content(self) -> None:
        mock_response = AsyncMock()
        mock_response.url = 'https://example.com/file.pdf'
        mock_response.status_code = 200
        mock_response.is_success = True
        mock_response.headers = {'content-type': 'application/pdf'}

        with patch('keepsake.services.url_scraper.httpx.AsyncClient') as mock_client_class:
            mock_async_client(mock_client_class, response=mock_response)
            result = await fetch_url('https://example.com/file.pdf')

        assert result.html is None
        assert "Unsupported content type" in result.error


class TestSSRF:
    """Tests for private network protection."""

    @pytest.mark.parametrize(
        "ip", ["127.0.0.1", "10.1.2.3", "192.168.0.1", "169.254.169.254", "::1", "nonsense"],
    )
    def test__is_private_ip__internal_addresses(self, ip: str) -> None:
        assert is_private_ip(ip)

    def test__is_private_ip__public_address(self) -> None:
        assert not is_private_ip("93.184.216.34")

    def test__validate_url_not_private__blocks_localhost(self) -> None:
        with pytest.raises(SSRFBlockedError):
            validate_url_not_private("http://localhost:8080/admin")

    def test__validate_url_not_private__blocks_resolved_private_ip(self) -> None:
        addrinfo = [(None, None, None, None, ("10.0.0.5", 0))]
        with (
            patch("keepsake.services.url_scraper.socket.getaddrinfo", return_value=addrinfo),
            pytest.raises(SSRFBlockedError),
        ):
            validate_url_not_private("http://internal.example/")

    async def test__fetch_url__private_target_is_an_error_not_a_request(self) -> None:
        with patch('keepsake.services.url_scraper.httpx.AsyncClient') as mock_client_class:
            result = await fetch_url('http://127.0.0.1/')

        mock_client_class.assert_not_called()
        assert result.html is None
        assert result.error is not None


class TestExtractHtmlMetadata:
    """Tests for extract_html_metadata."""

    def test__extract_html_metadata__prefers_open_graph(self) -> None:
        html = """
        <html><head>
          <title>Plain title</title>
          <meta property="og:title" content="OG   title">
          <meta name="description" content="A short description">
          <meta name="author" content="Grace">
          <meta property="og:image" content="/img/lead.png">
        </head><body></body></html>
        """
        metadata = extract_html_metadata(html, "https://example.com/post/1")

        assert metadata.title == "OG title"
        assert metadata.excerpt == "A short description"
        assert metadata.author == "Grace"
        assert metadata.image_url == "https://example.com/img/lead.png"

    def test__extract_html_metadata__falls_back_to_title_tag(self) -> None:
        metadata = extract_html_metadata("<html><head><title> Hello </title></head></html>")
        assert metadata.title == "Hello"
        assert metadata.excerpt == ""
        assert metadata.image_url == ""

    def test__extract_html_metadata__truncates_long_title_and_author(self) -> None:
        html = (
            f'<html><head><meta property="og:title" content="{"t" * 600}">'
            f'<meta name="author" content="{"a" * 300}"></head></html>'
        )
        metadata = extract_html_metadata(html)

        assert metadata.title == "t" * MAX_TITLE_LENGTH
        assert metadata.author == "a" * MAX_AUTHOR_LENGTH


class TestExtractArticleHtml:
    """Tests for extract_article_html."""

    def test__extract_article_html__prefers_article_and_strips_scripts(self) -> None:
        html = """
        <html><body>
          <nav>Menu</nav>
          <article><h1>Story</h1><script>alert(1)</script><p onclick="x()">Body</p></article>
        </body></html>
        """
        fragment = extract_article_html(html)

        assert fragment.startswith("<article>")
        assert "Story" in fragment
        assert "script" not in fragment
        assert "onclick" not in fragment
        assert "Menu" not in fragment

    def test__extract_article_html__removes_javascript_links(self) -> None:
        fragment = extract_article_html('<body><a href="javascript:evil()">x</a></body>')
        assert "javascript" not in fragment


class TestEstimateReadTime:
    """Tests for estimate_read_time."""

    def test__estimate_read_time__empty_text(self) -> None:
        assert estimate_read_time("") == (0, 0)

    def test__estimate_read_time__short_text_is_at_least_one_minute(self) -> None:
        assert estimate_read_time("a few words") == (1, 1)

    def test__estimate_read_time__bounds_from_reading_speeds(self) -> None:
        text = " ".join(["word"] * 1000)
        assert estimate_read_time(text) == (3, 5)


class TestExtractArticle:
    """Tests for extract_article."""

    async def test__extract_article__builds_article_from_final_url(self) -> None:
        html = (
            '<html><head><title>T</title></head>'
            '<body><article><p>Hello world</p></article></body></html>'
        )
        fetched = FetchResult(
            html=html,
            final_url="https://example.com/after-redirect",
            status_code=200,
            content_type="text/html",
            error=None,
        )
        with patch(
            "keepsake.services.url_scraper.fetch_url", AsyncMock(return_value=fetched),
        ):
            article = await extract_article("https://example.com/before")

        assert article.url == "https://example.com/after-redirect"
        assert article.title == "T"
        assert "Hello world" in article.raw_content

    async def test__extract_article__fetch_error_raises(self) -> None:
        failed = FetchResult(
            html=None,
            final_url="https://example.com/",
            status_code=None,
            content_type=None,
            error="Request timed out",
        )
        with (
            patch("keepsake.services.url_scraper.fetch_url", AsyncMock(return_value=failed)),
            pytest.raises(FetchFailedError, match="timed out"),
        ):
            await extract_article("https://example.com/")
