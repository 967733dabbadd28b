"""Tests for URL validation, tracking-parameter removal and video host detection."""
import pytest

from keepsake.services.exceptions import InvalidURLError
from keepsake.services.url_normalizer import is_video_url, normalize_space, normalize_url


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test__normalize_url__strips_utm_parameters(self) -> None:
        assert normalize_url("https://example.com/a?utm_source=x&b=2&utm_medium=y") == (
            "https://example.com/a?b=2"
        )

    def test__normalize_url__sorts_remaining_parameters_by_key(self) -> None:
        assert normalize_url("https://example.com/?z=1&a=2&m=3") == (
            "https://example.com/?a=2&m=3&z=1"
        )

    def test__normalize_url__repeated_key_keeps_value_order(self) -> None:
        assert normalize_url("https://example.com/?b=2&a=9&b=1") == (
            "https://example.com/?a=9&b=2&b=1"
        )

    def test__normalize_url__only_tracking_parameters_leaves_no_query(self) -> None:
        assert normalize_url("https://example.com/page?utm_campaign=z") == (
            "https://example.com/page"
        )

    def test__normalize_url__keeps_fragment_and_path(self) -> None:
        assert normalize_url("http://example.com/x/y#section") == "http://example.com/x/y#section"

    def test__normalize_url__key_merely_containing_utm_is_kept(self) -> None:
        assert normalize_url("https://example.com/?xutm_a=1") == "https://example.com/?xutm_a=1"

    def test__normalize_url__is_idempotent(self) -> None:
        once = normalize_url("https://example.com/?c=3&utm_x=1&a=1")
        assert normalize_url(once) == once

    @pytest.mark.parametrize(
        "raw",
        ["", "   ", "example.com/page", "/relative/path", "https://", "mailto:someone"],
    )
    def test__normalize_url__rejects_urls_without_scheme_or_host(self, raw: str) -> None:
        with pytest.raises(InvalidURLError):
            normalize_url(raw)

    def test__normalize_url__rejects_malformed_port(self) -> None:
        with pytest.raises(InvalidURLError):
            normalize_url("https://example.com:notaport/")


class TestNormalizeSpace:
    """Tests for normalize_space."""

    def test__normalize_space__collapses_runs(self) -> None:
        assert normalize_space("  a \n\t b   c ") == "a b c"

    def test__normalize_space__none_is_empty(self) -> None:
        assert normalize_space(None) == ""


class TestIsVideoUrl:
    """Tests for is_video_url."""

    hosts = ["youtube.com", "youtu.be"]

    @pytest.mark.parametrize(
        "url",
        [
            "https://youtube.com/watch?v=abc",
            "https://www.youtube.com/watch?v=abc",
            "https://m.YouTube.com/watch?v=abc",
            "https://youtu.be/abc",
        ],
    )
    def test__is_video_url__matches_host_and_subdomains(self, url: str) -> None:
        assert is_video_url(url, self.hosts)

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/youtube.com",
            "https://notyoutube.com/watch",
            "https://youtube.com.evil.example/watch",
        ],
    )
    def test__is_video_url__rejects_other_hosts(self, url: str) -> None:
        assert not is_video_url(url, self.hosts)
