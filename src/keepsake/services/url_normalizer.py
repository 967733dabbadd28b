"""Validation and canonicalization of submitted URLs."""
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from keepsake.services.exceptions import InvalidURLError

TRACKING_PREFIX = "utm_"


def normalize_url(raw: str) -> str:
    """
    Validate a URL and strip tracking parameters.

    The URL must be absolute with a non-empty host. Every query parameter whose key
    starts with ``utm_`` is dropped; the remaining parameters are re-encoded sorted
    by key (values of a repeated key keep their relative order).

    Raises:
        InvalidURLError: If the URL has no scheme or no host.
    """
    candidate = (raw or "").strip()
    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
        # Raises ValueError on a non-numeric or out-of-range port
        parts.port  # noqa: B018
    except ValueError as e:
        raise InvalidURLError(candidate) from e

    if not parts.scheme or not hostname:
        raise InvalidURLError(candidate)

    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not key.startswith(TRACKING_PREFIX)
    ]
    params.sort(key=lambda pair: pair[0])

    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment),
    )


def normalize_space(text: str | None) -> str:
    """Collapse runs of whitespace into single spaces and trim the ends."""
    return " ".join((text or "").split())


def is_video_url(url: str, video_hosts: list[str]) -> bool:
    """Return True when the URL's host is, or is a subdomain of, a video host."""
    hostname = (urlsplit(url).hostname or "").lower()
    return any(
        hostname == host or hostname.endswith(f".{host}")
        for host in video_hosts
    )
