"""Shared exceptions for service layer operations."""


class KeepsakeError(Exception):
    """Base class for every error the service layer raises on purpose."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidURLError(KeepsakeError):
    """Raised when a submitted URL is not absolute or has no host."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"URL is not valid: '{url}'")


class InvalidIndexError(KeepsakeError):
    """Raised when an index specification is not a non-negative integer or range."""

    def __init__(self, index: str) -> None:
        self.index = index
        super().__init__(f"Index is not valid: '{index}'")


class NotFoundError(KeepsakeError):
    """Raised when no bookmark (or not every requested bookmark) matches."""

    def __init__(self, message: str = "No matching index found") -> None:
        super().__init__(message)


class FetchFailedError(KeepsakeError):
    """
    Raised by the content extractor when a page cannot be fetched or parsed.

    Recoverable: the metadata reconciler absorbs it and degrades to offline behavior.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class DownloadFailedError(KeepsakeError):
    """Raised when a video download fails after an encoding was selected."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download video from {url}: {reason}")


class AuthenticationFailedError(KeepsakeError):
    """
    Raised when login credentials don't match.

    The message is identical for unknown users and wrong passwords.
    """

    def __init__(self) -> None:
        super().__init__("Username and password don't match")


class AuthorizationFailedError(KeepsakeError):
    """Raised when an access token is missing, malformed, expired or forged."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class StoreFailureError(KeepsakeError):
    """Raised when the persistence layer rejects an operation."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Store failure during {operation}")
