"""Keepsake: bookmarks with extracted content, cached videos and a token-authenticated API."""
__version__ = "0.1.0"
