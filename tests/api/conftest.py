"""Fixtures shared by API tests."""
from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest

from keepsake.services.exceptions import FetchFailedError


@pytest.fixture(autouse=True)
def mock_extract_article() -> Generator[AsyncMock]:
    """
    Auto-mock the content extractor for all API tests to avoid real network calls.

    Fails every fetch by default so bookmarks are built from submitted fields only.
    Tests that need extracted content can override this with their own patch.
    """
    with patch(
        "keepsake.services.reconciler.extract_article",
        new_callable=AsyncMock,
        side_effect=FetchFailedError("https://mocked", "Mocked - no network call"),
    ) as mock:
        yield mock
