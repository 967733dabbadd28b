"""Merge caller-supplied bookmark fields with metadata from the content extractor."""
import asyncio
import dataclasses
import logging
from dataclasses import dataclass

from keepsake.services.exceptions import FetchFailedError
from keepsake.services.url_scraper import DEFAULT_TIMEOUT, extract_article

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


@dataclass
class BookmarkFields:
    """In-flight bookmark values owned by a single create/update call."""

    url: str
    title: str = ""
    excerpt: str = ""
    image_url: str = ""
    author: str = ""
    min_read_time: int = 0
    max_read_time: int = 0
    content: str = ""
    html: str = ""


async def reconcile(
    fields: BookmarkFields,
    offline: bool,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
) -> tuple[BookmarkFields, bool]:
    """
    Reconcile caller-supplied fields with the content extractor's output.

    Precedence:
    - The extractor wins on URL (it may resolve redirects), image URL, author,
      read-time bounds, plain content and raw HTML.
    - The caller wins on title and excerpt; the extractor only fills them when the
      caller left them empty.

    When offline, or when the extractor fails or runs past ``timeout``, nothing
    is merged and an empty title becomes "Untitled". Fetch failures are logged,
    never raised.

    Returns:
        Tuple of (reconciled fields, whether extractor data was merged).
    """
    if not offline:
        try:
            article = await asyncio.wait_for(
                extract_article(fields.url, timeout),
                timeout=timeout,
            )
        except FetchFailedError as e:
            logger.warning("Failed to fetch article from internet: %s", e)
        except TimeoutError:
            logger.warning(
                "Failed to fetch article from internet: %s timed out after %ss",
                fields.url,
                timeout,
            )
        else:
            return dataclasses.replace(
                fields,
                url=article.url or fields.url,
                title=fields.title or article.title,
                excerpt=fields.excerpt or article.excerpt,
                image_url=article.image_url,
                author=article.author,
                min_read_time=article.min_read_time,
                max_read_time=article.max_read_time,
                content=article.content,
                html=article.raw_content,
            ), True

    if not fields.title:
        return dataclasses.replace(fields, title=UNTITLED), False
    return fields, False
