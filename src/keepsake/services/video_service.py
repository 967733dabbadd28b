"""Download media for video bookmarks and attach it to the bookmark."""
import asyncio
import html
import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote
from uuid import uuid4

import httpx
import yt_dlp
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from yt_dlp.utils import DownloadError, sanitize_filename

from keepsake.models.bookmark import Bookmark
from keepsake.models.video import Video
from keepsake.services.exceptions import DownloadFailedError
from keepsake.services.utils import flush_or_fail

logger = logging.getLogger(__name__)

TARGET_EXTENSION = "mp4"
CHUNK_SIZE = 1024 * 256


def select_encoding(formats: list[dict[str, Any]]) -> dict[str, Any] | None:
    """
    Pick the best encoding carrying both audio and video in the target container.

    Highest resolution wins; bitrate breaks ties. Returns None when no candidate
    qualifies.
    """
    candidates = [
        fmt for fmt in formats
        if fmt.get("ext") == TARGET_EXTENSION
        and fmt.get("url")
        and fmt.get("acodec") not in (None, "none")
        and fmt.get("vcodec") not in (None, "none")
    ]
    return max(
        candidates,
        key=lambda fmt: (fmt.get("height") or 0, fmt.get("tbr") or 0),
        default=None,
    )


def media_filename(title: str, video_id: str = "") -> str:
    """
    File name for a video: its sanitized title, the extractor id in brackets when
    known, and the target extension.

    The id keeps different videos that share a title from overwriting each other.
    """
    stem = sanitize_filename(title or "video").strip() or "video"
    video_id = sanitize_filename(video_id).strip()
    if video_id:
        stem = f"{stem} [{video_id}]"
    return f"{stem}.{TARGET_EXTENSION}"


def render_player(filename: str, media_url_path: str) -> str:
    """Embeddable HTML5 player fragment for a stored media file."""
    src = f"{media_url_path.rstrip('/')}/{quote(filename)}"
    return (
        '<video controls preload="metadata" style="max-width: 100%;">'
        f'<source src="{html.escape(src)}" type="video/{TARGET_EXTENSION}">'
        "</video>"
    )


def resolve_video(url: str, timeout: float) -> dict[str, Any]:  # noqa: ASYNC109
    """Resolve video info (title and available encodings) without downloading."""
    options = {
        "quiet": True,
        "no_warnings": True,
        "noplaylist": True,
        "skip_download": True,
        "socket_timeout": timeout,
    }
    with yt_dlp.YoutubeDL(options) as ydl:
        info = ydl.extract_info(url, download=False)
    if info is None:
        raise DownloadError(f"yt_dlp returned no info for {url}")
    return info


async def stream_to_file(
    url: str,
    target: Path,
    headers: dict[str, str] | None = None,
    timeout: float = 30.0,  # noqa: ASYNC109
) -> None:
    """
    Stream a remote file to ``target``.

    Data is written to a uniquely named partial file first and renamed on success,
    so concurrent downloads never observe each other's half-written output.
    """
    partial = target.with_name(f".{target.name}.{uuid4().hex}.part")
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers=headers or {},
        ) as client, client.stream("GET", url) as response:
            response.raise_for_status()
            with partial.open("wb") as fh:
                async for chunk in response.aiter_bytes(CHUNK_SIZE):
                    fh.write(chunk)
        partial.replace(target)
    finally:
        partial.unlink(missing_ok=True)


async def download_video(url: str, media_dir: Path, timeout: float) -> str | None:  # noqa: ASYNC109
    """
    Download the best combined mp4 encoding of a video URL into ``media_dir``.

    Returns:
        The file name relative to ``media_dir``, or None when the video cannot be
        resolved or offers no acceptable encoding.

    Raises:
        DownloadFailedError: If an encoding was selected but the transfer failed.
    """
    try:
        # yt-dlp only bounds individual socket reads; bound the whole extraction
        info = await asyncio.wait_for(asyncio.to_thread(resolve_video, url, timeout), timeout)
    except DownloadError as e:
        logger.warning("Could not resolve video %s: %s", url, e)
        return None
    except TimeoutError:
        logger.warning("Could not resolve video %s: timed out after %ss", url, timeout)
        return None

    encoding = select_encoding(info.get("formats") or [])
    if encoding is None:
        logger.warning("No %s encoding with audio found for %s", TARGET_EXTENSION, url)
        return None

    filename = media_filename(info.get("title") or "", str(info.get("id") or ""))
    logger.info("Downloading video %s as %s", url, filename)

    try:
        # exist_ok tolerates a concurrent download creating it first
        media_dir.mkdir(parents=True, exist_ok=True)
        await stream_to_file(
            encoding["url"],
            media_dir / filename,
            headers=encoding.get("http_headers"),
            timeout=timeout,
        )
    except (httpx.HTTPError, OSError) as e:
        logger.error("Video download failed for %s: %s", url, e)
        raise DownloadFailedError(url, str(e)) from e

    return filename


async def attach_video(
    db: AsyncSession,
    bookmark: Bookmark,
    filename: str,
    media_url_path: str,
) -> Video:
    """
    Mark a bookmark as a downloaded video and record its media file.

    The bookmark's HTML is replaced by a player fragment, discarding any article
    markup. The Video row is created or replaced by bookmark id, so repeated calls
    leave exactly one row per bookmark.

    Note: Does not commit. Caller handles commit.
    """
    bookmark.is_video = True
    bookmark.downloaded = True
    bookmark.html = render_player(filename, media_url_path)

    result = await db.execute(select(Video).where(Video.bookmark_id == bookmark.id))
    video = result.scalar_one_or_none()
    if video is None:
        video = Video(bookmark_id=bookmark.id, filename=filename, downloaded=True)
        db.add(video)
    else:
        video.filename = filename
        video.downloaded = True

    await flush_or_fail(db, "video attachment")
    return video
