"""YouTube link recognition and title lookup."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import httpx
from pydantic import BaseModel

from ..core.errors import UpstreamUnavailable

DEFAULT_YT = "https://youtu.be/"
OEMBED_URL = "https://www.youtube.com/oembed"

_WATCH_HOSTS = {"youtube.com", "www.youtube.com", "music.youtube.com"}
_SHORT_HOSTS = {"youtu.be"}


class VideoMetadata(BaseModel):
    ytid: str
    title: str


def extract_video_id(url: str) -> str | None:
    """Return the video id of a YouTube link, ``None`` for anything else.

    ``youtube.com/watch?v=<id>`` (including ``www.`` and ``music.``) and
    ``youtu.be/<id>`` are recognised.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme not in {"http", "https"}:
        return None
    host = (parts.hostname or "").lower()
    if host in _WATCH_HOSTS:
        values = parse_qs(parts.query).get("v")
        return values[0] if values and values[0] else None
    if host in _SHORT_HOSTS:
        segment = parts.path.lstrip("/").split("/", 1)[0]
        return segment or None
    return None


def escape_title(title: str) -> str:
    """Follow every ``/`` with a space so titles never read as commands."""
    return title.replace("/", "/ ")


def video_url(ytid: str) -> str:
    return f"{DEFAULT_YT}{ytid}"


async def fetch_metadata(ytid: str, client: httpx.AsyncClient | None = None) -> VideoMetadata:
    """Look up the title of ``ytid`` through the public oEmbed endpoint."""
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10.0)
    try:
        response = await client.get(OEMBED_URL, params={"url": video_url(ytid), "format": "json"})
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise UpstreamUnavailable(f"Metadata lookup for {ytid} failed: {exc}") from exc
    finally:
        if owns_client:
            await client.aclose()
    return VideoMetadata(ytid=ytid, title=escape_title(str(data.get("title", ytid))))
