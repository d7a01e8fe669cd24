"""
Video Metadata Enricher

Detects a video-sharing link in free text, fetches lightweight public
metadata (title, channel) through an oEmbed proxy and appends it to the
text as a clearly delimited context block. No API key is needed.

Enrichment is best effort: a missing link, an unrecognized video id or
a failed lookup leaves the text unchanged.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from pipeline.errors import MetadataLookupError

logger = logging.getLogger("shadow_scan.intel.video_metadata")

DEFAULT_OEMBED_URL = "https://noembed.com/embed"

_VIDEO_ID_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")
_URL_RE = re.compile(r"(https?://[^\s]+)")
_VIDEO_HOST_HINTS = ("youtube.com/", "youtu.be/")

CONTEXT_NOTE = (
    "(Note: Analyze this metadata for common video scams like 'Crypto Doubling', "
    "'Fake Giveaways', 'Malicious Tutorials', or 'Free Robux/Skins' generators.)"
)


@dataclass
class VideoMetadata:
    """Public metadata returned by the oEmbed proxy"""
    title: str
    author_name: str
    author_url: str
    thumbnail_url: str = ""


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-character video id of a video URL, or None."""
    match = _VIDEO_ID_RE.match(url or "")
    if match and len(match.group(2)) == 11:
        return match.group(2)
    return None


def find_video_url(text: str) -> Optional[str]:
    """Return the first http(s) URL in text, if the text mentions a video host."""
    if not text or not any(hint in text for hint in _VIDEO_HOST_HINTS):
        return None
    match = _URL_RE.search(text)
    return match.group(1) if match else None


def format_video_context(meta: VideoMetadata) -> str:
    return (
        "[DETECTED_YOUTUBE_CONTEXT]\n"
        f"Video Title: {meta.title}\n"
        f"Channel Name: {meta.author_name}\n"
        f"Channel URL: {meta.author_url}\n"
        f"{CONTEXT_NOTE}"
    )


class VideoMetadataEnricher:
    """
    Appends public video metadata to analysis text.

    The HTTP call is a blocking requests.get, run in a worker thread so the
    event loop is free while it waits.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_OEMBED_URL,
        timeout_s: float = 10.0,
        http_get: Optional[Callable[..., requests.Response]] = None,
    ):
        self.endpoint = endpoint
        self.timeout_s = timeout_s
        self._http_get = http_get or requests.get

    @staticmethod
    def mentions_video_link(text: str) -> bool:
        return bool(text) and any(hint in text for hint in _VIDEO_HOST_HINTS)

    def _fetch(self, url: str) -> VideoMetadata:
        """Blocking oEmbed lookup."""
        try:
            response = self._http_get(self.endpoint, params={"url": url}, timeout=self.timeout_s)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise MetadataLookupError(f"oEmbed lookup failed for {url}: {e}") from e

        if not isinstance(data, dict):
            raise MetadataLookupError(f"oEmbed lookup returned unexpected payload for {url}")
        if data.get("error"):
            raise MetadataLookupError(f"oEmbed lookup rejected {url}: {data['error']}")

        return VideoMetadata(
            title=data.get("title") or "Unknown",
            author_name=data.get("author_name") or "Unknown",
            author_url=data.get("author_url") or "Unknown",
            thumbnail_url=data.get("thumbnail_url") or "",
        )

    async def lookup(self, url: str) -> VideoMetadata:
        """Fetch metadata for a video URL.

        Raises:
            MetadataLookupError: the URL has no valid video id or the lookup failed
        """
        if extract_video_id(url) is None:
            raise MetadataLookupError(f"No video id found in {url}")
        return await asyncio.to_thread(self._fetch, url)

    async def enrich(self, text: str) -> str:
        """Return text with a video context block appended when possible. Never raises."""
        url = find_video_url(text)
        if url is None or extract_video_id(url) is None:
            return text

        try:
            meta = await self.lookup(url)
        except MetadataLookupError as e:
            logger.warning("Skipping video enrichment: %s", e)
            return text

        logger.info("Enriched analysis text with video metadata: %r by %r", meta.title, meta.author_name)
        return f"{text}\n\n{format_video_context(meta)}"
