"""
metadata.py — Best-effort video metadata for prompt context.

Transcripts alone don't tell the LLM what the video is about or how long it
runs, so the enhancer asks for title, channel, description and duration.
Sources are tried in order:

    1. YouTube Data API v3 (only when an API key is configured).
    2. oEmbed for title / channel, plus the watch page for the description
       (`shortDescription` → meta/og description → JSON-LD) and duration
       (`lengthSeconds`).

Nothing here raises for upstream failures: whatever can't be resolved is
left as a placeholder ("Unknown Title", "Unknown Channel", "", None).
"""

from __future__ import annotations

import html
import json
import logging
import re
from typing import Any

import httpx

from yt_transcript_enhancer.config import DEFAULT_HTTP_TIMEOUT, USER_AGENT
from yt_transcript_enhancer.errors import AppError, ErrorContext, error_from_status, error_from_transport
from yt_transcript_enhancer.extractor import parse_video_id
from yt_transcript_enhancer.fetchers import watch_url
from yt_transcript_enhancer.models import UNKNOWN_CHANNEL, UNKNOWN_TITLE, VideoMetadata
from yt_transcript_enhancer.parser import extract_embedded_json

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DATA_API_URL = "https://www.googleapis.com/youtube/v3/videos"
OEMBED_URL = "https://www.youtube.com/oembed"

_PLAYER_RESPONSE_MARKER = "var ytInitialPlayerResponse = "

_ISO_DURATION = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")

_META_DESCRIPTION = re.compile(
    r'<meta\s+(?:name="description"|property="og:description")\s+content="([^"]*)"',
    re.IGNORECASE,
)
_JSON_LD = re.compile(
    r'<script[^>]+type="application/ld\+json"[^>]*>(.*?)</script>',
    re.IGNORECASE | re.DOTALL,
)


# ---------------------------------------------------------------------------
# Duration parsing
# ---------------------------------------------------------------------------

def parse_iso_duration(value: str | None) -> int | None:
    """
    Convert an ISO-8601 duration like "PT1H2M3S" into seconds.

    Returns None for anything that isn't of the PT#H#M#S form, including a
    bare "PT" with no components.
    """
    if not value:
        return None
    match = _ISO_DURATION.match(value.strip())
    if not match or not any(match.groups()):
        return None
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


# ---------------------------------------------------------------------------
# HTML description fallbacks
# ---------------------------------------------------------------------------

def _player_response(page_html: str) -> dict | None:
    try:
        return extract_embedded_json(page_html, _PLAYER_RESPONSE_MARKER)
    except AppError:
        return None


def _description_from_player(player: dict | None) -> str:
    if not player:
        return ""
    details = player.get("videoDetails")
    if isinstance(details, dict):
        return str(details.get("shortDescription") or "")
    return ""


def _description_from_meta(page_html: str) -> str:
    match = _META_DESCRIPTION.search(page_html)
    return html.unescape(match.group(1)) if match else ""


def _description_from_json_ld(page_html: str) -> str:
    for block in _JSON_LD.findall(page_html):
        try:
            data = json.loads(block)
        except ValueError:
            continue
        items = data if isinstance(data, list) else [data]
        for item in items:
            if isinstance(item, dict) and item.get("description"):
                return str(item["description"])
    return ""


def description_from_page(page_html: str) -> str:
    """
    Pull the video description out of a watch page.

    Tries `ytInitialPlayerResponse.videoDetails.shortDescription`, then the
    `description` / `og:description` meta tags, then any JSON-LD block.
    Returns "" when none of them has it.
    """
    return (
        _description_from_player(_player_response(page_html))
        or _description_from_meta(page_html)
        or _description_from_json_ld(page_html)
    )


def duration_from_page(page_html: str) -> int | None:
    """`videoDetails.lengthSeconds` from the embedded player response, if any."""
    player = _player_response(page_html)
    if not player:
        return None
    details = player.get("videoDetails")
    if not isinstance(details, dict):
        return None
    try:
        return int(details.get("lengthSeconds"))
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class MetadataResolver:
    """
    Resolves VideoMetadata from the Data API, oEmbed and the watch page.

    Args:
        client:  httpx.Client to use; a private one is created when omitted.
        timeout: Per-request timeout for the private client.
    """

    def __init__(self, client: httpx.Client | None = None, timeout: float = DEFAULT_HTTP_TIMEOUT) -> None:
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _get(self, url: str, context: ErrorContext, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.get(url, **kwargs)
        except httpx.TransportError as exc:
            raise error_from_transport(exc, context) from exc
        if response.status_code >= 400:
            raise error_from_status(response.status_code, response.text, context)
        return response

    def from_data_api(self, video_id: str, api_key: str) -> VideoMetadata | None:
        """
        Query the Data API.  Returns None when the video isn't listed.

        Raises:
            AppError: On HTTP or transport failure.
        """
        context = ErrorContext(operation="metadata_data_api", details={"video_id": video_id})
        response = self._get(
            DATA_API_URL,
            context,
            params={"part": "snippet,contentDetails", "id": video_id, "key": api_key},
        )
        try:
            data = response.json()
        except ValueError:
            return None
        items = data.get("items") if isinstance(data, dict) else None
        if not items:
            return None

        video = items[0]
        snippet = video.get("snippet") or {}
        content = video.get("contentDetails") or {}
        return VideoMetadata(
            title=snippet.get("title") or UNKNOWN_TITLE,
            channel=snippet.get("channelTitle") or UNKNOWN_CHANNEL,
            description=snippet.get("description") or "",
            duration_seconds=parse_iso_duration(content.get("duration")),
        )

    def from_oembed(self, video_id: str) -> tuple[str, str]:
        """(title, channel) from oEmbed, with placeholders for anything missing."""
        context = ErrorContext(operation="metadata_oembed", details={"video_id": video_id})
        try:
            data = self._get(
                OEMBED_URL, context, params={"url": watch_url(video_id), "format": "json"},
            ).json()
        except (AppError, ValueError) as exc:
            logger.warning("oEmbed lookup failed for %s: %s", video_id, exc)
            return UNKNOWN_TITLE, UNKNOWN_CHANNEL
        return data.get("title") or UNKNOWN_TITLE, data.get("author_name") or UNKNOWN_CHANNEL

    def from_page(self, video_id: str) -> tuple[str, int | None]:
        """(description, duration) scraped from the watch page."""
        context = ErrorContext(operation="metadata_page", details={"video_id": video_id})
        try:
            page = self._get(
                watch_url(video_id), context,
                headers={"User-Agent": USER_AGENT, "Accept-Language": "en-US,en;q=0.9"},
            ).text
        except AppError as exc:
            logger.warning("Watch page fetch failed for %s: %s", video_id, exc)
            return "", None
        return description_from_page(page), duration_from_page(page)

    def resolve(self, url_or_id: str, api_key: str | None = None) -> VideoMetadata:
        """
        Resolve metadata for a URL or video ID.

        Never raises for network or upstream failures; an unparsable video
        reference yields placeholder metadata too.
        """
        try:
            video_id = parse_video_id(url_or_id)
        except AppError as exc:
            logger.warning("Cannot resolve metadata: %s", exc)
            return VideoMetadata()

        if api_key:
            try:
                metadata = self.from_data_api(video_id, api_key)
            except AppError as exc:
                logger.warning("Data API lookup failed for %s: %s", video_id, exc)
                metadata = None
            if metadata is not None:
                logger.debug("Metadata for %s resolved via Data API", video_id)
                return metadata

        title, channel = self.from_oembed(video_id)
        description, duration = self.from_page(video_id)
        return VideoMetadata(
            title=title,
            channel=channel,
            description=description,
            duration_seconds=duration,
        )


def resolve_metadata(
    url: str,
    api_key: str | None = None,
    client: httpx.Client | None = None,
) -> VideoMetadata:
    """Caller-facing convenience wrapper around MetadataResolver.resolve()."""
    resolver = MetadataResolver(client=client)
    try:
        return resolver.resolve(url, api_key=api_key)
    finally:
        resolver.close()
