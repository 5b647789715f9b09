"""
fetchers.py — The two transcript sources behind acquisition.

    ApiTranscriptFetcher      Scrapes the watch page for the transcript
                              continuation token and calls YouTube's internal
                              `get_transcript` endpoint (tier 1).
    LibraryTranscriptFetcher  Uses `youtube-transcript-api`, trying a fixed
                              list of language codes and then no language at
                              all (tier 2).

Both return a list of TranscriptSegment and raise AppError subclasses on
failure; TranscriptAcquisition in extractor.py decides what to do next.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
import requests
import youtube_transcript_api as yta_errors  # exception classes live here
from youtube_transcript_api import YouTubeTranscriptApi

from yt_transcript_enhancer.config import DEFAULT_HTTP_TIMEOUT, USER_AGENT
from yt_transcript_enhancer.errors import (
    ErrorContext,
    NetworkError,
    NotFoundError,
    TranscriptUnavailableError,
    VideoNotFoundError,
    error_from_status,
    error_from_transport,
)
from yt_transcript_enhancer.models import TranscriptSegment
from yt_transcript_enhancer.parser import parse_page, parse_transcript_response

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
TRANSCRIPT_ENDPOINT = "https://www.youtube.com/youtubei/v1/get_transcript?prettyPrint=false"
YOUTUBE_ORIGIN = "https://www.youtube.com"

CLIENT_NAME = "WEB"
CLIENT_VERSION = "2.20250610.04.00"

# Language hints tried in order by the library tier, before a final
# attempt without any hint.
LANGUAGE_HINTS: tuple[str, ...] = ("en", "en-US", "en-GB", "auto")


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


def build_transcript_request(
    video_id: str,
    params: str,
    lang: str = "en",
    country: str = "US",
) -> dict[str, Any]:
    """JSON body for the internal transcript endpoint."""
    return {
        "context": {
            "client": {
                "clientName": CLIENT_NAME,
                "clientVersion": CLIENT_VERSION,
                "hl": lang,
                "gl": country,
            },
        },
        "externalVideoId": video_id,
        "params": params,
    }


# ---------------------------------------------------------------------------
# Tier 1 — internal API
# ---------------------------------------------------------------------------

class ApiTranscriptFetcher:
    """
    Fetch a transcript the way the YouTube web client does.

    Two requests: GET the watch page (to read the transcript panel's
    continuation params out of `ytInitialData`), then POST those params to
    the internal transcript endpoint.

    Args:
        client:  httpx.Client to use.  A private client with `timeout` is
                 created (and closed by `close()`) when omitted.
        timeout: Seconds per request for the private client.
        lang:    `hl` value sent in the client context.
        country: `gl` value sent in the client context.
    """

    name = "youtube-internal-api"

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        lang: str = "en",
        country: str = "US",
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.lang = lang
        self.country = country

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _request(self, method: str, url: str, context: ErrorContext, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise error_from_transport(exc, context) from exc
        if response.status_code == 404:
            raise NotFoundError(f"Not found: {url}", context=context)
        if response.status_code >= 400:
            raise error_from_status(response.status_code, response.text, context)
        return response

    def fetch(self, video_id: str) -> list[TranscriptSegment]:
        """
        Fetch transcript segments for `video_id`.

        Returns:
            Parsed segments (possibly empty if the response held none).

        Raises:
            NotFoundError:  The page exposes no transcript panel.
            ParseError:     The page or response JSON could not be decoded.
            NetworkError:   Connectivity failure or timeout (code TIMEOUT).
            AppError:       Other HTTP failures, categorized by status.
        """
        context = ErrorContext(operation="fetch_transcript_api", details={"video_id": video_id})
        url = watch_url(video_id)

        page = self._request(
            "GET", url, context,
            headers={"User-Agent": USER_AGENT, "Accept-Language": "en-US,en;q=0.9"},
        )
        info = parse_page(page.text)
        logger.debug("Found transcript params for %s (title=%r)", video_id, info.title)

        response = self._request(
            "POST",
            TRANSCRIPT_ENDPOINT,
            context,
            json=build_transcript_request(
                info.video_id or video_id, info.params, self.lang, self.country,
            ),
            headers={
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
                "Accept": "*/*",
                "Accept-Language": "en-US,en;q=0.9",
                "Origin": YOUTUBE_ORIGIN,
                "Referer": url,
            },
        )
        return parse_transcript_response(response.text)


# ---------------------------------------------------------------------------
# Tier 2 — youtube-transcript-api
# ---------------------------------------------------------------------------

def _snippets_to_segments(transcript: Any) -> list[TranscriptSegment]:
    """
    Convert library snippets (seconds, floats) into millisecond segments.

    Accepts FetchedTranscript snippet objects or plain dicts with
    "text" / "start" / "duration" keys.
    """
    segments: list[TranscriptSegment] = []
    for snippet in transcript:
        if isinstance(snippet, dict):
            text, start, duration = snippet["text"], snippet["start"], snippet["duration"]
        else:
            text, start, duration = snippet.text, snippet.start, snippet.duration
        segments.append(
            TranscriptSegment(
                text=text,
                offset_ms=int(round(float(start) * 1000)),
                duration_ms=max(0, int(round(float(duration) * 1000))),
            )
        )
    return segments


class TimeoutSession(requests.Session):
    """requests.Session that applies `timeout` to every request lacking one."""

    def __init__(self, timeout: float = DEFAULT_HTTP_TIMEOUT) -> None:
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, url, **kwargs)


class LibraryTranscriptFetcher:
    """
    Fetch a transcript through `youtube-transcript-api`.

    Each hint in `languages` is tried in order; the first non-empty result
    wins.  If all hints fail, one last attempt takes whatever transcript
    the video lists first.

    Args:
        languages:   Language codes to try, in priority order.
        timeout:     Per-request timeout for the library's HTTP session.
        api_factory: Builds the YouTubeTranscriptApi instance (tests swap
                     this for a mock).  Defaults to one backed by a
                     TimeoutSession.
    """

    name = "youtube-transcript-api"

    def __init__(
        self,
        languages: tuple[str, ...] = LANGUAGE_HINTS,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        api_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.languages = tuple(languages)
        self.timeout = timeout
        self.api_factory = api_factory or self._default_api

    def _default_api(self) -> YouTubeTranscriptApi:
        return YouTubeTranscriptApi(http_client=TimeoutSession(self.timeout))

    def _fetch_language(self, api: Any, video_id: str, language: str) -> list[TranscriptSegment]:
        return _snippets_to_segments(api.fetch(video_id, languages=[language]))

    def _fetch_any(self, api: Any, video_id: str) -> list[TranscriptSegment]:
        for transcript in api.list(video_id):
            return _snippets_to_segments(transcript.fetch())
        return []

    def fetch(self, video_id: str) -> list[TranscriptSegment]:
        """
        Fetch transcript segments for `video_id`.

        Raises:
            VideoNotFoundError:          The video doesn't exist or is private.
            TranscriptUnavailableError:  No attempt produced any segments.
            NetworkError:                A request hit `timeout` (code TIMEOUT).
        """
        api = self.api_factory()
        attempts: list[tuple[str, Callable[[], list[TranscriptSegment]]]] = [
            (lang, lambda lang=lang: self._fetch_language(api, video_id, lang))
            for lang in self.languages
        ]
        attempts.append(("<any>", lambda: self._fetch_any(api, video_id)))

        last_reason = ""
        for label, attempt in attempts:
            try:
                segments = attempt()
            except (yta_errors.InvalidVideoId, yta_errors.VideoUnavailable) as exc:
                raise VideoNotFoundError(video_id) from exc
            except yta_errors.TranscriptsDisabled as exc:
                raise TranscriptUnavailableError(video_id, reason="captions are disabled") from exc
            except requests.Timeout as exc:
                context = ErrorContext(operation="library_fetch", details={"video_id": video_id})
                raise NetworkError(f"Request timed out: {exc}", code="TIMEOUT", context=context) from exc
            except (yta_errors.CouldNotRetrieveTranscript, OSError) as exc:
                # OSError covers the library's requests-level network failures.
                last_reason = type(exc).__name__
                logger.debug("Library fetch for %s [%s] failed: %s", video_id, label, exc)
                continue
            if segments:
                logger.info("Library transcript for %s found with language %s", video_id, label)
                return segments
            logger.debug("Library fetch for %s [%s] returned no segments", video_id, label)

        raise TranscriptUnavailableError(video_id, reason=last_reason or "no segments returned")


__all__ = [
    "ApiTranscriptFetcher",
    "LibraryTranscriptFetcher",
    "LANGUAGE_HINTS",
    "TimeoutSession",
    "build_transcript_request",
    "watch_url",
]
