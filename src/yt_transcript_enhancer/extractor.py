"""
extractor.py — Transcript acquisition and plain-text helpers.

This is the entry point for getting a transcript out of YouTube:

    1. Parsing YouTube URLs / IDs   → parse_video_id()
    2. Tiered acquisition           → TranscriptAcquisition.acquire()
    3. Caller-facing wrappers       → acquire_transcript(), acquire_transcript_lines()
    4. Formatting                   → format_text(), format_json(), format_doc(),
                                      format_timestamped_lines()
    5. Inspection                   → transcript_stats(), validate_transcript_quality(),
                                      search_transcript()

Acquisition tiers run strictly in order: the internal API first, then
youtube-transcript-api.  A tier only runs when the previous one raised or
came back empty.  Results from two tiers are never merged.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, Protocol

import httpx

from yt_transcript_enhancer.chunking import estimate_tokens
from yt_transcript_enhancer.errors import (
    AppError,
    TranscriptUnavailableError,
    VideoNotFoundError,
)
from yt_transcript_enhancer.fetchers import ApiTranscriptFetcher, LibraryTranscriptFetcher
from yt_transcript_enhancer.models import TranscriptResult, TranscriptSegment
from yt_transcript_enhancer.parser import segments_to_text

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Each pattern captures the 11-character video ID in group "id":
#   - https://www.youtube.com/watch?v=VIDEO_ID
#   - https://youtu.be/VIDEO_ID
#   - https://www.youtube.com/embed|shorts|v/VIDEO_ID
#   - https://www.youtube-nocookie.com/embed/VIDEO_ID
_URL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:https?://)?(?:www\.|m\.)?youtube\.com/watch\?.*v=(?P<id>[A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?youtu\.be/(?P<id>[A-Za-z0-9_-]{11})"),
    re.compile(
        r"(?:https?://)?(?:www\.)?youtube(?:-nocookie)?\.com/(?:embed|shorts|v|live)/"
        r"(?P<id>[A-Za-z0-9_-]{11})"
    ),
]

# A bare video ID is exactly 11 characters from the base64url alphabet.
_BARE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")

# Paragraph interval (seconds) for the "doc" format.
_DOC_PARAGRAPH_INTERVAL_SECS = 30

_READING_WPM = 200
_ENGLISH_MARKERS = frozenset({"the", "and", "to", "of", "a", "in", "is", "it", "you", "that"})


# ---------------------------------------------------------------------------
# URL / ID parsing
# ---------------------------------------------------------------------------

def parse_video_id(url_or_id: str) -> str:
    """
    Extract a YouTube video ID from a URL string, or validate a raw 11-char ID.

    Args:
        url_or_id: A YouTube URL or a raw video ID.

    Returns:
        The 11-character video ID.

    Raises:
        VideoNotFoundError: If the string doesn't match any known format.
    """
    url_or_id = url_or_id.strip()

    for pattern in _URL_PATTERNS:
        match = pattern.search(url_or_id)
        if match:
            return match.group("id")

    if _BARE_ID_PATTERN.match(url_or_id):
        return url_or_id

    raise VideoNotFoundError(url_or_id)


# ---------------------------------------------------------------------------
# Tiered acquisition
# ---------------------------------------------------------------------------

class TranscriptFetcher(Protocol):
    name: str

    def fetch(self, video_id: str) -> list[TranscriptSegment]: ...


class TranscriptAcquisition:
    """
    Run the transcript fetchers in order until one produces segments.

    Args:
        fetchers: Tiers in priority order.  Defaults to the internal-API
                  fetcher followed by the youtube-transcript-api fetcher.
        client:   Shared httpx.Client for the default internal-API fetcher.
    """

    def __init__(
        self,
        fetchers: list[TranscriptFetcher] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        if fetchers is None:
            fetchers = [ApiTranscriptFetcher(client=client), LibraryTranscriptFetcher()]
        self.fetchers = fetchers

    def acquire(self, url_or_id: str) -> TranscriptResult:
        """
        Fetch a transcript for a URL or video ID.

        Returns:
            TranscriptResult with the joined text and the winning tier's
            segments.

        Raises:
            VideoNotFoundError:         The input isn't a YouTube reference,
                                        or the library reports the video
                                        missing after tier 1 also failed.
            TranscriptUnavailableError: Every tier failed or came back empty.
        """
        video_id = parse_video_id(url_or_id)
        not_found: VideoNotFoundError | None = None

        for fetcher in self.fetchers:
            try:
                segments = fetcher.fetch(video_id)
            except VideoNotFoundError as exc:
                not_found = exc
                logger.warning("Tier %s: video %s not found", fetcher.name, video_id)
                continue
            except (AppError, httpx.HTTPError) as exc:
                logger.warning("Tier %s failed for %s: %s", fetcher.name, video_id, exc)
                continue
            except Exception as exc:
                # Upstream parsers raise their own types on malformed payloads.
                logger.warning(
                    "Tier %s failed unexpectedly for %s: %s", fetcher.name, video_id, exc, exc_info=True,
                )
                continue

            if segments:
                logger.info(
                    "Tier %s returned %d segments for %s", fetcher.name, len(segments), video_id,
                )
                return TranscriptResult(
                    text=segments_to_text(segments),
                    segments=segments,
                    video_id=video_id,
                    source=fetcher.name,
                )
            logger.warning("Tier %s returned no segments for %s", fetcher.name, video_id)

        if not_found is not None:
            raise not_found
        raise TranscriptUnavailableError(video_id)


# ---------------------------------------------------------------------------
# Caller-facing wrappers
# ---------------------------------------------------------------------------

def acquire_transcript(url: str, acquisition: TranscriptAcquisition | None = None) -> str:
    """
    Plain-text transcript for `url`.

    Never raises for acquisition failures: errors come back as a descriptive
    string starting with "Error:".
    """
    acquisition = acquisition or TranscriptAcquisition()
    try:
        result = acquisition.acquire(url)
    except AppError as exc:
        return f"Error: {exc.message}"
    if not result.text:
        return "Error: Transcript appears to be empty for this video."
    return result.text


def acquire_transcript_lines(
    url: str,
    acquisition: TranscriptAcquisition | None = None,
) -> list[TranscriptSegment]:
    """
    Timed transcript segments for `url`.

    Raises:
        AppError: (VideoNotFoundError / TranscriptUnavailableError) on failure.
    """
    acquisition = acquisition or TranscriptAcquisition()
    return acquisition.acquire(url).segments


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def _seconds_to_mmss(seconds: float) -> str:
    """MM:SS for a timestamp in seconds; minutes don't wrap (3661 → "61:01")."""
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"


def _format_clock(seconds: float) -> str:
    """M:SS, or H:MM:SS past the hour."""
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    mins, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def format_text(segments: Iterable[TranscriptSegment]) -> str:
    """One line per segment, no timestamps."""
    return "\n".join(segment.text for segment in segments)


def format_json(segments: list[TranscriptSegment], video_id: str) -> dict[str, Any]:
    """
    JSON-serialisable dict with the video id and every segment.

    Returns:
        {"video_id", "segment_count", "segments": [{"text", "offset_ms", "duration_ms"}]}
    """
    return {
        "video_id": video_id,
        "segment_count": len(segments),
        "segments": [segment.to_dict() for segment in segments],
    }


def format_doc(segments: Iterable[TranscriptSegment]) -> str:
    """
    Readable markdown: segments flow into paragraphs, a new paragraph every
    ~30 seconds, each prefixed with a bold **[MM:SS]** marker.

    Returns an empty string for an empty transcript.
    """
    paragraphs: list[str] = []
    current_texts: list[str] = []
    paragraph_start: float | None = None

    for segment in segments:
        if paragraph_start is None:
            paragraph_start = segment.start
            current_texts.append(segment.text)
        elif segment.start - paragraph_start >= _DOC_PARAGRAPH_INTERVAL_SECS:
            paragraphs.append(
                f"**[{_seconds_to_mmss(paragraph_start)}]** {' '.join(current_texts)}"
            )
            paragraph_start = segment.start
            current_texts = [segment.text]
        else:
            current_texts.append(segment.text)

    if current_texts and paragraph_start is not None:
        paragraphs.append(f"**[{_seconds_to_mmss(paragraph_start)}]** {' '.join(current_texts)}")

    return "\n\n".join(paragraphs)


def format_timestamped_lines(
    segments: Iterable[TranscriptSegment],
    include_timestamps: bool = True,
) -> str:
    """One `[M:SS] text` line per segment."""
    lines = []
    for segment in segments:
        prefix = f"[{_format_clock(segment.start)}] " if include_timestamps else ""
        lines.append(f"{prefix}{segment.text}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Inspection helpers
# ---------------------------------------------------------------------------

def detect_language(text: str) -> str:
    """Very rough guess: "en" when common English words make up >10% of words."""
    words = text.lower().split()
    if not words:
        return "unknown"
    hits = sum(1 for word in words if word in _ENGLISH_MARKERS)
    return "en" if hits > len(words) * 0.1 else "unknown"


def transcript_stats(text: str) -> dict[str, Any]:
    """Word/character counts, estimated tokens, reading minutes and language."""
    words = text.split()
    return {
        "word_count": len(words),
        "character_count": len(text),
        "estimated_tokens": estimate_tokens(text),
        "estimated_reading_time": math.ceil(len(words) / _READING_WPM),
        "language": detect_language(text),
    }


def validate_transcript_quality(text: str) -> dict[str, Any]:
    """
    Heuristic quality check for raw caption text.

    Flags: too short (<100 chars), repeated patterns, almost no sentence
    punctuation, almost no capitalised words.  Each issue lowers quality one
    step (high → medium → low).

    Returns:
        {"is_valid": bool, "quality": "high"|"medium"|"low", "issues": [str]}
    """
    issues: list[str] = []
    quality = "high"

    def downgrade(current: str) -> str:
        return "medium" if current == "high" else "low"

    if len(text) < 100:
        issues.append("Transcript is too short")
        quality = "low"

    if re.search(r"(.{10,})\1{3,}", text):
        issues.append("Contains repeated patterns")
        quality = downgrade(quality)

    if text and len(re.findall(r"[.!?]", text)) / len(text) < 0.01:
        issues.append("Lacks proper punctuation")
        quality = downgrade(quality)

    capitalised = re.findall(r"[A-Z][a-z]+", text)
    if len(capitalised) < len(text.split(" ")) * 0.1:
        issues.append("Lacks proper capitalization")
        quality = downgrade(quality)

    return {
        "is_valid": not issues or quality != "low",
        "quality": quality,
        "issues": issues,
    }


def search_transcript(
    text: str,
    term: str,
    case_sensitive: bool = False,
    context_chars: int = 50,
) -> list[dict[str, Any]]:
    """
    Find literal occurrences of `term` with surrounding context.

    Returns:
        [{"match", "context", "position"}] in order of appearance.
    """
    if not term:
        return []
    flags = 0 if case_sensitive else re.IGNORECASE
    results = []
    for match in re.finditer(re.escape(term), text, flags):
        start = max(0, match.start() - context_chars)
        end = min(len(text), match.end() + context_chars)
        results.append({
            "match": match.group(0),
            "context": text[start:end],
            "position": match.start(),
        })
    return results
