"""
parser.py — Extract transcript segments and page data from YouTube payloads.

YouTube's internal JSON changes shape between releases without notice, so
segment lookup tries three strategies in order:

    1. The primary known path (engagement-panel update action).
    2. One alternate known path (watch-next results).
    3. A bounded-depth walk over the whole JSON tree looking for any key
       containing "transcript" that holds a list of segment objects.

Numeric fields are coerced leniently: a bad start time becomes 0 and a bad
end time becomes start + 1000 ms.  Only an unparsable outer payload raises.
"""

from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass
from typing import Any

from yt_transcript_enhancer.errors import NotFoundError, ParseError
from yt_transcript_enhancer.models import TranscriptSegment

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Marker that precedes the embedded page state blob.
_INITIAL_DATA_MARKER = "var ytInitialData = "

_TITLE_PATTERN = re.compile(r'<meta\s+name="title"\s+content="([^"]*)">')
_CANONICAL_PATTERN = re.compile(r'<link\s+rel="canonical"\s+href="([^"]*)">')

# How deep the fallback tree walk may descend.
DEFAULT_SEARCH_DEPTH = 12

# Default cue length when the end time can't be parsed.
_FALLBACK_DURATION_MS = 1000

_SEGMENT_LIST_TAIL = (
    "transcriptRenderer", "content", "transcriptSearchPanelRenderer",
    "body", "transcriptSegmentListRenderer", "initialSegments",
)


@dataclass(frozen=True)
class PageInfo:
    """What the watch page tells us about the transcript request."""
    title: str
    video_id: str
    params: str


# ---------------------------------------------------------------------------
# Generic JSON helpers
# ---------------------------------------------------------------------------

def _dig(node: Any, *path: str | int) -> Any:
    """
    Follow `path` through nested dicts/lists, returning None on any miss.

    String steps index dicts, integer steps index lists.
    """
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or not -len(node) <= step < len(node):
                return None
            node = node[step]
        else:
            if not isinstance(node, dict):
                return None
            node = node.get(step)
        if node is None:
            return None
    return node


def _looks_like_segments(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) > 0
        and any(isinstance(item, dict) and "transcriptSegmentRenderer" in item for item in value)
    )


def find_segment_list(node: Any, max_depth: int = DEFAULT_SEARCH_DEPTH) -> list | None:
    """
    Walk a decoded JSON tree looking for a transcript segment list.

    A match is the first list of segment-like dicts found either directly
    under a key whose name contains "transcript" (case-insensitive), or as an
    `initialSegments` list somewhere below such a key.  The walk is
    depth-first and stops descending at `max_depth`.

    Args:
        node:      Decoded JSON value (dict, list or scalar).
        max_depth: Maximum nesting depth to visit.

    Returns:
        The segment list, or None when nothing matched.
    """

    def walk(value: Any, depth: int, under_transcript: bool) -> list | None:
        if depth > max_depth:
            return None
        if isinstance(value, dict):
            for key, child in value.items():
                is_transcript_key = "transcript" in key.lower()
                if (is_transcript_key or (under_transcript and key == "initialSegments")) \
                        and _looks_like_segments(child):
                    return child
                if isinstance(child, (dict, list)):
                    found = walk(child, depth + 1, under_transcript or is_transcript_key)
                    if found is not None:
                        return found
        elif isinstance(value, list):
            for child in value:
                if isinstance(child, (dict, list)):
                    found = walk(child, depth + 1, under_transcript)
                    if found is not None:
                        return found
        return None

    return walk(node, 0, False)


# ---------------------------------------------------------------------------
# Segment parsing
# ---------------------------------------------------------------------------

def _to_int(value: Any) -> int | None:
    """Lenient int coercion ("1234", 1234, 1234.0, "12.5").  None when impossible."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None


def _segment_text(cue: dict) -> str:
    snippet = cue.get("snippet")
    if isinstance(snippet, dict):
        runs = snippet.get("runs")
        if isinstance(runs, list):
            return "".join(str(run.get("text", "")) for run in runs if isinstance(run, dict))
        if "simpleText" in snippet:
            return str(snippet["simpleText"])
    text = cue.get("text")
    return str(text) if text is not None else ""


def _build_segment(cue: dict) -> TranscriptSegment:
    start_raw = cue.get("startMs") or cue.get("startTimeMs") or "0"
    end_raw = cue.get("endMs") or cue.get("endTimeMs") or start_raw

    start = _to_int(start_raw)
    if start is None:
        start = 0
    end = _to_int(end_raw)
    if end is None:
        end = start + _FALLBACK_DURATION_MS

    return TranscriptSegment(
        text=_segment_text(cue),
        offset_ms=start,
        duration_ms=max(0, end - start),
    )


def segments_from_list(items: list) -> list[TranscriptSegment]:
    """
    Convert raw `initialSegments` entries into TranscriptSegments.

    Section headers (and anything that isn't a segment renderer) are
    dropped.
    """
    segments: list[TranscriptSegment] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if "transcriptSectionHeaderRenderer" in item:
            continue
        cue = item.get("transcriptSegmentRenderer")
        if not isinstance(cue, dict):
            continue
        segments.append(_build_segment(cue))
    return segments


def _primary_path(data: Any) -> Any:
    return _dig(data, "actions", 0, "updateEngagementPanelAction", "content", *_SEGMENT_LIST_TAIL)


def _alternate_path(data: Any) -> Any:
    contents = _dig(data, "contents", "twoColumnWatchNextResults", "results", "results", "contents")
    if not isinstance(contents, list):
        return None
    for item in contents:
        if isinstance(item, dict) and "videoPrimaryInfoRenderer" in item:
            return _dig(item, *_SEGMENT_LIST_TAIL)
    return None


def parse_transcript_response(
    response_text: str,
    max_depth: int = DEFAULT_SEARCH_DEPTH,
) -> list[TranscriptSegment]:
    """
    Parse the body returned by the internal transcript endpoint.

    Args:
        response_text: Raw JSON text.
        max_depth:     Depth bound for the fallback tree walk.

    Returns:
        The transcript segments, possibly empty when no known location
        holds any.

    Raises:
        ParseError: If the body is not valid JSON.
    """
    try:
        data = json.loads(response_text)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Failed to parse API response: {exc}") from exc

    items = _primary_path(data)
    if not isinstance(items, list):
        items = _alternate_path(data)
    if not isinstance(items, list):
        items = find_segment_list(data, max_depth=max_depth)
    if not isinstance(items, list):
        return []

    return segments_from_list(items)


# ---------------------------------------------------------------------------
# Page parsing
# ---------------------------------------------------------------------------

def extract_json_object(text: str, start: int) -> str | None:
    """
    Return the balanced JSON object that begins at text[start] == "{".

    Braces inside string literals are ignored.  None when the object never
    closes.
    """
    if start >= len(text) or text[start] != "{":
        return None
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:pos + 1]
    return None


def extract_embedded_json(page_html: str, marker: str) -> dict:
    """
    Decode the JSON object assigned right after `marker` in a page.

    Raises:
        NotFoundError: If the marker isn't present.
        ParseError:    If the object is truncated or not valid JSON.
    """
    pos = page_html.find(marker)
    if pos == -1:
        raise NotFoundError(f"Could not find {marker.strip()} in video page")
    blob = extract_json_object(page_html, pos + len(marker))
    if blob is None:
        raise ParseError(f"Unterminated JSON after {marker.strip()}")
    try:
        data = json.loads(blob)
    except ValueError as exc:
        raise ParseError(f"Failed to parse {marker.strip()} JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Unexpected {marker.strip()} payload type: {type(data).__name__}")
    return data


def extract_initial_data(page_html: str) -> dict:
    """Decode the `ytInitialData` state blob embedded in a watch page."""
    return extract_embedded_json(page_html, _INITIAL_DATA_MARKER)


def find_transcript_params(initial_data: dict) -> str:
    """
    Find the continuation token for the transcript endpoint.

    Raises:
        NotFoundError: If the page offers no transcript panel.
        ParseError:    If the panel exists but carries no params.
    """
    endpoint_path = (
        "engagementPanelSectionListRenderer", "content", "continuationItemRenderer",
        "continuationEndpoint", "getTranscriptEndpoint",
    )
    panels = initial_data.get("engagementPanels")
    if isinstance(panels, list):
        for panel in panels:
            endpoint = _dig(panel, *endpoint_path)
            if endpoint is None:
                continue
            params = endpoint.get("params") if isinstance(endpoint, dict) else None
            if not params:
                raise ParseError("Could not extract transcript parameters")
            return str(params)
    raise NotFoundError("No transcript available for this video")


def parse_page(page_html: str) -> PageInfo:
    """
    Pull the title, canonical video id and transcript params from a watch page.

    Raises:
        NotFoundError / ParseError: Propagated from the embedded-state helpers.
    """
    title_match = _TITLE_PATTERN.search(page_html)
    title = html.unescape(title_match.group(1)) if title_match else ""

    video_id = ""
    canonical = _CANONICAL_PATTERN.search(page_html)
    if canonical and "?v=" in canonical.group(1):
        video_id = canonical.group(1).split("?v=", 1)[1].split("&", 1)[0]

    params = find_transcript_params(extract_initial_data(page_html))
    return PageInfo(title=title, video_id=video_id, params=params)


def segments_to_text(segments: list[TranscriptSegment]) -> str:
    """Join segment texts with single spaces and collapse whitespace."""
    return re.sub(r"\s+", " ", " ".join(s.text for s in segments)).strip()
