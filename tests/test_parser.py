"""
test_parser.py — Tests for segment and page parsing.

All payloads are hand-built dicts shaped like YouTube's responses, so these
run without network access.
"""

from __future__ import annotations

import json

import pytest

from yt_transcript_enhancer.errors import NotFoundError, ParseError
from yt_transcript_enhancer.models import TranscriptSegment
from yt_transcript_enhancer.parser import (
    extract_json_object,
    find_segment_list,
    find_transcript_params,
    parse_page,
    parse_transcript_response,
    segments_to_text,
)


# ---------------------------------------------------------------------------
# Helpers — payload builders
# ---------------------------------------------------------------------------

def _cue(text: str, start: str | None = "0", end: str | None = "1000") -> dict:
    cue: dict = {"snippet": {"runs": [{"text": text}]}}
    if start is not None:
        cue["startMs"] = start
    if end is not None:
        cue["endMs"] = end
    return {"transcriptSegmentRenderer": cue}


def _segment_list_tail(items: list) -> dict:
    return {
        "transcriptRenderer": {
            "content": {
                "transcriptSearchPanelRenderer": {
                    "body": {
                        "transcriptSegmentListRenderer": {"initialSegments": items},
                    },
                },
            },
        },
    }


def _primary_payload(items: list) -> dict:
    return {"actions": [{"updateEngagementPanelAction": {"content": _segment_list_tail(items)}}]}


def _alternate_payload(items: list) -> dict:
    primary_info = {"videoPrimaryInfoRenderer": {}, **_segment_list_tail(items)}
    return {
        "contents": {
            "twoColumnWatchNextResults": {
                "results": {"results": {"contents": [{"somethingElse": {}}, primary_info]}},
            },
        },
    }


def _watch_page(initial_data: dict, title: str = "My Video") -> str:
    return (
        "<html><head>"
        f'<meta name="title" content="{title}">'
        '<link rel="canonical" href="https://www.youtube.com/watch?v=dQw4w9WgXcQ">'
        "</head><body><script>"
        f"var ytInitialData = {json.dumps(initial_data)};"
        "</script></body></html>"
    )


def _panel(params: str | None) -> dict:
    endpoint = {"params": params} if params is not None else {}
    return {
        "engagementPanelSectionListRenderer": {
            "content": {
                "continuationItemRenderer": {
                    "continuationEndpoint": {"getTranscriptEndpoint": endpoint},
                },
            },
        },
    }


# ---------------------------------------------------------------------------
# parse_transcript_response — three-tier path lookup
# ---------------------------------------------------------------------------

class TestParseTranscriptResponse:
    """Primary path, alternate path, generic tree walk."""

    def test_primary_path(self) -> None:
        payload = _primary_payload([_cue("Hello", "0", "1500"), _cue("world", "1500", "3000")])

        segments = parse_transcript_response(json.dumps(payload))

        assert segments == [
            TranscriptSegment("Hello", 0, 1500),
            TranscriptSegment("world", 1500, 1500),
        ]

    def test_alternate_path(self) -> None:
        """Same segments under contents.twoColumnWatchNextResults are found."""
        payload = _alternate_payload([_cue("Alt", "2000", "4500")])

        assert parse_transcript_response(json.dumps(payload)) == [TranscriptSegment("Alt", 2000, 2500)]

    def test_tree_walk_finds_renamed_container(self) -> None:
        payload = {
            "frameworkUpdates": {
                "entityBatchUpdate": {
                    "mutations": [
                        {"payload": {"transcriptSegments": [_cue("Found it", "100", "600")]}},
                    ],
                },
            },
        }

        assert parse_transcript_response(json.dumps(payload)) == [TranscriptSegment("Found it", 100, 500)]

    def test_tree_walk_respects_depth_limit(self) -> None:
        nested: dict = {"transcriptSegments": [_cue("deep")]}
        for _ in range(6):
            nested = {"wrapper": nested}

        assert parse_transcript_response(json.dumps(nested), max_depth=3) == []
        assert len(parse_transcript_response(json.dumps(nested), max_depth=12)) == 1

    def test_nothing_found_returns_empty(self) -> None:
        assert parse_transcript_response(json.dumps({"responseContext": {}})) == []

    def test_invalid_json_raises_parse_error(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_transcript_response("{not json")
        assert exc_info.value.message.startswith("Failed to parse API response:")

    def test_section_headers_are_skipped(self) -> None:
        payload = _primary_payload([
            {"transcriptSectionHeaderRenderer": {"title": "Chapter 1"}},
            _cue("Spoken"),
            {"unrelated": {}},
        ])
        assert [s.text for s in parse_transcript_response(json.dumps(payload))] == ["Spoken"]


# ---------------------------------------------------------------------------
# Segment field coercion
# ---------------------------------------------------------------------------

class TestSegmentCoercion:
    """Lenient start/end handling and text sources."""

    def _parse_one(self, cue: dict) -> TranscriptSegment:
        return parse_transcript_response(json.dumps(_primary_payload([cue])))[0]

    def test_missing_start_defaults_to_zero(self) -> None:
        assert self._parse_one(_cue("x", start=None, end="800")) == TranscriptSegment("x", 0, 800)

    def test_missing_end_gives_zero_duration(self) -> None:
        assert self._parse_one(_cue("x", start="500", end=None)) == TranscriptSegment("x", 500, 0)

    def test_unparsable_start_becomes_zero(self) -> None:
        assert self._parse_one(_cue("x", start="abc", end="700")) == TranscriptSegment("x", 0, 700)

    def test_unparsable_end_becomes_start_plus_one_second(self) -> None:
        assert self._parse_one(_cue("x", start="2000", end="??")) == TranscriptSegment("x", 2000, 1000)

    def test_negative_duration_is_clamped(self) -> None:
        assert self._parse_one(_cue("x", start="5000", end="4000")).duration_ms == 0

    def test_alternate_time_keys(self) -> None:
        cue = {"transcriptSegmentRenderer": {
            "snippet": {"simpleText": "simple"}, "startTimeMs": "10", "endTimeMs": "30",
        }}
        assert self._parse_one(cue) == TranscriptSegment("simple", 10, 20)

    def test_plain_text_field(self) -> None:
        cue = {"transcriptSegmentRenderer": {"text": "plain", "startMs": "0", "endMs": "10"}}
        assert self._parse_one(cue).text == "plain"

    def test_runs_are_joined(self) -> None:
        cue = {"transcriptSegmentRenderer": {
            "snippet": {"runs": [{"text": "one "}, {"text": "two"}]}, "startMs": "0", "endMs": "1",
        }}
        assert self._parse_one(cue).text == "one two"


# ---------------------------------------------------------------------------
# find_segment_list
# ---------------------------------------------------------------------------

class TestFindSegmentList:

    def test_initial_segments_under_transcript_key(self) -> None:
        items = [_cue("a")]
        tree = {"myTranscriptPanel": {"body": {"initialSegments": items}}}
        assert find_segment_list(tree) == items

    def test_initial_segments_elsewhere_ignored(self) -> None:
        tree = {"panel": {"initialSegments": [_cue("a")]}}
        assert find_segment_list(tree) is None

    def test_list_without_segment_objects_ignored(self) -> None:
        assert find_segment_list({"transcript": [{"foo": 1}]}) is None


# ---------------------------------------------------------------------------
# Page parsing
# ---------------------------------------------------------------------------

class TestPageParsing:
    """ytInitialData extraction and transcript params lookup."""

    def test_parse_page(self) -> None:
        page = _watch_page({"engagementPanels": [{"other": {}}, _panel("CgtkUXc0dzlXZ1hjUQ")]}, "Rick &amp; Roll")

        info = parse_page(page)

        assert info.title == "Rick & Roll"
        assert info.video_id == "dQw4w9WgXcQ"
        assert info.params == "CgtkUXc0dzlXZ1hjUQ"

    def test_missing_initial_data_raises_not_found(self) -> None:
        with pytest.raises(NotFoundError):
            parse_page("<html><body>consent wall</body></html>")

    def test_broken_initial_data_raises_parse_error(self) -> None:
        page = 'var ytInitialData = {"engagementPanels": [}, "x": "}"};'
        with pytest.raises(ParseError):
            parse_page(page)

    def test_no_transcript_panel(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            find_transcript_params({"engagementPanels": [{"other": {}}]})
        assert exc_info.value.message == "No transcript available for this video"

    def test_panel_without_params(self) -> None:
        with pytest.raises(ParseError):
            find_transcript_params({"engagementPanels": [_panel(None)]})

    def test_extract_json_object_ignores_braces_in_strings(self) -> None:
        text = 'x = {"a": "}{", "b": {"c": "\\"}"}}; trailing'
        assert json.loads(extract_json_object(text, 4)) == {"a": "}{", "b": {"c": '"}'}}

    def test_extract_json_object_unterminated(self) -> None:
        assert extract_json_object('{"a": 1', 0) is None


class TestSegmentsToText:

    def test_collapses_whitespace(self) -> None:
        segments = [TranscriptSegment(" Hello\n", 0, 1), TranscriptSegment("  world  ", 1, 1)]
        assert segments_to_text(segments) == "Hello world"
