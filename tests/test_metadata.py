"""
test_metadata.py — Tests for the video metadata resolver.

HTTP is answered by httpx.MockTransport handlers that route on host and
path, so every source (Data API, oEmbed, watch page) can be made to
succeed or fail independently.  Covers ISO duration parsing, the page
description fallbacks, and the never-raise contract of resolve().
"""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import mock_client
from yt_transcript_enhancer.metadata import (
    MetadataResolver,
    description_from_page,
    duration_from_page,
    parse_iso_duration,
    resolve_metadata,
)
from yt_transcript_enhancer.models import UNKNOWN_CHANNEL, UNKNOWN_TITLE, VideoMetadata

VIDEO_ID = "dQw4w9WgXcQ"
URL = f"https://www.youtube.com/watch?v={VIDEO_ID}"


# ---------------------------------------------------------------------------
# Helpers — fake upstream responses
# ---------------------------------------------------------------------------

def _data_api_body(**snippet_overrides) -> dict:
    snippet = {
        "title": "Never Gonna Give You Up",
        "channelTitle": "Rick Astley",
        "description": "The official video.",
    }
    snippet.update(snippet_overrides)
    return {"items": [{"snippet": snippet, "contentDetails": {"duration": "PT3M33S"}}]}


def _player_page(description: str = "From the player", length: str = "213") -> str:
    player = {"videoDetails": {"shortDescription": description, "lengthSeconds": length}}
    return f"<html><script>var ytInitialPlayerResponse = {json.dumps(player)};</script></html>"


def _router(
    data_api: httpx.Response | None = None,
    oembed: httpx.Response | None = None,
    page: httpx.Response | None = None,
    seen: list[str] | None = None,
):
    """Build a MockTransport handler dispatching on the request URL."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(f"{request.url.host}{request.url.path}")
        if request.url.host == "www.googleapis.com":
            return data_api or httpx.Response(404)
        if request.url.path == "/oembed":
            return oembed or httpx.Response(404)
        if request.url.path == "/watch":
            return page or httpx.Response(404)
        return httpx.Response(404)

    return handler


# ---------------------------------------------------------------------------
# ISO-8601 durations
# ---------------------------------------------------------------------------

class TestParseIsoDuration:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("PT1H2M3S", 3723),
            ("PT3M33S", 213),
            ("PT45S", 45),
            ("PT2H", 7200),
            ("PT10M", 600),
        ],
    )
    def test_valid(self, value: str, expected: int) -> None:
        assert parse_iso_duration(value) == expected

    @pytest.mark.parametrize("value", ["PT", "", None, "1H2M", "P1D", "PTxyzS", "PT1.5S"])
    def test_invalid_returns_none(self, value) -> None:
        assert parse_iso_duration(value) is None


# ---------------------------------------------------------------------------
# Watch page scraping
# ---------------------------------------------------------------------------

class TestPageFallbacks:
    """description_from_page() tries player JSON, meta tags, then JSON-LD."""

    def test_player_response_description(self) -> None:
        assert description_from_page(_player_page("Hello there")) == "Hello there"

    def test_meta_description(self) -> None:
        page = '<html><head><meta name="description" content="Fish &amp; chips"></head></html>'
        assert description_from_page(page) == "Fish & chips"

    def test_og_description(self) -> None:
        page = '<meta property="og:description" content="Open graph text">'
        assert description_from_page(page) == "Open graph text"

    def test_json_ld_description(self) -> None:
        ld = json.dumps([{"@type": "VideoObject", "description": "From JSON-LD"}])
        page = f'<script type="application/ld+json">{ld}</script>'
        assert description_from_page(page) == "From JSON-LD"

    def test_broken_json_ld_skipped(self) -> None:
        page = (
            '<script type="application/ld+json">{broken</script>'
            '<script type="application/ld+json">{"description": "second"}</script>'
        )
        assert description_from_page(page) == "second"

    def test_nothing_found(self) -> None:
        assert description_from_page("<html></html>") == ""

    def test_duration_from_page(self) -> None:
        assert duration_from_page(_player_page(length="600")) == 600

    def test_duration_missing(self) -> None:
        assert duration_from_page("<html></html>") is None
        assert duration_from_page(_player_page(length="n/a")) is None


# ---------------------------------------------------------------------------
# MetadataResolver
# ---------------------------------------------------------------------------

class TestMetadataResolver:
    """Source ordering and fallback behaviour of resolve()."""

    def test_data_api_used_when_key_present(self) -> None:
        seen: list[str] = []
        handler = _router(data_api=httpx.Response(200, json=_data_api_body()), seen=seen)
        resolver = MetadataResolver(client=mock_client(handler))

        result = resolver.resolve(URL, api_key="yt-key")

        assert result == VideoMetadata(
            title="Never Gonna Give You Up",
            channel="Rick Astley",
            description="The official video.",
            duration_seconds=213,
        )
        # No fallback requests once the Data API answered.
        assert seen == ["www.googleapis.com/youtube/v3/videos"]

    def test_data_api_request_params(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=_data_api_body())

        MetadataResolver(client=mock_client(handler)).from_data_api(VIDEO_ID, "yt-key")

        params = captured[0].url.params
        assert params["id"] == VIDEO_ID
        assert params["key"] == "yt-key"
        assert params["part"] == "snippet,contentDetails"

    def test_no_key_skips_data_api(self) -> None:
        seen: list[str] = []
        handler = _router(
            oembed=httpx.Response(200, json={"title": "oEmbed title", "author_name": "oEmbed channel"}),
            page=httpx.Response(200, text=_player_page("desc")),
            seen=seen,
        )

        result = MetadataResolver(client=mock_client(handler)).resolve(VIDEO_ID)

        assert result == VideoMetadata("oEmbed title", "oEmbed channel", "desc", 213)
        assert not any(host.startswith("www.googleapis.com") for host in seen)

    def test_empty_data_api_items_falls_back(self) -> None:
        handler = _router(
            data_api=httpx.Response(200, json={"items": []}),
            oembed=httpx.Response(200, json={"title": "T", "author_name": "C"}),
            page=httpx.Response(200, text=_player_page("D", "60")),
        )

        result = MetadataResolver(client=mock_client(handler)).resolve(URL, api_key="yt-key")

        assert result == VideoMetadata("T", "C", "D", 60)

    def test_data_api_error_falls_back(self) -> None:
        handler = _router(
            data_api=httpx.Response(403, text="quota"),
            oembed=httpx.Response(200, json={"title": "T", "author_name": "C"}),
            page=httpx.Response(200, text="<html></html>"),
        )

        result = MetadataResolver(client=mock_client(handler)).resolve(URL, api_key="bad")

        assert result.title == "T"
        assert result.channel == "C"
        assert result.description == ""
        assert result.duration_seconds is None

    def test_everything_fails_gives_placeholders(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        result = MetadataResolver(client=mock_client(handler)).resolve(URL, api_key="yt-key")

        assert result == VideoMetadata(UNKNOWN_TITLE, UNKNOWN_CHANNEL, "", None)

    def test_unparsable_reference_gives_placeholders(self) -> None:
        seen: list[str] = []
        resolver = MetadataResolver(client=mock_client(_router(seen=seen)))

        assert resolver.resolve("https://example.com/video") == VideoMetadata()
        assert seen == []

    def test_oembed_missing_fields(self) -> None:
        handler = _router(oembed=httpx.Response(200, json={"title": "Only title"}))

        title, channel = MetadataResolver(client=mock_client(handler)).from_oembed(VIDEO_ID)

        assert title == "Only title"
        assert channel == UNKNOWN_CHANNEL

    def test_shared_client_not_closed(self) -> None:
        client = mock_client(_router())
        resolver = MetadataResolver(client=client)
        resolver.close()
        assert not client.is_closed


class TestResolveMetadata:

    def test_wrapper(self) -> None:
        handler = _router(
            oembed=httpx.Response(200, json={"title": "T", "author_name": "C"}),
            page=httpx.Response(200, text=_player_page("D", "5")),
        )
        assert resolve_metadata(URL, client=mock_client(handler)) == VideoMetadata("T", "C", "D", 5)


@pytest.mark.integration
class TestResolveMetadataIntegration:

    def test_real_video(self) -> None:
        result = resolve_metadata(URL)
        assert result.title != UNKNOWN_TITLE
        assert result.duration_seconds and result.duration_seconds > 0
