"""
test_api.py — Tests for the FastAPI web API endpoints.

Uses FastAPI's TestClient (backed by httpx) so tests run in-process without
needing a live server.  Acquisition, metadata and the LLM pipeline are
mocked at the names the api module imports, so no network access is needed.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from yt_transcript_enhancer.api import app
from yt_transcript_enhancer.config import Settings
from yt_transcript_enhancer.errors import TranscriptUnavailableError, VideoNotFoundError
from yt_transcript_enhancer.models import EnhancementResult, TranscriptResult, VideoMetadata
from yt_transcript_enhancer.parser import segments_to_text
from yt_transcript_enhancer.pipeline import ProcessedVideo

VIDEO_ID = "dQw4w9WgXcQ"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def client() -> TestClient:
    """Create a fresh TestClient for each test."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def fixed_settings():
    with patch("yt_transcript_enhancer.api.load_settings", return_value=Settings(openai_api_key="sk-test")):
        yield


@pytest.fixture()
def transcript(segments) -> TranscriptResult:
    return TranscriptResult(
        text=segments_to_text(segments), segments=segments, video_id=VIDEO_ID, source="internal-api",
    )


@pytest.fixture()
def acquisition(transcript: TranscriptResult):
    with patch("yt_transcript_enhancer.api.build_acquisition") as mock_build:
        mock_build.return_value.acquire.return_value = transcript
        yield mock_build.return_value


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------

class TestHealth:
    """Tests for GET /health."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# Transcript endpoints
# ---------------------------------------------------------------------------

class TestTranscriptEndpoint:
    """Tests for GET /transcript/{video_id}."""

    def test_text_format(self, client: TestClient, acquisition: MagicMock) -> None:
        """Default format=text returns one line per segment."""
        resp = client.get(f"/transcript/{VIDEO_ID}")

        assert resp.status_code == 200
        assert resp.text == "Hello world.\nThis is a test.\nGoodbye now."
        acquisition.acquire.assert_called_once_with(VIDEO_ID)

    def test_json_format(self, client: TestClient, acquisition: MagicMock) -> None:
        resp = client.get(f"/transcript/{VIDEO_ID}", params={"format": "json"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["video_id"] == VIDEO_ID
        assert data["segment_count"] == 3

    def test_doc_format(self, client: TestClient, acquisition: MagicMock) -> None:
        resp = client.get(f"/transcript/{VIDEO_ID}", params={"format": "doc"})
        assert resp.text.startswith("**[00:00]** Hello world.")

    def test_lines_format(self, client: TestClient, acquisition: MagicMock) -> None:
        resp = client.get(f"/transcript/{VIDEO_ID}", params={"format": "lines"})
        assert resp.text.splitlines()[2] == "[0:04] Goodbye now."

    def test_invalid_format_rejected(self, client: TestClient, acquisition: MagicMock) -> None:
        """FastAPI's own validation returns 422 for an unknown format."""
        resp = client.get(f"/transcript/{VIDEO_ID}", params={"format": "xml"})
        assert resp.status_code == 422

    def test_lines_endpoint(self, client: TestClient, acquisition: MagicMock) -> None:
        resp = client.get(f"/transcript/{VIDEO_ID}/lines")

        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "internal-api"
        assert data["lines"][0] == {"text": "Hello world.", "offset_ms": 0, "duration_ms": 2000}


class TestTranscriptErrors:
    """AppErrors are turned into JSON responses by the global handler."""

    def test_video_not_found_is_404(self, client: TestClient, acquisition: MagicMock) -> None:
        acquisition.acquire.side_effect = VideoNotFoundError("bogus")

        resp = client.get("/transcript/bogus")

        assert resp.status_code == 404
        assert resp.json() == {"error": "Video not found: bogus", "code": "NOT_FOUND"}

    def test_transcript_unavailable_is_404(self, client: TestClient, acquisition: MagicMock) -> None:
        acquisition.acquire.side_effect = TranscriptUnavailableError(VIDEO_ID)

        resp = client.get(f"/transcript/{VIDEO_ID}/lines")

        assert resp.status_code == 404
        assert "manually" in resp.json()["error"]


# ---------------------------------------------------------------------------
# Metadata endpoint
# ---------------------------------------------------------------------------

class TestMetadataEndpoint:

    @patch("yt_transcript_enhancer.api.resolve_metadata")
    def test_metadata(self, mock_resolve: MagicMock, client: TestClient, metadata: VideoMetadata) -> None:
        mock_resolve.return_value = metadata

        resp = client.get(f"/metadata/{VIDEO_ID}")

        assert resp.status_code == 200
        assert resp.json() == {
            "title": "Test Video",
            "channel": "Test Channel",
            "description": "A video used in tests.",
            "duration_seconds": 6,
        }


# ---------------------------------------------------------------------------
# Enhancement and providers
# ---------------------------------------------------------------------------

class TestEnhanceEndpoint:

    @patch("yt_transcript_enhancer.api.process_video")
    @patch("yt_transcript_enhancer.api.create_provider")
    def test_fallback_still_200(
        self,
        mock_create: MagicMock,
        mock_process: MagicMock,
        client: TestClient,
        transcript: TranscriptResult,
        metadata: VideoMetadata,
    ) -> None:
        mock_create.return_value.tag = "openai"
        mock_process.return_value = ProcessedVideo(
            transcript=transcript,
            metadata=metadata,
            enhancement=EnhancementResult(text=transcript.text, enhanced=False, error="openai: boom"),
        )

        resp = client.post(f"/enhance/{VIDEO_ID}", json={"model": "gpt-4o"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["enhanced"] is False
        assert data["error"] == "openai: boom"
        assert data["text"] == transcript.text
        assert data["title"] == "Test Video"
        assert mock_create.call_args.args[0].default_model == "gpt-4o"
        mock_create.return_value.close.assert_called_once()

    @patch("yt_transcript_enhancer.api.process_video")
    @patch("yt_transcript_enhancer.api.create_provider")
    def test_no_body_uses_current_provider(
        self,
        mock_create: MagicMock,
        mock_process: MagicMock,
        client: TestClient,
        transcript: TranscriptResult,
        metadata: VideoMetadata,
    ) -> None:
        mock_create.return_value.tag = "openai"
        mock_process.return_value = ProcessedVideo(
            transcript=transcript,
            metadata=metadata,
            enhancement=EnhancementResult(text="Clean.", enhanced=True),
        )

        resp = client.post(f"/enhance/{VIDEO_ID}")

        assert resp.json()["text"] == "Clean."
        assert mock_create.call_args.args[0].name == "openai"

    def test_unconfigured_provider_is_400(self, client: TestClient) -> None:
        resp = client.post(f"/enhance/{VIDEO_ID}", json={"provider": "openrouter"})

        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"


class TestProvidersEndpoint:

    def test_listing(self, client: TestClient) -> None:
        resp = client.get("/providers")

        assert resp.status_code == 200
        data = resp.json()
        assert data["current"] == "openai"
        assert data["providers"]["openai"] == {"valid": True, "errors": []}
        assert data["providers"]["openrouter"] == {"valid": False, "errors": ["Provider not initialized"]}
