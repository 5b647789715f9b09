"""
conftest.py — Shared fixtures and fakes for the unit tests.

Nothing here touches the network: HTTP goes through httpx.MockTransport
and transcript tiers are replaced by FakeFetcher.
"""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from yt_transcript_enhancer.models import TranscriptSegment, VideoMetadata


class FakeFetcher:
    """A transcript tier that returns canned segments or raises."""

    def __init__(
        self,
        name: str,
        segments: list[TranscriptSegment] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.segments = segments or []
        self.error = error
        self.calls: list[str] = []

    def fetch(self, video_id: str) -> list[TranscriptSegment]:
        self.calls.append(video_id)
        if self.error is not None:
            raise self.error
        return self.segments


def make_segments(texts: list[str], step_ms: int = 2000) -> list[TranscriptSegment]:
    """Consecutive segments `step_ms` apart, each lasting `step_ms`."""
    return [
        TranscriptSegment(text=text, offset_ms=i * step_ms, duration_ms=step_ms)
        for i, text in enumerate(texts)
    ]


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    """httpx.Client whose every request is answered by `handler`."""
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def segments() -> list[TranscriptSegment]:
    return make_segments(["Hello world.", "This is a test.", "Goodbye now."])


@pytest.fixture
def metadata() -> VideoMetadata:
    return VideoMetadata(
        title="Test Video",
        channel="Test Channel",
        description="A video used in tests.",
        duration_seconds=6,
    )
