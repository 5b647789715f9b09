"""
pipeline.py — End-to-end processing of one video.

Acquisition and metadata resolution are independent, so metadata is
resolved on a worker thread while the transcript tiers run on the calling
thread.  Enhancement starts once both are done.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass

import httpx

from yt_transcript_enhancer.config import Settings, load_settings
from yt_transcript_enhancer.enhancer import EnhancementOrchestrator
from yt_transcript_enhancer.errors import ErrorHandler
from yt_transcript_enhancer.extractor import TranscriptAcquisition
from yt_transcript_enhancer.fetchers import ApiTranscriptFetcher, LibraryTranscriptFetcher
from yt_transcript_enhancer.metadata import MetadataResolver
from yt_transcript_enhancer.models import EnhancementResult, TranscriptResult, VideoMetadata
from yt_transcript_enhancer.providers import LLMProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedVideo:
    transcript: TranscriptResult
    metadata: VideoMetadata
    enhancement: EnhancementResult | None = None


def build_orchestrator(settings: Settings, error_handler: ErrorHandler | None = None) -> EnhancementOrchestrator:
    return EnhancementOrchestrator(
        error_handler=error_handler,
        token_threshold=settings.token_threshold,
        line_threshold=settings.line_threshold,
        chunk_size=settings.chunk_size,
        request_delay=settings.request_delay,
    )


def build_acquisition(settings: Settings, client: httpx.Client | None = None) -> TranscriptAcquisition:
    return TranscriptAcquisition(
        fetchers=[
            ApiTranscriptFetcher(
                client=client,
                timeout=settings.http_timeout,
                lang=settings.lang,
                country=settings.country,
            ),
            LibraryTranscriptFetcher(timeout=settings.http_timeout),
        ],
    )


def process_video(
    url_or_id: str,
    provider: LLMProvider | None = None,
    settings: Settings | None = None,
    acquisition: TranscriptAcquisition | None = None,
    resolver: MetadataResolver | None = None,
    orchestrator: EnhancementOrchestrator | None = None,
) -> ProcessedVideo:
    """
    Acquire, resolve metadata for, and (when `provider` is given) enhance one video.

    Raises:
        AppError: When acquisition fails.  Metadata and enhancement failures
                  never raise; they degrade to placeholders / the raw text.
    """
    settings = settings or load_settings()
    owned: list = []
    if acquisition is None:
        acquisition = build_acquisition(settings)
        owned.extend(f for f in acquisition.fetchers if isinstance(f, ApiTranscriptFetcher))
    if resolver is None:
        resolver = MetadataResolver(timeout=settings.http_timeout)
        owned.append(resolver)

    try:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            metadata_future = executor.submit(resolver.resolve, url_or_id, settings.youtube_api_key)
            transcript = acquisition.acquire(url_or_id)
            metadata = metadata_future.result()
    finally:
        for resource in owned:
            resource.close()

    logger.info(
        "Acquired %d segments for %s via %s (title=%r)",
        len(transcript.segments), transcript.video_id, transcript.source, metadata.title,
    )

    if provider is None:
        return ProcessedVideo(transcript=transcript, metadata=metadata)

    orchestrator = orchestrator or build_orchestrator(settings)
    enhancement = orchestrator.enhance(transcript.segments, metadata, provider)
    return ProcessedVideo(transcript=transcript, metadata=metadata, enhancement=enhancement)
