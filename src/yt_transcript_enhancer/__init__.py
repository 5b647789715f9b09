"""
yt_transcript_enhancer — Fetch YouTube transcripts and clean them up with an LLM.

Public API:
    acquire_transcript()        URL → plain transcript text ("Error: ..." on failure).
    acquire_transcript_lines()  URL → timed TranscriptSegments (raises on failure).
    resolve_metadata()          URL → VideoMetadata (placeholders on failure).
    enhance()                   Segments + metadata + ProviderConfig → enhanced text.
    parse_video_id()            Parse a YouTube URL or validate a bare video ID.
    TranscriptAcquisition       Tiered transcript fetching.
    MetadataResolver            Data API / oEmbed / page metadata lookup.
    ChunkingEngine              Token-bounded transcript chunking.
    EnhancementOrchestrator     Single-shot or chunked LLM enhancement.
    ProviderManager             Provider selection from settings.

Exception hierarchy (all importable from this package):
    AppError                        Base exception, carries code / http_status.
    ├── ParseError                  Upstream payload couldn't be decoded.
    ├── NotFoundError
    │   ├── VideoNotFoundError      Not a YouTube reference, or no such video.
    │   └── TranscriptUnavailableError  Every acquisition tier failed.
    ├── AuthError                   401 / 403 from a provider.
    ├── RateLimitError              429 from a provider.
    ├── ServerError                 5xx from a provider.
    ├── NetworkError                Connectivity failure or timeout.
    ├── ValidationError             Bad request or configuration.
    └── ProviderError               Any other provider failure.

Usage:
    from yt_transcript_enhancer import acquire_transcript_lines, enhance, resolve_metadata
    from yt_transcript_enhancer.providers import openai_config

    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    text = enhance(acquire_transcript_lines(url), resolve_metadata(url), openai_config("sk-..."))
"""

import logging

from yt_transcript_enhancer.chunking import ChunkingEngine, ChunkingOptions
from yt_transcript_enhancer.enhancer import EnhancementOrchestrator, enhance
from yt_transcript_enhancer.errors import (
    AppError,
    AuthError,
    ErrorContext,
    ErrorHandler,
    NetworkError,
    NotFoundError,
    ParseError,
    ProviderError,
    RateLimitError,
    ServerError,
    TranscriptUnavailableError,
    ValidationError,
    VideoNotFoundError,
)
from yt_transcript_enhancer.extractor import (
    TranscriptAcquisition,
    acquire_transcript,
    acquire_transcript_lines,
    parse_video_id,
)
from yt_transcript_enhancer.metadata import MetadataResolver, resolve_metadata
from yt_transcript_enhancer.models import (
    EnhancementResult,
    ProviderConfig,
    TextChunk,
    TranscriptSegment,
    VideoMetadata,
)
from yt_transcript_enhancer.providers import ProviderManager

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "acquire_transcript",
    "acquire_transcript_lines",
    "resolve_metadata",
    "enhance",
    "parse_video_id",
    "TranscriptAcquisition",
    "MetadataResolver",
    "ChunkingEngine",
    "ChunkingOptions",
    "EnhancementOrchestrator",
    "ProviderManager",
    "EnhancementResult",
    "ProviderConfig",
    "TextChunk",
    "TranscriptSegment",
    "VideoMetadata",
    "AppError",
    "AuthError",
    "ErrorContext",
    "ErrorHandler",
    "NetworkError",
    "NotFoundError",
    "ParseError",
    "ProviderError",
    "RateLimitError",
    "ServerError",
    "TranscriptUnavailableError",
    "ValidationError",
    "VideoNotFoundError",
]
