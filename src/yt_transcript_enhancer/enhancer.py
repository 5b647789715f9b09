"""
enhancer.py — Drive AI cleanup of a transcript through one provider.

Two modes:

    single-shot   The whole transcript, one "At MM:SS - text" line per
                  segment, goes out in a single request.
    chunked       Used when the estimated token count exceeds
                  `token_threshold` or the transcript has more than
                  `line_threshold` segments.  Segments are cut into
                  token-bounded chunks and sent one at a time, with
                  `request_delay` seconds between requests; the outputs
                  are concatenated in chunk order.

A failure anywhere aborts the whole run.  The caller then gets the raw
transcript back, unmodified, together with a categorized explanation.
Partial output from earlier chunks is discarded.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from yt_transcript_enhancer.chunking import ChunkingEngine, ChunkingOptions, estimate_tokens
from yt_transcript_enhancer.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_LINE_THRESHOLD,
    DEFAULT_REQUEST_DELAY,
    DEFAULT_TOKEN_THRESHOLD,
)
from yt_transcript_enhancer.errors import (
    ErrorContext,
    ErrorHandler,
    ProviderError,
    ValidationError,
)
from yt_transcript_enhancer.models import (
    ChatMessage,
    EnhancementResult,
    LLMRequest,
    ProviderConfig,
    TranscriptSegment,
    VideoMetadata,
)
from yt_transcript_enhancer.parser import segments_to_text
from yt_transcript_enhancer.prompts import (
    chunk_enhancement_messages,
    enhancement_messages,
    summary_messages,
    transcript_duration,
)
from yt_transcript_enhancer.providers import LLMProvider, create_provider

logger = logging.getLogger(__name__)

ENHANCE_TEMPERATURE = 0.3
ENHANCE_MAX_TOKENS = 4000
SUMMARY_MAX_TOKENS = 1200


class EnhancementOrchestrator:
    """
    Runs enhancement and summarisation against a provider.

    Args:
        chunker:         ChunkingEngine used in chunked mode.
        error_handler:   ErrorHandler that categorizes, logs and records
                         failures.
        token_threshold: Estimated tokens above which chunked mode is used.
        line_threshold:  Segment count above which chunked mode is used.
        chunk_size:      Per-chunk bound in estimated tokens.
        request_delay:   Seconds to wait between consecutive chunk requests.
        sleep:           Called with `request_delay`; swapped out in tests.
    """

    def __init__(
        self,
        chunker: ChunkingEngine | None = None,
        error_handler: ErrorHandler | None = None,
        token_threshold: int = DEFAULT_TOKEN_THRESHOLD,
        line_threshold: int = DEFAULT_LINE_THRESHOLD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.chunker = chunker or ChunkingEngine()
        self.error_handler = error_handler or ErrorHandler()
        self.token_threshold = token_threshold
        self.line_threshold = line_threshold
        self.chunk_size = chunk_size
        self.request_delay = request_delay
        self.sleep = sleep

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def should_chunk(self, segments: list[TranscriptSegment]) -> bool:
        text = segments_to_text(segments)
        return estimate_tokens(text) > self.token_threshold or len(segments) > self.line_threshold

    def _complete(
        self,
        provider: LLMProvider,
        messages: list[ChatMessage],
        max_tokens: int,
        label: str,
    ) -> str:
        request = LLMRequest(
            model=provider.config.default_model,
            messages=messages,
            temperature=ENHANCE_TEMPERATURE,
            max_tokens=max_tokens,
        )
        response = provider.chat_completion(request)
        if not response.content:
            raise ProviderError(f"Empty response for {label}")
        return response.content

    def _run_sequentially(
        self,
        provider: LLMProvider,
        requests: list[tuple[str, list[ChatMessage]]],
        max_tokens: int,
    ) -> list[str]:
        """Send each request in order, sleeping between them.  Stops at the first failure."""
        outputs: list[str] = []
        for position, (label, messages) in enumerate(requests):
            if position:
                self.sleep(self.request_delay)
            logger.info("Sending %s (%d/%d) to %s", label, position + 1, len(requests), provider.tag)
            outputs.append(self._complete(provider, messages, max_tokens, label))
        return outputs

    # -----------------------------------------------------------------------
    # Enhancement
    # -----------------------------------------------------------------------

    def enhance(
        self,
        segments: list[TranscriptSegment],
        metadata: VideoMetadata,
        provider: LLMProvider,
    ) -> EnhancementResult:
        """
        Enhance `segments` with `provider`.

        Never raises for provider failures: on any error the result carries
        the raw transcript, enhanced=False and a user-facing explanation.
        """
        raw = segments_to_text(segments)
        if not segments or not raw:
            return EnhancementResult(
                text=raw, enhanced=False, error="No transcript content to enhance",
            )

        chunked = self.should_chunk(segments)
        context = ErrorContext(
            operation="enhance_transcript",
            provider=provider.tag,
            details={"segments": len(segments), "chunked": chunked},
        )

        chunk_count = 1
        try:
            if not chunked:
                text = self._complete(
                    provider, enhancement_messages(segments, metadata), ENHANCE_MAX_TOKENS, "transcript",
                )
            else:
                chunks = self.chunker.chunk_segments(
                    segments, ChunkingOptions(max_chunk_size=self.chunk_size),
                )
                chunk_count = len(chunks)
                duration = transcript_duration(segments)
                logger.info(
                    "Transcript of ~%d tokens split into %d chunks",
                    estimate_tokens(raw), chunk_count,
                )
                requests = [
                    (
                        f"chunk {chunk.index + 1}",
                        chunk_enhancement_messages(chunk, chunk_count, metadata, duration),
                    )
                    for chunk in chunks
                ]
                text = "\n\n".join(self._run_sequentially(provider, requests, ENHANCE_MAX_TOKENS))
        except Exception as exc:
            error = self.error_handler.handle(exc, context)
            return EnhancementResult(
                text=raw,
                enhanced=False,
                chunked=chunked,
                chunk_count=chunk_count,
                error=self.error_handler.user_message(error),
            )

        return EnhancementResult(text=text, enhanced=True, chunked=chunked, chunk_count=chunk_count)

    # -----------------------------------------------------------------------
    # Summarisation
    # -----------------------------------------------------------------------

    def summarize(
        self,
        text: str,
        metadata: VideoMetadata | None,
        provider: LLMProvider,
    ) -> str:
        """
        Summarise plain transcript text.

        Text that already starts with "Error:" is returned untouched.  Long
        input is summarised in parts, each under a "**Part N:**" heading.
        Provider failures come back as an "Error:" string.

        Raises:
            ValidationError: If `text` is empty.
        """
        if not text or not text.strip():
            raise ValidationError("No transcript content to summarize")
        if text.startswith("Error:"):
            return text

        chunks = self.chunker.chunk_text(
            text, ChunkingOptions(max_chunk_size=self.chunk_size, preserve_context=False),
        )
        total = len(chunks)
        requests = [
            (f"summary part {chunk.index + 1}", summary_messages(chunk.text, metadata, chunk.index + 1, total))
            for chunk in chunks
        ]
        context = ErrorContext(operation="summarize_transcript", provider=provider.tag)
        try:
            summaries = self._run_sequentially(provider, requests, SUMMARY_MAX_TOKENS)
        except Exception as exc:
            error = self.error_handler.handle(exc, context)
            return f"Error: Failed to generate summary. {self.error_handler.user_message(error)}"

        if total == 1:
            return summaries[0]
        parts = [f"**Part {number}:**\n{summary}" for number, summary in enumerate(summaries, start=1)]
        return "# Video Summary\n\n" + "\n\n---\n\n".join(parts)


def enhance(
    segments: list[TranscriptSegment],
    metadata: VideoMetadata,
    provider_config: ProviderConfig,
    orchestrator: EnhancementOrchestrator | None = None,
) -> str:
    """
    Caller-facing enhancement.

    Returns the enhanced transcript, or the raw transcript preceded by an
    "Error: <explanation>" line when enhancement could not complete.
    """
    raw = segments_to_text(segments)
    try:
        provider = create_provider(provider_config)
    except ValidationError as exc:
        return f"Error: {exc.message}\n\n{raw}"

    validation = provider.validate_config()
    if not validation.valid:
        provider.close()
        return f"Error: Invalid provider configuration: {', '.join(validation.errors)}\n\n{raw}"

    orchestrator = orchestrator or EnhancementOrchestrator()
    try:
        result = orchestrator.enhance(segments, metadata, provider)
    finally:
        provider.close()

    if result.enhanced:
        return result.text
    return f"Error: {result.error}\n\n{result.text}"
