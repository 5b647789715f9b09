"""
chunking.py — Split long transcripts into token-bounded pieces.

Token counts are estimated, not measured: ceil(characters / 4).  Every
threshold in the package is expressed in these estimated tokens, so changing
the estimate moves chunk boundaries.

Chunks break on sentence boundaries (plain text) or segment boundaries
(timed segments).  With `preserve_context` on, each new chunk starts with a
few whole trailing sentences / segments from the previous one so the LLM
sees some context across the cut.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from yt_transcript_enhancer.models import TextChunk, TranscriptSegment

DEFAULT_MAX_CHUNK_SIZE = 6000
DEFAULT_OVERLAP_SIZE = 200

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class ChunkingOptions:
    """
    Attributes:
        max_chunk_size:   Upper bound per chunk, in estimated tokens.
        overlap_size:     Upper bound on carried-over context, in characters.
        preserve_context: Carry trailing sentences/segments into the next chunk.
    """
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    overlap_size: int = DEFAULT_OVERLAP_SIZE
    preserve_context: bool = True


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def needs_chunking(text: str, max_tokens: int = DEFAULT_MAX_CHUNK_SIZE) -> bool:
    return estimate_tokens(text) > max_tokens


def split_sentences(text: str) -> list[str]:
    """Split after ., ! or ? followed by whitespace; blank pieces are dropped."""
    return [sentence for sentence in _SENTENCE_BOUNDARY.split(text) if sentence.strip()]


def _trailing_sentences(text: str, max_chars: int) -> str:
    """The longest run of whole trailing sentences whose joined length ≤ max_chars."""
    result = ""
    for sentence in reversed(split_sentences(text)):
        candidate = f"{sentence} {result}" if result else sentence
        if len(candidate) > max_chars:
            break
        result = candidate
    return result


def _trailing_segments(segments: list[TranscriptSegment], max_chars: int) -> list[TranscriptSegment]:
    """Whole trailing segments whose summed text length ≤ max_chars."""
    kept: list[TranscriptSegment] = []
    total = 0
    for segment in reversed(segments):
        if total + len(segment.text) > max_chars:
            break
        kept.insert(0, segment)
        total += len(segment.text)
    return kept


def _segments_chunk(segments: list[TranscriptSegment], index: int) -> TextChunk:
    return TextChunk(
        text=" ".join(segment.text for segment in segments),
        index=index,
        start_time=segments[0].start,
        end_time=segments[-1].end,
    )


class ChunkingEngine:
    """
    Stateless chunker.  One instance is built by the caller and handed to
    the enhancement orchestrator.
    """

    def __init__(self, options: ChunkingOptions | None = None) -> None:
        self.options = options or ChunkingOptions()

    estimate_tokens = staticmethod(estimate_tokens)
    needs_chunking = staticmethod(needs_chunking)

    def chunk_text(self, text: str, options: ChunkingOptions | None = None) -> list[TextChunk]:
        """
        Split plain text into chunks of at most `max_chunk_size` estimated
        tokens, breaking between sentences.

        A single sentence longer than the bound becomes its own oversized
        chunk rather than being cut mid-sentence.
        """
        opts = options or self.options
        if estimate_tokens(text) <= opts.max_chunk_size:
            return [TextChunk(text=text, index=0)]

        chunks: list[TextChunk] = []
        current = ""
        for sentence in split_sentences(text):
            candidate = f"{current} {sentence}" if current else sentence
            if current and estimate_tokens(candidate) > opts.max_chunk_size:
                chunks.append(TextChunk(text=current.strip(), index=len(chunks)))
                overlap = ""
                if opts.preserve_context and opts.overlap_size > 0:
                    overlap = _trailing_sentences(current, opts.overlap_size)
                current = f"{overlap} {sentence}" if overlap else sentence
            else:
                current = candidate

        if current.strip():
            chunks.append(TextChunk(text=current.strip(), index=len(chunks)))
        return chunks

    def chunk_segments(
        self,
        segments: list[TranscriptSegment],
        options: ChunkingOptions | None = None,
    ) -> list[TextChunk]:
        """
        Split timed segments into chunks, never cutting inside a segment.

        Each chunk records the start of its first segment and the end of its
        last one, in seconds.
        """
        opts = options or self.options
        chunks: list[TextChunk] = []
        current: list[TranscriptSegment] = []

        for segment in segments:
            candidate = " ".join(s.text for s in [*current, segment])
            if current and estimate_tokens(candidate) > opts.max_chunk_size:
                chunks.append(_segments_chunk(current, len(chunks)))
                overlap: list[TranscriptSegment] = []
                if opts.preserve_context and opts.overlap_size > 0:
                    overlap = _trailing_segments(current, opts.overlap_size)
                current = [*overlap, segment]
            else:
                current.append(segment)

        if current:
            chunks.append(_segments_chunk(current, len(chunks)))
        return chunks

    @staticmethod
    def merge_chunks(chunks: list[TextChunk]) -> str:
        """Reassemble chunk texts in index order, separated by blank lines."""
        return "\n\n".join(chunk.text for chunk in sorted(chunks, key=lambda c: c.index))

    @staticmethod
    def chunk_stats(chunks: list[TextChunk]) -> dict[str, Any]:
        if not chunks:
            return {"total_chunks": 0, "average_tokens": 0, "max_tokens": 0, "min_tokens": 0}
        counts = [estimate_tokens(chunk.text) for chunk in chunks]
        return {
            "total_chunks": len(chunks),
            "average_tokens": round(sum(counts) / len(counts)),
            "max_tokens": max(counts),
            "min_tokens": min(counts),
        }
