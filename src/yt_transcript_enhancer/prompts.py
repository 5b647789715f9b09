"""
prompts.py — Prompt text for transcript enhancement and summarisation.

Kept apart from the orchestration so wording can change without touching
control flow.  Every builder returns a list of ChatMessage ready to drop
into an LLMRequest.
"""

from __future__ import annotations

import math

from yt_transcript_enhancer.models import ChatMessage, TextChunk, TranscriptSegment, VideoMetadata

ENHANCE_SYSTEM_PROMPT = (
    "You are an expert transcript editor. Your job is to clean up raw transcript text "
    "while preserving the EXACT spoken words. Only add punctuation, formatting, and "
    "organization to make the actual spoken content more readable."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert at creating concise, well-structured summaries of video transcripts. "
    "Create a summary that captures the key points, main arguments, and important details."
)

_FORMAT_INSTRUCTIONS = """\
IMPORTANT: Your task is to clean up the raw transcript text while preserving the spoken words. \
Only add words to complete sentences. Add punctuation, proper capitalization, paragraph breaks, \
and organize into sections with timestamps.

STEP 1: First, analyze the transcript to determine how many speakers are present. Look for:
- Changes in voice/speaking style
- Conversational back-and-forth
- Interview format indicators
- Multiple distinct speaking patterns

STEP 2: Format the transcript based on your speaker analysis:

IF SINGLE SPEAKER (most common):
### Topic Heading

[00:00]()

The exact words from the transcript, cleaned up with punctuation and paragraph breaks.

IF MULTIPLE SPEAKERS (only when clearly identifiable):
### Topic Heading

[00:00]()

**Host**
The exact words spoken by the host, cleaned up.

**Guest**
The exact words spoken by the guest, cleaned up.

CRITICAL RULES:
- PRESERVE EXACT WORDS: Use the actual spoken words from the transcript
- CLEAN, DON'T REWRITE: Only add punctuation, capitalization, and organization - don't change the meaning
- Only list the speakers if more than one person is speaking
- Use ### topic-based headings
- Format the timestamps as [MM:SS]() on separate lines before the paragraph they introduce
- Group copy into logical paragraphs with one timestamp per paragraph, matching its first line
- TIMESTAMP VALIDATION: Use ONLY timestamps from the provided transcript data
- All output timestamps must be <= {duration_display}
- Fix spelling of names/technical terms by using the video title and description context
- Remove excessive filler words ("um," "uh," repetitive phrases) but keep the core spoken content

Format the output as clean markdown."""


def format_mmss(seconds: float) -> str:
    """Zero-padded MM:SS; minutes keep counting past the hour."""
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"


def format_duration(seconds: int) -> str:
    """M:SS as shown in the prompt context block."""
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"


def transcript_duration(segments: list[TranscriptSegment]) -> int:
    """Measured length in whole seconds, from the end of the last segment."""
    if not segments:
        return 0
    last = segments[-1]
    return math.ceil((last.offset_ms + last.duration_ms) / 1000)


def timestamped_lines(segments: list[TranscriptSegment]) -> str:
    """One "At MM:SS - text" line per segment."""
    return "\n".join(
        f"At {format_mmss(segment.start)} - {segment.text.strip()}" for segment in segments
    )


def _context_block(metadata: VideoMetadata, duration_seconds: int) -> str:
    return (
        "CONTEXT INFORMATION:\n"
        f'Video Title: "{metadata.title}"\n'
        f'Channel: "{metadata.channel}"\n'
        f"Video Duration: {format_duration(duration_seconds)} ({duration_seconds} seconds)\n"
        f'Description: "{metadata.description}"\n'
        "\n--- END OF CONTEXT ---"
    )


def enhancement_messages(segments: list[TranscriptSegment], metadata: VideoMetadata) -> list[ChatMessage]:
    """Single-shot prompt: the whole transcript, one line per segment."""
    duration = transcript_duration(segments)
    user = (
        f"{_context_block(metadata, duration)}\n\n"
        f"RAW TRANSCRIPT WITH TIMESTAMPS:\n{timestamped_lines(segments)}\n\n"
        "--- END OF TRANSCRIPT ---\n\n"
        + _FORMAT_INSTRUCTIONS.format(duration_display=format_duration(duration))
    )
    return [
        ChatMessage(role="system", content=ENHANCE_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user),
    ]


def chunk_enhancement_messages(
    chunk: TextChunk,
    total: int,
    metadata: VideoMetadata,
    duration_seconds: int,
) -> list[ChatMessage]:
    """
    Prompt for one part of a chunked enhancement.

    The chunk's time window is stated so the model keeps its timestamps in
    range, and the model is told not to add a title or closing remarks
    because the parts are concatenated afterwards.
    """
    window = ""
    if chunk.start_time is not None and chunk.end_time is not None:
        window = (
            f"This part covers {format_mmss(chunk.start_time)} to {format_mmss(chunk.end_time)} "
            "of the video.\n"
        )
    user = (
        f"{_context_block(metadata, duration_seconds)}\n\n"
        f"This is part {chunk.index + 1} of {total} of a longer transcript. {window}"
        "Continue the document seamlessly: do not add an introduction, a document title, "
        "or closing remarks.\n\n"
        f"RAW TRANSCRIPT PART:\n{chunk.text}\n\n"
        "--- END OF TRANSCRIPT PART ---\n\n"
        + _FORMAT_INSTRUCTIONS.format(duration_display=format_duration(duration_seconds))
    )
    return [
        ChatMessage(role="system", content=ENHANCE_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user),
    ]


def summary_messages(
    text: str,
    metadata: VideoMetadata | None = None,
    part: int | None = None,
    total: int | None = None,
) -> list[ChatMessage]:
    system = SUMMARY_SYSTEM_PROMPT
    if part is not None and total and total > 1:
        system += f" This is part {part} of {total} of a longer transcript."

    user = "Please provide a comprehensive summary of this video transcript:\n\n"
    if metadata is not None:
        user += f'Video Title: "{metadata.title}"\nChannel: "{metadata.channel}"\n'
        if metadata.description:
            user += f'Description: "{metadata.description}"\n'
    user += f"\nTranscript:\n{text}"
    return [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=user),
    ]
