"""
models.py — Value types shared across the package.

All records are frozen dataclasses: once a transcript segment, chunk or
provider configuration is built it is never mutated in place.  Changing a
ProviderConfig means building a new one with `replace()` and swapping the
reference, so anything holding the old instance keeps a consistent snapshot.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["system", "user", "assistant"]

VALID_ROLES: frozenset[str] = frozenset({"system", "user", "assistant"})

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_CHANNEL = "Unknown Channel"


# ---------------------------------------------------------------------------
# Transcript data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TranscriptSegment:
    """
    One timed unit of caption text.

    Attributes:
        text:        The spoken words for this cue.
        offset_ms:   Start of the cue, in milliseconds from the video start.
        duration_ms: Length of the cue in milliseconds (never negative).
    """
    text: str
    offset_ms: int
    duration_ms: int

    @property
    def start(self) -> float:
        """Start time in seconds."""
        return self.offset_ms / 1000

    @property
    def end(self) -> float:
        """End time in seconds."""
        return (self.offset_ms + self.duration_ms) / 1000

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "offset_ms": self.offset_ms, "duration_ms": self.duration_ms}


@dataclass(frozen=True)
class TranscriptResult:
    """Output of a successful acquisition: joined plain text plus the segments."""
    text: str
    segments: list[TranscriptSegment]
    video_id: str = ""
    source: str = ""


@dataclass(frozen=True)
class VideoMetadata:
    """
    Best-effort metadata used as prompt context.

    Unresolved string fields hold placeholders rather than None; only the
    duration may be missing.
    """
    title: str = UNKNOWN_TITLE
    channel: str = UNKNOWN_CHANNEL
    description: str = ""
    duration_seconds: int | None = None


@dataclass(frozen=True)
class TextChunk:
    """
    A bounded slice of transcript text.

    `index` defines reassembly order.  `start_time` / `end_time` (seconds)
    are only set when the chunk was cut from timed segments.
    """
    text: str
    index: int
    start_time: float | None = None
    end_time: float | None = None


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProviderConfig:
    """
    Configuration for one LLM backend.

    `name` doubles as the tag that selects the backend implementation
    ("openai", "openrouter", "ollama").
    """
    name: str
    base_url: str
    default_model: str
    api_key: str | None = None
    available_models: tuple[str, ...] = ()
    requires_auth: bool = True
    is_local: bool = False
    max_tokens: int | None = None
    supports_streaming: bool | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def replace(self, **changes: Any) -> "ProviderConfig":
        """Return a copy with `changes` applied; the original is untouched."""
        if "available_models" in changes:
            changes["available_models"] = tuple(changes["available_models"])
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class ProviderSettings:
    """Which provider is active, plus the per-provider credentials and models."""
    current_provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openrouter_api_key: str = ""
    openrouter_model: str = "anthropic/claude-3.5-sonnet"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Chat-completion envelope
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class LLMRequest:
    """
    Provider-neutral chat-completion request.

    An empty `model` means "use the provider's default model"; the
    ProviderManager fills it in before dispatch.
    """
    model: str
    messages: list[ChatMessage]
    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool = False


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class LLMResponse:
    content: str
    model: str
    usage: Usage | None = None
    finish_reason: str | None = None


# ---------------------------------------------------------------------------
# Enhancement output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnhancementResult:
    """
    What the orchestrator hands back.

    Either `enhanced` is True and `text` is the AI-cleaned transcript, or it
    is False, `text` is the untouched raw transcript and `error` explains why.
    """
    text: str
    enhanced: bool
    chunked: bool = False
    chunk_count: int = 1
    error: str | None = None
