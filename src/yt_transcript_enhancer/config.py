"""
config.py — Runtime settings loaded from the environment.

Values come from environment variables; a `.env` file in the working
directory is read first when present.  Nothing here is persisted; callers
that need other values build a Settings directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from yt_transcript_enhancer.models import ProviderSettings

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_TOKEN_THRESHOLD = 6000
DEFAULT_LINE_THRESHOLD = 500
DEFAULT_CHUNK_SIZE = 3000
DEFAULT_REQUEST_DELAY = 1.0

# Desktop browser UA used for page fetches.
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """
    Everything configurable about acquisition, metadata and enhancement.

    Attributes:
        provider:          Active LLM provider tag (openai|openrouter|ollama).
        openai_api_key:    OpenAI key ("" when unset).
        openai_model:      Default OpenAI model.
        openrouter_api_key / openrouter_model: Same for OpenRouter.
        ollama_base_url / ollama_model:         Local Ollama server and model.
        youtube_api_key:   YouTube Data API key for metadata (optional).
        http_timeout:      Seconds before any HTTP request is abandoned.
        lang / country:    hl / gl sent to the internal transcript endpoint.
        token_threshold:   Estimated tokens above which enhancement is chunked.
        line_threshold:    Segment count above which enhancement is chunked.
        chunk_size:        Per-chunk token bound in chunked mode.
        request_delay:     Seconds between consecutive chunk requests.
    """
    provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openrouter_api_key: str = ""
    openrouter_model: str = "anthropic/claude-3.5-sonnet"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    youtube_api_key: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    lang: str = "en"
    country: str = "US"
    token_threshold: int = DEFAULT_TOKEN_THRESHOLD
    line_threshold: int = DEFAULT_LINE_THRESHOLD
    chunk_size: int = DEFAULT_CHUNK_SIZE
    request_delay: float = DEFAULT_REQUEST_DELAY

    def provider_settings(self) -> ProviderSettings:
        return ProviderSettings(
            current_provider=self.provider,
            openai_api_key=self.openai_api_key,
            openai_model=self.openai_model,
            openrouter_api_key=self.openrouter_api_key,
            openrouter_model=self.openrouter_model,
            ollama_base_url=self.ollama_base_url,
            ollama_model=self.ollama_model,
        )


def load_settings(env_file: str | os.PathLike | None = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: Optional path to a dotenv file.  When omitted, `.env` in
                  the current directory is loaded if it exists.  Variables
                  already set in the environment win over the file.
    """
    path = Path(env_file) if env_file else Path.cwd() / ".env"
    if path.exists():
        load_dotenv(path, override=False)

    return Settings(
        provider=os.getenv("YT_TRANSCRIPT_PROVIDER", "openai").strip().lower(),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
        openrouter_model=os.getenv("OPENROUTER_MODEL", "anthropic/claude-3.5-sonnet"),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
        ollama_model=os.getenv("OLLAMA_MODEL", "llama3.1:8b"),
        youtube_api_key=os.getenv("YOUTUBE_API_KEY") or None,
        http_timeout=_env_float("YT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        lang=os.getenv("YT_TRANSCRIPT_LANG", "en"),
        country=os.getenv("YT_TRANSCRIPT_COUNTRY", "US"),
        token_threshold=_env_int("ENHANCE_TOKEN_THRESHOLD", DEFAULT_TOKEN_THRESHOLD),
        line_threshold=_env_int("ENHANCE_LINE_THRESHOLD", DEFAULT_LINE_THRESHOLD),
        chunk_size=_env_int("ENHANCE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        request_delay=_env_float("ENHANCE_REQUEST_DELAY", DEFAULT_REQUEST_DELAY),
    )
