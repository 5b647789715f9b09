"""
base.py — The LLM provider interface and the helpers every backend shares.

Backends implement LLMProvider; everything common (config/request
validation, header building, the OpenAI-compatible POST and response
normalisation) lives in plain module functions so a backend opts into what
it needs instead of inheriting behaviour.

Requests are validated before any network I/O.  A request that fails
validation raises ValidationError and no HTTP call is made.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from yt_transcript_enhancer.config import DEFAULT_HTTP_TIMEOUT
from yt_transcript_enhancer.errors import (
    AppError,
    ErrorContext,
    ProviderError,
    ValidationError,
    error_from_status,
    error_from_transport,
)
from yt_transcript_enhancer.models import (
    VALID_ROLES,
    ChatMessage,
    LLMRequest,
    LLMResponse,
    ProviderConfig,
    Usage,
    ValidationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 4000

CONNECTION_TEST_PROMPT = 'Hello, this is a connection test. Please respond with "OK".'

USER_AGENT = "yt-transcript-enhancer/0.1"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_config(config: ProviderConfig) -> ValidationResult:
    """Check the fields every backend needs.  Never raises."""
    errors: list[str] = []
    if not config.name:
        errors.append("Provider name is required")
    if not config.base_url:
        errors.append("Base URL is required")
    if config.requires_auth and not config.api_key:
        errors.append("API key is required for authenticated providers")
    if not config.default_model:
        errors.append("Default model is required")
    return ValidationResult(valid=not errors, errors=errors)


def request_errors(request: LLMRequest) -> list[str]:
    """Every problem with `request`, in field order.  Empty means valid."""
    errors: list[str] = []
    if not request.model:
        errors.append("Model is required")
    if not request.messages:
        errors.append("Messages array is required")
    for index, message in enumerate(request.messages or []):
        if message.role not in VALID_ROLES:
            errors.append(f"Invalid role at message {index}")
        if not message.content:
            errors.append(f"Content is required at message {index}")
    if request.temperature is not None and not 0 <= request.temperature <= 2:
        errors.append("Temperature must be between 0 and 2")
    if request.max_tokens is not None and request.max_tokens < 1:
        errors.append("Max tokens must be greater than 0")
    return errors


def validate_request(request: LLMRequest, provider: str | None = None) -> None:
    """
    Raise ValidationError when `request` is malformed.

    Raises:
        ValidationError: Listing every problem found (see request_errors()).
    """
    errors = request_errors(request)
    if errors:
        raise ValidationError(
            f"Invalid request: {', '.join(errors)}",
            errors=errors,
            context=ErrorContext(operation="validate_request", provider=provider),
        )


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

def build_headers(api_key: str | None = None, extra: dict[str, str] | None = None) -> dict[str, str]:
    headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
    headers.update(extra or {})
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def send(
    client: httpx.Client,
    method: str,
    url: str,
    context: ErrorContext,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue one request and categorize any failure.

    Raises:
        NetworkError:  Transport failure (code TIMEOUT for timeouts).
        AuthError / RateLimitError / ServerError / ProviderError:
                       Non-2xx responses, by status.
    """
    try:
        response = client.request(method, url, **kwargs)
    except httpx.TransportError as exc:
        raise error_from_transport(exc, context) from exc
    if response.status_code >= 400:
        raise error_from_status(response.status_code, response.text, context)
    return response


def decode_json(response: httpx.Response, context: ErrorContext) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError(f"Invalid JSON in response: {exc}", context=context) from exc


def chat_body(request: LLMRequest) -> dict[str, Any]:
    """OpenAI-style request body with the package's default sampling values."""
    return {
        "model": request.model,
        "messages": [message.to_dict() for message in request.messages],
        "temperature": DEFAULT_TEMPERATURE if request.temperature is None else request.temperature,
        "max_tokens": DEFAULT_MAX_TOKENS if request.max_tokens is None else request.max_tokens,
    }


def parse_chat_response(data: Any, label: str, context: ErrorContext) -> LLMResponse:
    """
    Normalise an OpenAI-compatible chat-completion payload.

    Raises:
        ProviderError: When the payload carries no choices, or the first
                       choice isn't shaped like a chat message.
    """
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices, list):
        raise ProviderError(f"No response from {label} API", context=context)

    choice = choices[0]
    if not isinstance(choice, dict):
        raise ProviderError(f"Malformed choice in {label} response", context=context)
    message = choice.get("message")
    if message is None:
        message = {}
    if not isinstance(message, dict):
        raise ProviderError(f"Malformed message in {label} response", context=context)
    content = message.get("content") or ""
    if not isinstance(content, str):
        raise ProviderError(f"Malformed content in {label} response", context=context)
    content = content.strip()
    usage = None
    raw_usage = data.get("usage")
    if isinstance(raw_usage, dict):
        usage = Usage(
            prompt_tokens=raw_usage.get("prompt_tokens") or 0,
            completion_tokens=raw_usage.get("completion_tokens") or 0,
            total_tokens=raw_usage.get("total_tokens") or 0,
        )
    return LLMResponse(
        content=content,
        model=data.get("model") or "",
        usage=usage,
        finish_reason=choice.get("finish_reason"),
    )


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class LLMProvider(ABC):
    """
    Abstract interface for chat-completion backends.

    Args:
        config:  Initial ProviderConfig.  Replaced wholesale by update_config().
        client:  httpx.Client to use; a private one is created when omitted.
        timeout: Per-request timeout for the private client.
    """

    # Value of ProviderConfig.name that selects this backend.
    tag: str = ""
    # Display name used in log lines and error messages.
    label: str = ""

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    @property
    def config(self) -> ProviderConfig:
        return self._config

    def update_config(self, **changes: Any) -> ProviderConfig:
        """Swap in a new config with `changes` applied and return it."""
        self._config = self._config.replace(**changes)
        return self._config

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def context(self, operation: str, **details: Any) -> ErrorContext:
        return ErrorContext(operation=operation, provider=self.tag, details=details)

    def validate_config(self) -> ValidationResult:
        return validate_config(self._config)

    @abstractmethod
    def chat_completion(self, request: LLMRequest) -> LLMResponse:
        """
        Send one chat-completion request.

        Raises:
            ValidationError: Request rejected before any network call.
            AppError:        Categorized transport / HTTP failure.
        """

    @abstractmethod
    def get_available_models(self) -> list[str]:
        """Models the backend offers, or the configured defaults on failure."""

    def test_connection(self) -> bool:
        """
        Send a tiny prompt and check the reply mentions "ok".

        Returns False on any failure instead of raising.
        """
        request = LLMRequest(
            model=self._config.default_model,
            messages=[ChatMessage(role="user", content=CONNECTION_TEST_PROMPT)],
            max_tokens=10,
        )
        try:
            response = self.chat_completion(request)
        except AppError as exc:
            logger.warning("%s connection test failed: %s", self.label, exc)
            return False
        return "ok" in response.content.lower()
