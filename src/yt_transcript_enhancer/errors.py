"""
errors.py — Exception hierarchy and error categorization.

Every exception carries an `http_status` attribute so the FastAPI error
handler can translate library-level errors directly into the correct HTTP
response code, plus a machine-readable `code` and a `recoverable` flag.
Non-recoverable errors (bad credentials, malformed requests, unparsable
payloads) must never be retried; callers surface them directly.

Hierarchy:
    AppError (base, 500)
    ├── ParseError (502)                  PARSE_ERROR, not recoverable
    ├── NotFoundError (404)               NOT_FOUND
    │   ├── VideoNotFoundError (404)
    │   └── TranscriptUnavailableError (404)
    ├── AuthError (401)                   API_UNAUTHORIZED / API_FORBIDDEN, not recoverable
    ├── RateLimitError (429)              API_RATE_LIMITED
    ├── ServerError (502)                 API_SERVER_ERROR
    ├── NetworkError (503)                NETWORK_ERROR / TIMEOUT
    ├── ValidationError (400)             VALIDATION_ERROR, not recoverable
    └── ProviderError (502)               API_ERROR
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorContext:
    """
    Where an error happened.

    Attributes:
        operation: Short operation name, e.g. "fetch_transcript".
        provider:  Provider tag when the error came from an LLM backend.
        details:   Free-form extra data (video id, status code, ...).
        timestamp: When the error was categorized (UTC).
    """
    operation: str
    provider: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class AppError(Exception):
    """
    Root exception for everything this package raises.

    Attributes:
        message:     Human-readable description of what went wrong.
        code:        Stable machine-readable error code.
        context:     ErrorContext describing the failing operation.
        recoverable: False means the caller must not retry.
        http_status: Suggested HTTP status code for the API layer.
    """

    default_code = "UNKNOWN_ERROR"
    default_recoverable = True
    default_http_status = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: ErrorContext | None = None,
        recoverable: bool | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or ErrorContext(operation="unknown")
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.http_status = http_status or self.default_http_status

    def with_context(self, context: ErrorContext) -> "AppError":
        """Attach a context in place and return self (for `raise err.with_context(...)`)."""
        self.context = context
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
            "recoverable": self.recoverable,
            "operation": self.context.operation,
            "provider": self.context.provider,
        }


# ---------------------------------------------------------------------------
# Specific error cases
# ---------------------------------------------------------------------------

class ParseError(AppError):
    """
    Raised when an upstream payload (page HTML, embedded JSON, API response)
    cannot be decoded.  The original decoder message is kept in `message`.
    """

    default_code = "PARSE_ERROR"
    default_recoverable = False
    default_http_status = 502


class NotFoundError(AppError):
    """Raised when no transcript or metadata exists for the requested video."""

    default_code = "NOT_FOUND"
    default_recoverable = False
    default_http_status = 404


class VideoNotFoundError(NotFoundError):
    """
    Raised when the input isn't a recognisable YouTube reference or the
    video doesn't exist.
    """

    def __init__(self, video_id: str) -> None:
        super().__init__(message=f"Video not found: {video_id}")
        self.video_id = video_id


class TranscriptUnavailableError(NotFoundError):
    """
    Raised when every acquisition tier failed to produce a transcript.

    The message is written for end users: it says automated extraction
    failed and points at the manual workaround.
    """

    def __init__(self, video_id: str, reason: str = "") -> None:
        detail = f" ({reason})" if reason else ""
        super().__init__(
            message=(
                f"Could not automatically extract a transcript for video {video_id}{detail}. "
                "The video may have captions disabled or YouTube may have changed its page format. "
                "As a workaround, open the video on YouTube, choose '...more' → 'Show transcript', "
                "and copy the transcript manually."
            ),
        )
        self.video_id = video_id


class AuthError(AppError):
    """Invalid or missing credentials (HTTP 401/403).  Never retried."""

    default_code = "API_UNAUTHORIZED"
    default_recoverable = False
    default_http_status = 401


class RateLimitError(AppError):
    """Upstream rate limit hit (HTTP 429).  Retry-eligible after a pause."""

    default_code = "API_RATE_LIMITED"
    default_http_status = 429


class ServerError(AppError):
    """Upstream 5xx response."""

    default_code = "API_SERVER_ERROR"
    default_http_status = 502


class NetworkError(AppError):
    """
    Connectivity failure.  Timeouts use code TIMEOUT so callers can tell a
    hung request apart from a refused connection.
    """

    default_code = "NETWORK_ERROR"
    default_http_status = 503


class ValidationError(AppError):
    """Malformed request or configuration, rejected before any network call."""

    default_code = "VALIDATION_ERROR"
    default_recoverable = False
    default_http_status = 400

    def __init__(self, message: str, errors: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.errors = errors or []


class ProviderError(AppError):
    """Any other provider failure; the upstream message is preserved."""

    default_code = "API_ERROR"
    default_http_status = 502


# ---------------------------------------------------------------------------
# Categorization helpers
# ---------------------------------------------------------------------------

# User-facing messages per category.
_STATUS_MESSAGES = {
    401: "Authentication failed - check your API key",
    403: "Access forbidden - check your API key permissions",
    429: "Rate limit exceeded - please wait and try again",
}


def error_from_status(
    status: int,
    body: str = "",
    context: ErrorContext | None = None,
) -> AppError:
    """
    Map an HTTP status code to the matching AppError subclass.

    Args:
        status:  HTTP status code of the failed response.
        body:    Response body, kept for the generic case.
        context: Optional error context to attach.

    Returns:
        An AppError instance (not raised).
    """
    if status == 401:
        return AuthError(_STATUS_MESSAGES[401], code="API_UNAUTHORIZED", context=context)
    if status == 403:
        return AuthError(
            _STATUS_MESSAGES[403], code="API_FORBIDDEN", context=context, http_status=403,
        )
    if status == 429:
        return RateLimitError(_STATUS_MESSAGES[429], context=context)
    if 500 <= status < 600:
        return ServerError(
            f"Server error ({status}) - please try again later", context=context,
        )
    detail = f": {body.strip()[:200]}" if body and body.strip() else ""
    return ProviderError(f"HTTP {status} error{detail}", context=context)


def error_from_transport(exc: httpx.TransportError, context: ErrorContext | None = None) -> NetworkError:
    """Wrap an httpx transport failure, keeping timeouts distinguishable."""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(f"Request timed out: {exc}", code="TIMEOUT", context=context)
    return NetworkError(f"Network error: {exc}", context=context)


def format_error(exc: BaseException) -> str:
    """
    Turn any exception into a short, human-readable message.

    AppErrors already carry a categorized message; httpx errors are
    categorized on the fly; anything else keeps its own message.
    """
    if isinstance(exc, AppError):
        return exc.message
    if isinstance(exc, httpx.HTTPStatusError):
        return error_from_status(exc.response.status_code, exc.response.text).message
    if isinstance(exc, httpx.TransportError):
        return error_from_transport(exc).message
    return str(exc) or "Unknown error occurred"


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------

# Actionable text shown to users, keyed by error code.
_USER_MESSAGES = {
    "API_UNAUTHORIZED": "API key invalid. Please check the API key for this provider.",
    "API_FORBIDDEN": "API key invalid or lacks permission for this model.",
    "API_RATE_LIMITED": "API rate limit exceeded. Please wait a moment and try again.",
    "API_SERVER_ERROR": "The provider returned a server error. Please try again later.",
    "NETWORK_ERROR": "Network error. Please check your connection and try again.",
    "TIMEOUT": "Request timed out. Please try again.",
}


class ErrorHandler:
    """
    Categorizes, logs and records errors.

    One instance is constructed by the caller and passed to the components
    that need it (the enhancement orchestrator, the pipeline).

    Args:
        max_history: How many categorized errors to keep for stats().
    """

    def __init__(self, max_history: int = 100) -> None:
        self.max_history = max_history
        self._history: list[AppError] = []

    def categorize(self, exc: BaseException, context: ErrorContext) -> AppError:
        """
        Convert any exception into an AppError carrying `context`.

        AppErrors keep their class and code; httpx failures are mapped by
        status / transport type; everything else becomes UNKNOWN_ERROR.
        """
        if isinstance(exc, AppError):
            # Keep provider/operation already recorded deeper in the stack.
            if exc.context.operation == "unknown":
                exc.context = context
            elif context.provider and not exc.context.provider:
                exc.context = replace(exc.context, provider=context.provider)
            return exc
        if isinstance(exc, httpx.HTTPStatusError):
            return error_from_status(exc.response.status_code, exc.response.text, context)
        if isinstance(exc, httpx.TransportError):
            return error_from_transport(exc, context)
        return AppError(str(exc) or "An error occurred", context=context)

    def handle(self, exc: BaseException, context: ErrorContext) -> AppError:
        """Categorize, log and record `exc`.  Returns the AppError; never raises."""
        error = self.categorize(exc, context)
        provider = f" [{error.context.provider}]" if error.context.provider else ""
        logger.error(
            "[%s]%s %s during %s", error.code, provider, error.message, error.context.operation,
        )
        self._history.append(error)
        if len(self._history) > self.max_history:
            self._history = self._history[-self.max_history:]
        return error

    @staticmethod
    def should_retry(error: AppError) -> bool:
        return error.recoverable

    @staticmethod
    def user_message(error: AppError) -> str:
        """Actionable message for `error`, prefixed with the provider name if known."""
        message = _USER_MESSAGES.get(error.code, error.message)
        if error.context.provider:
            return f"{error.context.provider}: {message}"
        return message

    def stats(self) -> dict[str, Any]:
        """Counts of recorded errors by code and by provider, plus the last ten."""
        by_code = Counter(e.code for e in self._history)
        by_provider = Counter(e.context.provider for e in self._history if e.context.provider)
        return {
            "total_errors": len(self._history),
            "errors_by_type": dict(by_code),
            "errors_by_provider": dict(by_provider),
            "recent_errors": self._history[-10:],
        }

    def clear_history(self) -> None:
        self._history = []
