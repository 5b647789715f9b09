"""
OpenRouter backend.

OpenRouter speaks the OpenAI wire format but wants attribution headers and
accepts routing hints; `route: "fallback"` lets it retry the request on an
alternative upstream when the first one is down.
"""

from __future__ import annotations

import logging
from typing import Any

from yt_transcript_enhancer.errors import AppError
from yt_transcript_enhancer.models import LLMRequest, LLMResponse, ProviderConfig
from yt_transcript_enhancer.providers.base import (
    LLMProvider,
    build_headers,
    chat_body,
    decode_json,
    parse_chat_response,
    send,
    validate_request,
)

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://github.com/yt-transcript-enhancer/yt-transcript-enhancer",
    "X-Title": "YT Transcript Enhancer",
}

_EXCLUDED_MODEL_MARKERS = ("embedding", "moderation")


def openrouter_config(
    api_key: str,
    model: str = "anthropic/claude-3.5-sonnet",
    base_url: str = OPENROUTER_BASE_URL,
) -> ProviderConfig:
    return ProviderConfig(
        name="openrouter",
        base_url=base_url,
        api_key=api_key,
        default_model=model,
        available_models=(),
        requires_auth=True,
        is_local=False,
        max_tokens=8000,
        supports_streaming=True,
        headers=dict(OPENROUTER_HEADERS),
    )


def is_chat_model(model_id: str) -> bool:
    """OpenRouter ids look like "vendor/model"; embeddings and moderation are skipped."""
    return "/" in model_id and not any(marker in model_id for marker in _EXCLUDED_MODEL_MARKERS)


class OpenRouterProvider(LLMProvider):
    tag = "openrouter"
    label = "OpenRouter"

    def _body(self, request: LLMRequest) -> dict[str, Any]:
        body = chat_body(request)
        body["route"] = "fallback"
        body["provider"] = {"order": ["primary", "fallback"], "require_parameters": False}
        return body

    def chat_completion(self, request: LLMRequest) -> LLMResponse:
        validate_request(request, provider=self.tag)
        context = self.context("chat_completion", model=request.model)
        response = send(
            self.client,
            "POST",
            f"{self.config.base_url}/chat/completions",
            context,
            headers=build_headers(self.config.api_key, self.config.headers),
            json=self._body(request),
        )
        return parse_chat_response(decode_json(response, context), self.label, context)

    def get_available_models(self) -> list[str]:
        context = self.context("list_models")
        try:
            response = send(
                self.client,
                "GET",
                f"{self.config.base_url}/models",
                context,
                headers=build_headers(self.config.api_key, self.config.headers),
            )
            data = decode_json(response, context)
        except AppError as exc:
            logger.warning("Failed to fetch OpenRouter models: %s", exc)
            return list(self.config.available_models)

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return list(self.config.available_models)
        return sorted(
            item["id"] for item in items
            if isinstance(item, dict) and isinstance(item.get("id"), str) and is_chat_model(item["id"])
        )
