"""OpenAI chat-completions backend."""

from __future__ import annotations

import logging

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

OPENAI_BASE_URL = "https://api.openai.com/v1"

OPENAI_MODELS = ("gpt-4o-mini", "gpt-4o", "gpt-4-turbo", "gpt-4", "gpt-3.5-turbo")

# Substrings that mark non-chat GPT models in the /models listing.
_EXCLUDED_MODEL_MARKERS = ("instruct", "edit", "search")


def openai_config(
    api_key: str,
    model: str = "gpt-4o-mini",
    base_url: str = OPENAI_BASE_URL,
) -> ProviderConfig:
    return ProviderConfig(
        name="openai",
        base_url=base_url,
        api_key=api_key,
        default_model=model,
        available_models=OPENAI_MODELS,
        requires_auth=True,
        is_local=False,
        max_tokens=8000,
        supports_streaming=True,
    )


def is_chat_model(model_id: str) -> bool:
    return "gpt" in model_id and not any(marker in model_id for marker in _EXCLUDED_MODEL_MARKERS)


class OpenAIProvider(LLMProvider):
    tag = "openai"
    label = "OpenAI"

    def chat_completion(self, request: LLMRequest) -> LLMResponse:
        validate_request(request, provider=self.tag)
        context = self.context("chat_completion", model=request.model)
        response = send(
            self.client,
            "POST",
            f"{self.config.base_url}/chat/completions",
            context,
            headers=build_headers(self.config.api_key, self.config.headers),
            json=chat_body(request),
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
            logger.warning("Failed to fetch OpenAI models, using defaults: %s", exc)
            return list(self.config.available_models)

        models = sorted(
            item["id"] for item in data.get("data", [])
            if isinstance(item, dict) and isinstance(item.get("id"), str) and is_chat_model(item["id"])
        )
        return models or list(self.config.available_models)

