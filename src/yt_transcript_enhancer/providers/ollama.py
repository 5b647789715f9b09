"""
Ollama backend for a locally running server.

Chat goes through Ollama's OpenAI-compatible `/v1/chat/completions`; model
listing and pulling use the native `/api/tags` and `/api/pull` endpoints.
No API key is needed.
"""

from __future__ import annotations

import logging

import httpx

from yt_transcript_enhancer.errors import AppError, NetworkError
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

OLLAMA_BASE_URL = "http://localhost:11434"

OLLAMA_MODELS = (
    "llama3.1:8b",
    "llama3.1:70b",
    "mistral:7b",
    "mistral:latest",
    "codellama:7b",
    "codellama:13b",
    "phi3:3.8b",
    "phi3:14b",
    "gemma:7b",
    "qwen2:7b",
)


def ollama_config(model: str = "llama3.1:8b", base_url: str = OLLAMA_BASE_URL) -> ProviderConfig:
    return ProviderConfig(
        name="ollama",
        base_url=base_url.rstrip("/"),
        default_model=model,
        available_models=OLLAMA_MODELS,
        requires_auth=False,
        is_local=True,
        max_tokens=8000,
        supports_streaming=True,
    )


class OllamaProvider(LLMProvider):
    tag = "ollama"
    label = "Ollama"

    def is_running(self) -> bool:
        """True when the server answers GET /api/tags with 200."""
        try:
            response = self.client.get(f"{self.config.base_url}/api/tags")
        except httpx.TransportError:
            return False
        return response.status_code == 200

    def chat_completion(self, request: LLMRequest) -> LLMResponse:
        validate_request(request, provider=self.tag)
        context = self.context("chat_completion", model=request.model)
        if not self.is_running():
            raise NetworkError("Ollama is not running. Please start Ollama first.", context=context)

        # The compatible endpoint reads top-level sampling fields and ignores `options`.
        body = {**chat_body(request), "stream": False}
        response = send(
            self.client,
            "POST",
            f"{self.config.base_url}/v1/chat/completions",
            context,
            headers=build_headers(extra=self.config.headers),
            json=body,
        )
        return parse_chat_response(decode_json(response, context), self.label, context)

    def test_connection(self) -> bool:
        if not self.is_running():
            return False
        return super().test_connection()

    def get_available_models(self) -> list[str]:
        context = self.context("list_models")
        try:
            response = send(self.client, "GET", f"{self.config.base_url}/api/tags", context)
            data = decode_json(response, context)
        except AppError as exc:
            logger.warning("Failed to fetch Ollama models, using defaults: %s", exc)
            return list(self.config.available_models)

        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            return list(self.config.available_models)
        names = sorted(m["name"] for m in models if isinstance(m, dict) and m.get("name"))
        return names or list(self.config.available_models)

    def pull_model(self, model_name: str) -> bool:
        """Ask the server to download `model_name`.  Returns False on failure."""
        context = self.context("pull_model", model=model_name)
        try:
            send(
                self.client,
                "POST",
                f"{self.config.base_url}/api/pull",
                context,
                json={"name": model_name, "stream": False},
            )
        except AppError as exc:
            logger.error("Failed to pull model %s: %s", model_name, exc)
            return False
        logger.info("Pulled Ollama model %s", model_name)
        return True
