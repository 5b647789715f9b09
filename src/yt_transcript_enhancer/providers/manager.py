"""
manager.py — Build providers from settings and route requests to them.

`create_provider()` picks the backend class from `ProviderConfig.name`.
`ProviderManager` owns one provider per configured backend and the notion of
which one is current.  OpenAI and OpenRouter are only built when a key is
set; Ollama is always built because it needs no credentials (whether it's
actually running is checked per call).
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

import httpx

from yt_transcript_enhancer.errors import AppError, ErrorContext, ValidationError
from yt_transcript_enhancer.models import LLMRequest, LLMResponse, ProviderConfig, ProviderSettings, ValidationResult
from yt_transcript_enhancer.providers.base import LLMProvider
from yt_transcript_enhancer.providers.ollama import OllamaProvider, ollama_config
from yt_transcript_enhancer.providers.openai import OpenAIProvider, openai_config
from yt_transcript_enhancer.providers.openrouter import OpenRouterProvider, openrouter_config

logger = logging.getLogger(__name__)

PROVIDER_TYPES: dict[str, type[LLMProvider]] = {
    OpenAIProvider.tag: OpenAIProvider,
    OpenRouterProvider.tag: OpenRouterProvider,
    OllamaProvider.tag: OllamaProvider,
}


def create_provider(config: ProviderConfig, client: httpx.Client | None = None) -> LLMProvider:
    """
    Instantiate the backend selected by `config.name`.

    Raises:
        ValidationError: If the name isn't a known provider tag.
    """
    provider_cls = PROVIDER_TYPES.get(config.name.lower())
    if provider_cls is None:
        raise ValidationError(
            f"Unknown provider: {config.name!r} (expected one of {', '.join(PROVIDER_TYPES)})",
            context=ErrorContext(operation="create_provider", provider=config.name),
        )
    return provider_cls(config, client=client)


def configs_from_settings(settings: ProviderSettings) -> dict[str, ProviderConfig]:
    """ProviderConfig per backend that `settings` has enough data for."""
    configs: dict[str, ProviderConfig] = {}
    if settings.openai_api_key:
        configs["openai"] = openai_config(settings.openai_api_key, settings.openai_model)
    if settings.openrouter_api_key:
        configs["openrouter"] = openrouter_config(settings.openrouter_api_key, settings.openrouter_model)
    configs["ollama"] = ollama_config(settings.ollama_model, settings.ollama_base_url)
    return configs


def config_for(
    settings: ProviderSettings,
    tag: str | None = None,
    model: str | None = None,
) -> ProviderConfig:
    """
    ProviderConfig for `tag` (default: the current provider), optionally
    with a different default model.

    Raises:
        ValidationError: If the provider is unknown or has no credentials.
    """
    tag = (tag or settings.current_provider).lower()
    if tag not in PROVIDER_TYPES:
        raise ValidationError(
            f"Unknown provider: {tag!r} (expected one of {', '.join(PROVIDER_TYPES)})",
            context=ErrorContext(operation="config_for", provider=tag),
        )
    config = configs_from_settings(settings).get(tag)
    if config is None:
        raise ValidationError(
            f"Provider {tag} is not configured - set its API key",
            context=ErrorContext(operation="config_for", provider=tag),
        )
    return config.replace(default_model=model) if model else config


class ProviderManager:
    """
    Holds the configured providers and dispatches to the current one.

    Args:
        settings: Which provider is current plus per-provider credentials.
        client:   Optional shared httpx.Client passed to every provider.
    """

    def __init__(self, settings: ProviderSettings, client: httpx.Client | None = None) -> None:
        self._client = client
        self.settings = settings
        self._providers: dict[str, LLMProvider] = {}
        self._build()

    def _build(self) -> None:
        for tag, config in configs_from_settings(self.settings).items():
            self._providers[tag] = create_provider(config, client=self._client)
        logger.debug("Initialized providers: %s", ", ".join(self._providers))

    def close(self) -> None:
        for provider in self._providers.values():
            provider.close()

    def update_settings(self, settings: ProviderSettings) -> None:
        """Replace the settings and rebuild every provider from scratch."""
        self.close()
        self.settings = settings
        self._providers = {}
        self._build()

    def get_current_provider(self) -> LLMProvider | None:
        return self._providers.get(self.settings.current_provider)

    def get_provider(self, tag: str) -> LLMProvider | None:
        return self._providers.get(tag)

    def is_provider_available(self, tag: str) -> bool:
        provider = self._providers.get(tag)
        return provider is not None and provider.validate_config().valid

    def test_provider(self, tag: str) -> bool:
        provider = self._providers.get(tag)
        return provider.test_connection() if provider else False

    def get_available_models(self, tag: str) -> list[str]:
        provider = self._providers.get(tag)
        return provider.get_available_models() if provider else []

    def chat_completion(self, request: LLMRequest) -> LLMResponse:
        """
        Send `request` to the current provider, filling in its default model
        when the request names none.

        Raises:
            ValidationError: No current provider is configured.
            AppError:        Whatever the provider raises.
        """
        provider = self.get_current_provider()
        if provider is None:
            raise ValidationError(
                f"Provider {self.settings.current_provider} is not available",
                context=ErrorContext(operation="chat_completion", provider=self.settings.current_provider),
            )
        if not request.model:
            request = dataclasses.replace(request, model=provider.config.default_model)
        return provider.chat_completion(request)

    def get_provider_status(self) -> dict[str, dict[str, Any]]:
        """Availability per backend, plus a live connection test for available ones."""
        status: dict[str, dict[str, Any]] = {}
        for tag in PROVIDER_TYPES:
            available = self.is_provider_available(tag)
            entry: dict[str, Any] = {"available": available}
            if available:
                try:
                    entry["connected"] = self.test_provider(tag)
                except AppError as exc:
                    entry["connected"] = False
                    entry["error"] = exc.message
            status[tag] = entry
        return status

    def get_provider_validation(self) -> dict[str, ValidationResult]:
        validation: dict[str, ValidationResult] = {}
        for tag in PROVIDER_TYPES:
            provider = self._providers.get(tag)
            if provider is None:
                validation[tag] = ValidationResult(valid=False, errors=["Provider not initialized"])
            else:
                validation[tag] = provider.validate_config()
        return validation
