"""
LLM provider backends behind one interface.

    from yt_transcript_enhancer.providers import create_provider, openai_config
    provider = create_provider(openai_config(api_key="sk-..."))
"""

from yt_transcript_enhancer.providers.base import (
    LLMProvider,
    validate_config,
    validate_request,
)
from yt_transcript_enhancer.providers.manager import (
    PROVIDER_TYPES,
    ProviderManager,
    config_for,
    configs_from_settings,
    create_provider,
)
from yt_transcript_enhancer.providers.ollama import OllamaProvider, ollama_config
from yt_transcript_enhancer.providers.openai import OpenAIProvider, openai_config
from yt_transcript_enhancer.providers.openrouter import OpenRouterProvider, openrouter_config

__all__ = [
    "LLMProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "PROVIDER_TYPES",
    "ProviderManager",
    "config_for",
    "configs_from_settings",
    "create_provider",
    "ollama_config",
    "openai_config",
    "openrouter_config",
    "validate_config",
    "validate_request",
]
