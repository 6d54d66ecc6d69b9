"""LLM Provider Factory.

This module provides factory functions for creating provider instances.
"""

from __future__ import annotations

import os
from typing import Any

from nexus.llm.anthropic import AnthropicProvider
from nexus.llm.base import BaseImageProvider, BaseLLMProvider
from nexus.llm.openai import OpenAIProvider


class LLMProviderFactory:
    """Factory for creating provider instances.

    Supports creating providers by name with automatic configuration
    from environment variables.
    """

    _providers: dict[str, type[BaseLLMProvider]] = {
        "anthropic": AnthropicProvider,
        "openai": OpenAIProvider,
    }

    _image_providers: dict[str, type[BaseImageProvider]] = {
        "openai": OpenAIProvider,
    }

    # Model prefix to provider mapping for automatic provider detection
    _model_prefixes: dict[str, str] = {
        "claude": "anthropic",
        "gpt": "openai",
        "o1": "openai",
        "o3": "openai",
    }

    _env_keys: dict[str, str] = {
        "anthropic": "ANTHROPIC_API_KEY",
        "openai": "OPENAI_API_KEY",
    }

    @classmethod
    def get_provider_for_model(cls, model: str) -> str | None:
        """Get the provider name for a given model.

        Args:
            model: Model name.

        Returns:
            Provider name or None if not found.
        """
        for prefix, provider in cls._model_prefixes.items():
            if model.startswith(prefix):
                return provider
        return None

    @classmethod
    def _resolve_api_key(cls, provider: str, api_key: str | None) -> str | None:
        if api_key:
            return api_key
        env_var = cls._env_keys.get(provider, f"{provider.upper()}_API_KEY")
        return os.getenv(env_var)

    @classmethod
    def create(
        cls,
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
        **kwargs: Any,
    ) -> BaseLLMProvider:
        """Create a text provider instance.

        Args:
            provider: Provider name. If None, inferred from model.
            model: Model name (used to infer provider if not specified).
            api_key: API key. If None, reads from environment.
            **kwargs: Additional provider-specific configuration.

        Returns:
            BaseLLMProvider instance.

        Raises:
            ValueError: If the provider is unknown.
        """
        if provider is None and model:
            provider = cls.get_provider_for_model(model)

        if provider is None:
            provider = "anthropic"

        if provider not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(f"Unknown provider: {provider}. Available: {available}")

        provider_class = cls._providers[provider]
        return provider_class(api_key=cls._resolve_api_key(provider, api_key), **kwargs)

    @classmethod
    def create_image_provider(
        cls,
        provider: str = "openai",
        api_key: str | None = None,
        **kwargs: Any,
    ) -> BaseImageProvider:
        """Create an image provider instance.

        Raises:
            ValueError: If the provider is unknown.
        """
        if provider not in cls._image_providers:
            available = ", ".join(cls._image_providers.keys())
            raise ValueError(
                f"Unknown image provider: {provider}. Available: {available}"
            )

        provider_class = cls._image_providers[provider]
        return provider_class(api_key=cls._resolve_api_key(provider, api_key), **kwargs)
