"""Base providers - abstract interfaces for downstream model capabilities.

Text generation and image generation are separate capabilities; a provider may
implement one or both.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None
    raw_response: Any = None


@dataclass
class GeneratedImage:
    """Base64-encoded image returned by an image provider."""

    data: str
    mime_type: str = "image/png"
    model: str | None = None

    def to_data_uri(self) -> str:
        """Return the image as an embeddable data URI."""
        return f"data:{self.mime_type};base64,{self.data}"


class _CredentialedProvider:
    """Shared credential handling for providers."""

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        self._api_key = api_key
        self._config = kwargs

    @property
    def has_credentials(self) -> bool:
        """Whether an API key is configured for this provider."""
        return bool(self._api_key)


class BaseLLMProvider(_CredentialedProvider, ABC):
    """Abstract base class for text-generation providers.

    All providers (Anthropic, OpenAI, etc.) implement this interface so the
    planner and the step executor can use them interchangeably.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'anthropic', 'openai')."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Return the default model for this provider."""

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            model: Model to use. If None, uses default_model.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0.0 to 2.0).
            system_prompt: Optional system prompt.
            **kwargs: Additional provider-specific parameters.

        Returns:
            LLMResponse containing the model's response.

        Raises:
            LLMAPIError: If the provider rejects or fails the request.
        """


class BaseImageProvider(_CredentialedProvider, ABC):
    """Abstract base class for image-generation providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        model: str | None = None,
        size: str | None = None,
        **kwargs: Any,
    ) -> GeneratedImage:
        """Generate a single image for a prompt.

        Raises:
            LLMAPIError: If the provider rejects or fails the request.
            ImageGenerationError: If no image data is returned.
        """
