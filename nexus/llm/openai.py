"""OpenAI provider implementation.

Provides chat completions and image generation through the OpenAI API. Any
OpenAI-compatible endpoint can be used for chat by passing ``base_url``.
"""

from __future__ import annotations

import os
from typing import Any

import openai
from openai import AsyncOpenAI

from nexus.llm.base import BaseImageProvider, BaseLLMProvider, GeneratedImage, LLMResponse
from nexus.utils.exceptions import ImageGenerationError, LLMAPIError


class OpenAIProvider(BaseLLMProvider, BaseImageProvider):
    """OpenAI API provider for text and image capabilities."""

    DEFAULT_IMAGE_MODEL = "gpt-image-1"
    DEFAULT_IMAGE_SIZE = "1024x1024"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY env var.
            base_url: Optional custom base URL for compatible endpoints.
            **kwargs: Additional configuration.
        """
        resolved_api_key = api_key or os.getenv("OPENAI_API_KEY", "")
        super().__init__(api_key=resolved_api_key, **kwargs)

        self._base_url = base_url or os.getenv("OPENAI_BASE_URL") or None
        self._async_client = AsyncOpenAI(
            api_key=resolved_api_key,
            base_url=self._base_url,
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "openai"

    @property
    def default_model(self) -> str:
        """Return the default model."""
        return "gpt-4o-mini"

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a chat completion request to OpenAI.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            model: Model to use. If None, uses default_model.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.
            system_prompt: Optional system prompt.
            **kwargs: Additional parameters.

        Returns:
            LLMResponse containing the model's response.
        """
        used_model = model or self.default_model

        full_messages = []
        if system_prompt:
            full_messages.append({"role": "system", "content": system_prompt})
        full_messages.extend(messages)

        try:
            response = await self._async_client.chat.completions.create(
                model=used_model,
                messages=full_messages,  # type: ignore
                max_tokens=max_tokens,
                temperature=temperature,
                stream=False,
                **kwargs,
            )
        except openai.OpenAIError as e:
            raise LLMAPIError(
                f"OpenAI API error: {e}",
                provider=self.provider_name,
                model=used_model,
                cause=e,
            ) from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        usage = {}
        if response.usage:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            }

        return LLMResponse(
            content=content,
            model=response.model,
            usage=usage,
            finish_reason=response.choices[0].finish_reason if response.choices else None,
            raw_response=response,
        )

    async def generate_image(
        self,
        prompt: str,
        model: str | None = None,
        size: str | None = None,
        **kwargs: Any,
    ) -> GeneratedImage:
        """Generate one image and return it base64-encoded.

        Args:
            prompt: Image generation prompt.
            model: Image model. Defaults to DEFAULT_IMAGE_MODEL.
            size: Image size (e.g., "1024x1024").
            **kwargs: Additional images API parameters.

        Returns:
            GeneratedImage with base64 data.
        """
        used_model = model or self.DEFAULT_IMAGE_MODEL
        params: dict[str, Any] = {
            "model": used_model,
            "prompt": prompt,
            "n": 1,
            "size": size or self.DEFAULT_IMAGE_SIZE,
        }
        # gpt-image models always return base64; dall-e models need asking
        if used_model.startswith("dall-e"):
            params["response_format"] = "b64_json"
        params.update(kwargs)

        try:
            response = await self._async_client.images.generate(**params)
        except openai.OpenAIError as e:
            raise LLMAPIError(
                f"OpenAI image API error: {e}",
                provider=self.provider_name,
                model=used_model,
                cause=e,
            ) from e

        if not response.data or not response.data[0].b64_json:
            raise ImageGenerationError()

        output_format = kwargs.get("output_format") or "png"
        mime_type = f"image/{output_format}"

        return GeneratedImage(
            data=response.data[0].b64_json,
            mime_type=mime_type,
            model=used_model,
        )
