"""Provider abstraction layer.

This module provides a unified interface for the text-generation and
image-generation capabilities used by the orchestration engine.
"""

from nexus.llm.anthropic import AnthropicProvider
from nexus.llm.base import BaseImageProvider, BaseLLMProvider, GeneratedImage, LLMResponse
from nexus.llm.factory import LLMProviderFactory
from nexus.llm.openai import OpenAIProvider

__all__ = [
    "BaseLLMProvider",
    "BaseImageProvider",
    "GeneratedImage",
    "LLMResponse",
    "AnthropicProvider",
    "OpenAIProvider",
    "LLMProviderFactory",
]
