"""
LLM providers and the content-generation boundary
"""

from .base import BaseProvider, ProviderResponse
from .factory import create_provider
from .generation import (
    ContentGenerator,
    GenerationError,
    GenerationResult,
    generate_or_fallback,
)
from .generic import GenericProvider
from .openai import OpenAIProvider

__all__ = [
    "BaseProvider",
    "ProviderResponse",
    "OpenAIProvider",
    "GenericProvider",
    "create_provider",
    "ContentGenerator",
    "GenerationError",
    "GenerationResult",
    "generate_or_fallback",
]
