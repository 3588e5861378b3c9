"""
Provider factory for creating LLM providers based on configuration
"""

from typing import Optional

from ..config import Settings, settings
from .base import BaseProvider
from .generic import GenericProvider
from .openai import OpenAIProvider


def create_provider(config: Optional[Settings] = None) -> Optional[BaseProvider]:
    """
    Create a provider instance based on configuration.

    Returns None when ``model_provider`` is "none"; engines then run on
    their deterministic fallback content only.
    """
    config = config or settings

    if config.model_provider == "none":
        return None
    elif config.model_provider == "openai":
        return OpenAIProvider(
            api_base=config.openai_api_base,
            api_key=config.openai_api_key,
            model_name=config.model_name,
            temperature=config.generation_temperature,
        )
    elif config.model_provider == "generic":
        return GenericProvider(
            api_base=config.openai_api_base,
            api_key=config.openai_api_key,
            model_name=config.model_name,
            temperature=config.generation_temperature,
        )
    else:
        raise ValueError(f"Unsupported provider: {config.model_provider}")
