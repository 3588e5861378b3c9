"""
OpenAI provider implementation using LangChain
"""

from typing import Any, Dict

from threadloom.utils.logger import get_logger

from .generic import GenericProvider

logger = get_logger(__name__)


class OpenAIProvider(GenericProvider):
    """OpenAI API provider; uses native structured output instead of JSON mode"""

    def __init__(
        self, api_base: str, api_key: str, model_name: str, temperature: float = 0.7
    ):
        super().__init__(api_base, api_key, model_name, temperature)
        logger.info(f"Initialized OpenAI provider for {model_name}")

    def _structured_llm(self, llm: Any, json_schema: Dict[str, Any]) -> Any:
        return llm.with_structured_output(json_schema)
