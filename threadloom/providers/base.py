"""
Provider interface for the content-generation collaborator.

A provider only knows how to send LangChain messages to a model and hand
back text. Turning that text into a validated shape, timeouts and fallbacks
all live in ContentGenerator.
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from langchain_core.messages import BaseMessage
from pydantic import BaseModel

from threadloom.utils.logger import get_logger

logger = get_logger(__name__)


class ProviderResponse(BaseModel):
    """Raw reply from a provider; content is JSON text for structured requests"""

    content: str
    usage: Optional[Dict[str, Any]] = None
    model: Optional[str] = None


class BaseProvider(ABC):
    """Chat model wrapper used by ContentGenerator"""

    def __init__(self, api_base: str, api_key: str, model_name: str):
        self.api_base = api_base
        self.api_key = api_key
        self.model_name = model_name
        self.llm: Any = None  # set by subclasses

    def _start_request(
        self, messages: List[BaseMessage], json_schema: Optional[Dict[str, Any]]
    ) -> str:
        """Log an outgoing request and return an ID to correlate the reply"""
        request_id = uuid.uuid4().hex[:8]
        shape = (json_schema or {}).get("title", "text")
        logger.debug(
            f"[LLM] {request_id} -> {self.model_name} for {shape}",
            extra={
                "request_id": request_id,
                "provider": type(self).__name__,
                "shape": shape,
                "prompt_chars": sum(len(str(m.content)) for m in messages),
            },
        )
        return request_id

    def _finish_request(
        self,
        request_id: str,
        started_at: float,
        content: str = "",
        error: Optional[Exception] = None,
    ) -> None:
        elapsed_ms = round((time.time() - started_at) * 1000, 1)
        if error is not None:
            logger.error(
                f"[LLM] {request_id} failed after {elapsed_ms}ms: {error}",
                extra={"request_id": request_id, "error_type": type(error).__name__},
            )
            return
        logger.debug(
            f"[LLM] {request_id} <- {len(content)} chars in {elapsed_ms}ms",
            extra={"request_id": request_id, "elapsed_ms": elapsed_ms},
        )

    @abstractmethod
    async def chat(
        self,
        messages: List[BaseMessage],
        json_schema: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> ProviderResponse:
        """
        Send messages to the model.

        Args:
            messages: LangChain messages, system prompt first
            json_schema: JSON schema the reply must follow, if structured
            **kwargs: provider-specific options (temperature, max_tokens)

        Returns:
            ProviderResponse whose content is a JSON string when a schema
            was requested
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the endpoint answers"""
