"""
Generic HTTP provider for OpenAI-compatible endpoints using LangChain
"""

import json
import time
from typing import Any, Dict, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage
from langchain_openai import ChatOpenAI

from threadloom.utils.logger import get_logger

from .base import BaseProvider, ProviderResponse

logger = get_logger(__name__)


class GenericProvider(BaseProvider):
    """Generic provider for OpenAI-compatible endpoints using LangChain"""

    def __init__(
        self, api_base: str, api_key: str, model_name: str, temperature: float = 0.7
    ):
        super().__init__(api_base, api_key, model_name)
        self.llm = ChatOpenAI(
            model=model_name,
            base_url=api_base,
            api_key=api_key,  # type: ignore
            temperature=temperature,
        )

    def _structured_llm(self, llm: Any, json_schema: Dict[str, Any]) -> Any:
        """Bind a JSON schema; endpoints without tool calling get JSON mode"""
        return llm.with_structured_output(json_schema, method="json_mode")

    async def chat(
        self,
        messages: List[BaseMessage],
        json_schema: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Send chat request to an OpenAI-compatible endpoint"""

        request_id = self._start_request(messages, json_schema)
        started_at = time.time()

        try:
            llm = self.llm
            if "temperature" in kwargs:
                llm = llm.bind(temperature=kwargs["temperature"])
            if "max_tokens" in kwargs:
                llm = llm.bind(max_tokens=kwargs["max_tokens"])

            if json_schema is not None:
                structured = await self._structured_llm(llm, json_schema).ainvoke(
                    messages
                )
                # Downstream parsing expects a JSON string in every case
                content = json.dumps(structured)
            else:
                response = await llm.ainvoke(messages)
                content = (
                    response.content if hasattr(response, "content") else str(response)
                )
                if not isinstance(content, str):
                    content = json.dumps(content)

        except Exception as e:
            self._finish_request(request_id, started_at, error=e)
            raise Exception(f"{self.__class__.__name__} API error: {e}") from e

        self._finish_request(request_id, started_at, content=content)
        return ProviderResponse(content=content, model=self.model_name)

    async def health_check(self) -> bool:
        """Check if the endpoint is accessible"""
        try:
            await self.llm.ainvoke([HumanMessage(content="Hello")])
            return True
        except Exception:
            return False
