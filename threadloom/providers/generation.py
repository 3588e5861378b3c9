"""
Content-generation collaborator boundary.

ContentGenerator turns a context document and a pydantic output shape into
a GenerationResult. It never raises: provider errors, timeouts and malformed
payloads all come back as a GenerationError inside the result, and
generate_or_fallback() is the one helper the engines use to turn that into
either generated content or their documented default.
"""

import asyncio
import json
import re
from typing import Any, Generic, Literal, Optional, Type, TypeVar

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel

from threadloom.config import Settings, settings
from threadloom.prompts import GENERATION_SYSTEM
from threadloom.schemas.validation import validate_generated_content
from threadloom.utils.logger import get_logger

from .base import BaseProvider
from .factory import create_provider

logger = get_logger(__name__)

ShapeT = TypeVar("ShapeT", bound=BaseModel)

GenerationErrorKind = Literal["timeout", "provider", "malformed"]


class GenerationError(Exception):
    """Typed failure from the content-generation collaborator"""

    def __init__(self, kind: GenerationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class GenerationResult(Generic[ShapeT]):
    """Either structured content or a typed failure, never both"""

    def __init__(
        self,
        content: Optional[ShapeT] = None,
        error: Optional[GenerationError] = None,
    ):
        if (content is None) == (error is None):
            raise ValueError("GenerationResult needs exactly one of content or error")
        self.content = content
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, fallback: ShapeT) -> ShapeT:
        return self.content if self.content is not None else fallback

    def __repr__(self) -> str:
        if self.ok:
            return f"GenerationResult(content={self.content!r})"
        return f"GenerationResult(error={self.error!r})"


def _decode_payload(content: str) -> Any:
    """Decode a JSON payload, tolerating prose around a single object"""
    content = content.strip()
    if not content:
        raise ValueError("Empty content")

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", content, re.DOTALL)
        if not match:
            raise ValueError("No JSON object found in content")
        try:
            return json.loads(match.group())
        except json.JSONDecodeError as e:
            raise ValueError(f"Extracted JSON is invalid: {e}")


class ContentGenerator:
    """Requests structured narrative content from an LLM provider"""

    def __init__(
        self,
        provider: Optional[BaseProvider] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or settings
        self.provider = provider if provider is not None else create_provider(self.config)

    @property
    def available(self) -> bool:
        return self.provider is not None

    async def generate(
        self, context_document: str, output_shape: Type[ShapeT]
    ) -> GenerationResult[ShapeT]:
        """
        Generate content shaped like ``output_shape``.

        Args:
            context_document: Rendered prompt describing the situation
            output_shape: pydantic model class the reply must fit

        Returns:
            GenerationResult carrying the parsed model or a GenerationError
        """
        if self.provider is None:
            return GenerationResult(
                error=GenerationError("provider", "No content provider configured")
            )

        messages = [
            SystemMessage(content=GENERATION_SYSTEM),
            HumanMessage(content=context_document),
        ]

        try:
            response = await asyncio.wait_for(
                self.provider.chat(
                    messages, json_schema=output_shape.model_json_schema()
                ),
                timeout=self.config.generation_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[Generation] {output_shape.__name__} timed out after "
                f"{self.config.generation_timeout_seconds}s"
            )
            return GenerationResult(
                error=GenerationError(
                    "timeout",
                    f"No reply within {self.config.generation_timeout_seconds}s",
                )
            )
        except Exception as e:
            logger.warning(f"[Generation] {output_shape.__name__} provider error: {e}")
            return GenerationResult(error=GenerationError("provider", str(e)))

        try:
            data = _decode_payload(response.content)
            parsed = validate_generated_content(data, output_shape)
        except ValueError as e:
            logger.warning(f"[Generation] {output_shape.__name__} malformed: {e}")
            logger.debug(f"[Generation] Raw content: {response.content[:300]!r}")
            return GenerationResult(error=GenerationError("malformed", str(e)))

        logger.debug(f"[Generation] {output_shape.__name__} generated")
        return GenerationResult(content=parsed)


async def generate_or_fallback(
    generator: Optional[ContentGenerator],
    context_document: str,
    output_shape: Type[ShapeT],
    fallback: ShapeT,
) -> ShapeT:
    """Generated content when available, otherwise the caller's default"""
    if generator is None:
        return fallback

    result = await generator.generate(context_document, output_shape)
    if not result.ok:
        logger.info(
            f"[Generation] Using fallback {output_shape.__name__} ({result.error})"
        )
    return result.unwrap_or(fallback)
