"""
Schema validation utilities for generated content
"""

from typing import Any, Dict, Type, TypeVar

from jsonschema import ValidationError, validate
from pydantic import BaseModel

ShapeT = TypeVar("ShapeT", bound=BaseModel)


def validate_json_schema(data: Dict[str, Any], schema: Dict[str, Any]) -> bool:
    """Validate data against a JSON schema"""
    try:
        validate(instance=data, schema=schema)
        return True
    except ValidationError as e:
        raise ValueError(f"JSON schema validation failed: {e.message}")


def validate_generated_content(data: Any, shape: Type[ShapeT]) -> ShapeT:
    """
    Validate a decoded provider payload and parse it into ``shape``.

    The payload is first checked against the shape's JSON schema so that a
    missing required field is reported the same way regardless of which
    provider produced it, then parsed by pydantic.

    Raises:
        ValueError: if the payload is not an object or does not fit the shape
    """
    if not isinstance(data, dict):
        raise ValueError(
            f"Generated content must be a JSON object, got {type(data).__name__}"
        )

    validate_json_schema(data, shape.model_json_schema())

    try:
        return shape(**data)
    except Exception as e:
        raise ValueError(f"Invalid {shape.__name__}: {e}")
