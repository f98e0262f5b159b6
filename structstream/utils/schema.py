"""
Schema hint helpers.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from structstream.types import SchemaHint


def is_model_schema(schema: SchemaHint | None) -> bool:
    """Check whether a schema hint is a pydantic model class."""
    return isinstance(schema, type) and issubclass(schema, BaseModel)


def schema_to_json_schema(schema: SchemaHint | None) -> dict[str, Any] | None:
    """Convert a schema hint into a plain JSON schema dict."""
    if schema is None:
        return None
    if is_model_schema(schema):
        return schema.model_json_schema()  # type: ignore[union-attr]
    return dict(schema)  # type: ignore[arg-type]


def validate_value(value: Any, schema: SchemaHint | None) -> Any:
    """
    Validate a complete value against a pydantic schema hint.

    Dict schemas are hints for the backend only and are not enforced here.

    Raises:
        pydantic.ValidationError: If the value does not match the model
    """
    if not is_model_schema(schema):
        return value
    model = schema.model_validate(value)  # type: ignore[union-attr]
    return model.model_dump(mode="json")
