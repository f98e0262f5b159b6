"""Utility helpers."""

from structstream.utils.json_parse import (
    PartialJSONProcessor,
    parse_streaming_json,
    repair_json,
)
from structstream.utils.schema import (
    is_model_schema,
    schema_to_json_schema,
    validate_value,
)

__all__ = [
    # JSON parsing
    "PartialJSONProcessor",
    "parse_streaming_json",
    "repair_json",
    # Schema hints
    "is_model_schema",
    "schema_to_json_schema",
    "validate_value",
]
