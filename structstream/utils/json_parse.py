"""
JSON parsing utilities for streaming responses.
"""

from __future__ import annotations

import json
from typing import Any

from structstream.types import JSONValue

_WHITESPACE = " \n\t\r"
_CLOSERS = {"{": "}", "[": "]"}


def repair_json(json_str: str) -> str:
    """
    Synthesize a minimal structurally valid completion of truncated JSON.

    The text is rescanned from the start on every call; no scan state
    survives between calls. The returned string is a candidate only and
    may still fail to parse (e.g. a number cut after its decimal point).

    Args:
        json_str: The accumulated, possibly truncated JSON text

    Returns:
        The repaired candidate string
    """
    json_str = json_str.strip()
    if not json_str:
        return "{}"

    stack: list[str] = []
    in_string = False
    escaped = False
    last_char: str | None = None
    # Significant character seen before the most recent string opened
    before_string: str | None = None

    for char in json_str:
        if in_string:
            if char == '"' and not escaped:
                in_string = False
                last_char = '"'
            elif char == "\\":
                escaped = not escaped
            else:
                escaped = False
            continue

        if char == '"':
            in_string = True
            escaped = False
            before_string = last_char
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
            last_char = char
        elif char in "}]":
            if stack and stack[-1] == char:
                stack.pop()
            last_char = char
        elif char not in _WHITESPACE:
            last_char = char

    ends_with_string = in_string or last_char == '"'
    if in_string:
        json_str += '"'
    if (
        ends_with_string
        and stack
        and stack[-1] == "}"
        and before_string is not None
        and before_string in "{,"
    ):
        # Key with no value yet
        json_str += ": null"

    json_str = json_str.rstrip()
    if json_str.endswith(","):
        json_str = json_str[:-1]

    if json_str.endswith(":"):
        json_str += " null"

    while stack:
        json_str += stack.pop()

    return json_str


class PartialJSONProcessor:
    """
    Accumulates string deltas of one JSON document and reconstructs it.

    One instance serves exactly one logical stream. Every call to
    :meth:`process` returns the best value derivable from everything seen
    so far and never raises.
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def buffer(self) -> str:
        """All text received since construction or the last reset."""
        return self._buffer

    def reset(self) -> None:
        """Clear the accumulation buffer."""
        self._buffer = ""

    def process(self, delta: str) -> JSONValue:
        """
        Append a delta and return the current best-effort value.

        Args:
            delta: The next fragment of the document

        Returns:
            Parsed value, or an empty dict if even the repaired text fails
        """
        self._buffer += delta

        # Try standard parsing first (fastest for complete JSON)
        try:
            return json.loads(self._buffer)
        except json.JSONDecodeError:
            pass

        try:
            return json.loads(repair_json(self._buffer))
        except json.JSONDecodeError:
            return {}


def parse_streaming_json(partial_json: str | None) -> Any:
    """
    Attempts to parse potentially incomplete JSON during streaming.

    Always returns a value, even if the JSON is incomplete.

    Args:
        partial_json: The partial JSON string from streaming

    Returns:
        Parsed value or empty dict if parsing fails
    """
    if not partial_json or partial_json.strip() == "":
        return {}
    return PartialJSONProcessor().process(partial_json)
