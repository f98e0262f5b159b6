"""
Mock stores replaying prerecorded values by label.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol


class MockStore(Protocol):
    """Protocol for lookups of prerecorded values."""

    def get(self, label: str) -> Any | None:
        """Return the value recorded for `label`, or None if there is none."""
        ...


class DictMockStore:
    """In-memory mock store."""

    def __init__(self, mocks: Mapping[str, Any] | None = None) -> None:
        self._mocks: dict[str, Any] = dict(mocks or {})

    def get(self, label: str) -> Any | None:
        return self._mocks.get(label)

    def set(self, label: str, value: Any) -> None:
        self._mocks[label] = value

    def __contains__(self, label: object) -> bool:
        return label in self._mocks


class FileMockStore:
    """
    Mock store backed by a directory of `<label>.json` files.

    Files are read on every lookup so recordings can be edited while a
    process is running.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, label: str) -> Path:
        return self.directory / f"{label}.json"

    def get(self, label: str) -> Any | None:
        path = self.path_for(label)
        if not path.is_file():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid mock file for '{label}': {path}") from e

    def save(self, label: str, value: Any) -> Path:
        """Record a value for later replay."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(label)
        path.write_text(json.dumps(value, indent=2), encoding="utf-8")
        return path
