"""Small durable record shared by the storage subsystem.

Holds the storage pointer (which directory, if any, holds the notes), the
remembered password and the current note selection.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger

STORAGE_DIR_KEY = "storage_dir"
PASSWORD_KEY = "password"
CURRENT_NOTE_KEY = "current_note"
OPEN_COUNT_KEY = "open_count"


class DurableState(ABC):
    """Async get/set/delete of a handful of JSON values."""

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value or ``default``."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Forget ``key``; missing keys are ignored."""


class MemoryState(DurableState):
    """Process-local state, used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(initial or {})

    async def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)


class JsonFileState(DurableState):
    """State persisted as one JSON object, rewritten atomically on every change."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    async def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    async def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("State file {} is corrupt ({}); starting from empty state", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        os.replace(tmp_path, self.path)


__all__ = [
    "DurableState",
    "MemoryState",
    "JsonFileState",
    "STORAGE_DIR_KEY",
    "PASSWORD_KEY",
    "CURRENT_NOTE_KEY",
    "OPEN_COUNT_KEY",
]
