"""Storage backend configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator

from .base import BaseConfig


class StorageConfig(BaseConfig):
    """Where notes live when no directory has been chosen."""

    kv_path: Path = Field(
        Path("./notesys.sqlite3"),
        description="SQLite file backing the key-value note store",
    )
    preload_on_open: bool = Field(
        False,
        description="Warm every note file in the background after opening a directory store",
    )
    default_directory: Path | None = Field(
        None,
        description="Directory to switch to by 'migrate to-dir' when none is given",
    )

    @field_validator("kv_path")
    @classmethod
    def _expand_kv_path(cls, value: Path) -> Path:
        return value.expanduser()


__all__ = ["StorageConfig"]
