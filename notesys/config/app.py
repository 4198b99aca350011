"""Application-level configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from notesys.config.base import BaseConfig
from notesys.config.encryption import EncryptionConfig
from notesys.config.storage import StorageConfig


class AppConfig(BaseConfig):
    """Top-level runtime configuration for the note store."""

    logging_level: str = Field("INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")
    log_file: Path | None = Field(None, description="Optional rotating log file")
    state_path: Path = Field(
        Path("./notesys-state.json"),
        description="JSON file remembering the storage directory, password and current note",
    )

    storage: StorageConfig = Field(default_factory=StorageConfig, description="Note storage settings")
    encryption: EncryptionConfig = Field(
        default_factory=EncryptionConfig,
        description="Note encryption settings",
    )


__all__ = ["AppConfig"]
