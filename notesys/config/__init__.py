"""Configuration namespace for notesys."""

from __future__ import annotations

from .app import AppConfig
from .base import BaseConfig, load_config
from .encryption import EncryptionConfig
from .storage import StorageConfig
from .utils import resolve_env_reference

__all__ = [
    "BaseConfig",
    "AppConfig",
    "load_config",
    "EncryptionConfig",
    "StorageConfig",
    "resolve_env_reference",
]
