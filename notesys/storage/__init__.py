"""Storage backends, naming and durable state."""

from .backend import DirectoryBackend, KeyValueBackend, StorageBackend
from .kv import SqliteKeyValueStore
from .naming import (
    ENCRYPTED_NOTE_FILE_EXT,
    NOTE_FILE_EXT,
    DecodedName,
    FileNameEscaper,
    KeyValueEscaper,
    NameEscaper,
)
from .state import DurableState, JsonFileState, MemoryState

__all__ = [
    "StorageBackend",
    "KeyValueBackend",
    "DirectoryBackend",
    "SqliteKeyValueStore",
    "NameEscaper",
    "KeyValueEscaper",
    "FileNameEscaper",
    "DecodedName",
    "NOTE_FILE_EXT",
    "ENCRYPTED_NOTE_FILE_EXT",
    "DurableState",
    "JsonFileState",
    "MemoryState",
]
