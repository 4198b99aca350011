"""Storage backends holding note bytes under physical identifiers."""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from pathlib import Path

from loguru import logger

from notesys.errors import BackendUnavailableError, InvalidContentError, NoteNotFoundError

from .naming import (
    ENCRYPTED_NOTE_FILE_EXT,
    NOTE_FILE_EXT,
    FileNameEscaper,
    KeyValueEscaper,
    NameEscaper,
)


def decode_text(physical_id: str, data: bytes) -> str:
    """Decode the bytes of a plain note, naming the entry when they are not UTF-8."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidContentError(physical_id) from None


class StorageBackend(ABC):
    """Uniform async access to one storage medium.

    Implementations never cache: :meth:`list` always reflects the medium.
    """

    kind: str = "abstract"

    def __init__(self, naming: NameEscaper) -> None:
        self.naming = naming

    @abstractmethod
    async def read(self, physical_id: str) -> bytes:
        """Return the stored bytes or raise :class:`NoteNotFoundError`."""

    @abstractmethod
    async def write(self, physical_id: str, data: bytes) -> None:
        """Store ``data``, replacing any previous value."""

    @abstractmethod
    async def delete(self, physical_id: str) -> None:
        """Remove the entry; missing entries are ignored."""

    @abstractmethod
    async def list(self) -> list[str]:
        """Return the identifiers of every note entry on the medium."""

    def validate(self, physical_id: str, data: bytes) -> None:
        """Raise :class:`InvalidContentError` when ``data`` cannot be stored under ``physical_id``."""

    async def rename(self, old_id: str, new_id: str) -> None:
        data = await self.read(old_id)
        await self.write(new_id, data)
        await self.delete(old_id)

    async def exists(self, physical_id: str) -> bool:
        return physical_id in await self.list()

    @property
    def handle(self) -> Path | None:
        """Durable pointer value identifying this backend; ``None`` for the key-value store."""
        return None

    def describe(self) -> str:
        return self.kind


class KeyValueBackend(StorageBackend):
    """Notes kept as string values of a key-value store.

    Plain notes are stored as text; encrypted blobs are stored base64 encoded.
    Keys without a note prefix belong to other parts of the application and
    are left alone.
    """

    kind = "key-value"

    def __init__(self, store: MutableMapping[str, str]) -> None:
        super().__init__(KeyValueEscaper())
        self.store = store

    async def read(self, physical_id: str) -> bytes:
        try:
            value = self.store[physical_id]
        except KeyError:
            raise NoteNotFoundError(physical_id) from None
        if self._is_encrypted(physical_id):
            try:
                return base64.b64decode(value.encode("ascii"), validate=True)
            except (binascii.Error, UnicodeEncodeError):
                # Not base64; hand back the raw text so decryption reports it.
                return value.encode("utf-8")
        return value.encode("utf-8")

    async def write(self, physical_id: str, data: bytes) -> None:
        if self._is_encrypted(physical_id):
            self.store[physical_id] = base64.b64encode(data).decode("ascii")
        else:
            self.store[physical_id] = decode_text(physical_id, data)

    async def delete(self, physical_id: str) -> None:
        self.store.pop(physical_id, None)

    async def list(self) -> list[str]:
        return [key for key in list(self.store.keys()) if self.naming.from_physical_name(key) is not None]

    def validate(self, physical_id: str, data: bytes) -> None:
        # plain values are stored as text
        if not self._is_encrypted(physical_id):
            decode_text(physical_id, data)

    def _is_encrypted(self, physical_id: str) -> bool:
        decoded = self.naming.from_physical_name(physical_id)
        return decoded is not None and decoded.is_encrypted


class DirectoryBackend(StorageBackend):
    """Notes kept as files inside a single directory."""

    kind = "directory"

    def __init__(self, root: Path) -> None:
        super().__init__(FileNameEscaper())
        self.root = root

    @property
    def handle(self) -> Path | None:
        return self.root

    def describe(self) -> str:
        return f"{self.kind} {self.root}"

    async def read(self, physical_id: str) -> bytes:
        self._require_root()
        path = self.root / physical_id
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NoteNotFoundError(physical_id) from None
        except OSError as exc:
            raise BackendUnavailableError(f"Cannot read {path}: {exc}") from exc

    async def write(self, physical_id: str, data: bytes) -> None:
        self._require_root()
        path = self.root / physical_id
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise BackendUnavailableError(f"Cannot write {path}: {exc}") from exc

    async def delete(self, physical_id: str) -> None:
        self._require_root()
        path = self.root / physical_id
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise BackendUnavailableError(f"Cannot delete {path}: {exc}") from exc

    async def list(self) -> list[str]:
        self._require_root()
        try:
            entries = sorted(self.root.iterdir())
        except OSError as exc:
            raise BackendUnavailableError(f"Cannot list {self.root}: {exc}") from exc
        return [
            entry.name
            for entry in entries
            if entry.is_file() and self.naming.from_physical_name(entry.name) is not None
        ]

    async def ensure_valid_file_names(self) -> int:
        """Rename note files whose names pre-date the escaping scheme.

        Such files appear when notes were created by an older version or
        renamed by hand. An existing file with the escaped name is replaced.
        """

        self._require_root()
        renamed = 0
        for entry in sorted(self.root.iterdir()):
            if not entry.is_file() or not FileNameEscaper.is_note_file(entry.name):
                continue
            if self.naming.from_physical_name(entry.name) is not None:
                continue
            new_name = self._canonical_file_name(entry.name)
            if new_name is None or new_name == entry.name:
                logger.warning("Ignoring note file with unusable name {}", entry.name)
                continue
            entry.replace(self.root / new_name)
            logger.info("Renamed '{}' => '{}'", entry.name, new_name)
            renamed += 1
        return renamed

    def _canonical_file_name(self, file_name: str) -> str | None:
        raw_name, is_encrypted = _split_raw_file_name(file_name)
        if not raw_name:
            return None
        return self.naming.to_physical_name(raw_name, is_encrypted)

    def _require_root(self) -> None:
        if not self.root.is_dir():
            raise BackendUnavailableError(f"Notes directory {self.root} is not available")


def _split_raw_file_name(file_name: str) -> tuple[str, bool]:
    if file_name.endswith(ENCRYPTED_NOTE_FILE_EXT):
        return file_name[: -len(ENCRYPTED_NOTE_FILE_EXT)], True
    return file_name[: -len(NOTE_FILE_EXT)], False


__all__ = ["StorageBackend", "KeyValueBackend", "DirectoryBackend", "decode_text"]
