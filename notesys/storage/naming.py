"""Mapping between logical note names and backend identifiers.

Each backend owns one :class:`NameEscaper`. The key-value store only needs a
prefix chosen by the encryption flag; the directory store escapes characters
that are not legal in file names and appends a suffix chosen by the flag.

Directory escaping writes ``%`` followed by two uppercase hex digits for each
UTF-8 byte of an escaped character. Escaped characters are ``%`` itself, the
characters ``<>:"/\\|?*`` and control characters. A name ending in ``.encr``
gets its last dot escaped too, so a plain note can never be mistaken for an
encrypted one. Decoding accepts only the canonical form: an identifier is
valid when escaping its decoded name reproduces it exactly.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Collection
from typing import NamedTuple

from notesys.errors import InvalidNameError

NOTE_FILE_EXT = ".edna.txt"
ENCRYPTED_NOTE_FILE_EXT = ".encr.edna.txt"

KV_KEY_PREFIX = "note:"
KV_ENCRYPTED_KEY_PREFIX = "note.encr:"

_ILLEGAL_FILE_CHARS = frozenset('<>:"/\\|?*%')
_ESCAPE_RE = re.compile(r"%([0-9A-Fa-f]{2})")
_ENCR_MARKER = ".encr"


class DecodedName(NamedTuple):
    """A physical identifier resolved back to its logical name."""

    name: str
    is_encrypted: bool


class NameEscaper(ABC):
    """Bidirectional logical name <-> physical identifier mapping."""

    @abstractmethod
    def to_physical_name(self, logical_name: str, is_encrypted: bool) -> str:
        """Return the identifier under which ``logical_name`` is stored."""

    @abstractmethod
    def from_physical_name(self, physical_id: str) -> DecodedName | None:
        """Return the decoded name, or ``None`` when ``physical_id`` is not a valid note id."""

    def decode(self, physical_id: str) -> DecodedName:
        decoded = self.from_physical_name(physical_id)
        if decoded is None:
            raise InvalidNameError(f"'{physical_id}' is not a valid note identifier")
        return decoded

    @staticmethod
    def _require_name(logical_name: str) -> None:
        if not logical_name:
            raise InvalidNameError("Note name must not be empty")


class KeyValueEscaper(NameEscaper):
    """Prefix based naming used by the key-value backend."""

    def to_physical_name(self, logical_name: str, is_encrypted: bool) -> str:
        self._require_name(logical_name)
        prefix = KV_ENCRYPTED_KEY_PREFIX if is_encrypted else KV_KEY_PREFIX
        return prefix + logical_name

    def from_physical_name(self, physical_id: str) -> DecodedName | None:
        for prefix, is_encrypted in ((KV_ENCRYPTED_KEY_PREFIX, True), (KV_KEY_PREFIX, False)):
            if physical_id.startswith(prefix):
                name = physical_id[len(prefix):]
                return DecodedName(name, is_encrypted) if name else None
        return None


class FileNameEscaper(NameEscaper):
    """File-name safe naming used by the directory backend."""

    def to_physical_name(self, logical_name: str, is_encrypted: bool) -> str:
        self._require_name(logical_name)
        ext = ENCRYPTED_NOTE_FILE_EXT if is_encrypted else NOTE_FILE_EXT
        return escape_file_name(logical_name) + ext

    def from_physical_name(self, physical_id: str) -> DecodedName | None:
        if physical_id.endswith(ENCRYPTED_NOTE_FILE_EXT):
            encoded, is_encrypted = physical_id[: -len(ENCRYPTED_NOTE_FILE_EXT)], True
        elif physical_id.endswith(NOTE_FILE_EXT):
            encoded, is_encrypted = physical_id[: -len(NOTE_FILE_EXT)], False
        else:
            return None

        try:
            name = unescape_file_name(encoded)
        except UnicodeDecodeError:
            return None
        if not name or escape_file_name(name) != encoded:
            return None
        return DecodedName(name, is_encrypted)

    @staticmethod
    def is_note_file(file_name: str) -> bool:
        return file_name.endswith(NOTE_FILE_EXT)


def escape_file_name(name: str) -> str:
    parts: list[str] = []
    for ch in name:
        code = ord(ch)
        if ch in _ILLEGAL_FILE_CHARS or code < 0x20 or code == 0x7F:
            parts.append("".join(f"%{byte:02X}" for byte in ch.encode("utf-8")))
        else:
            parts.append(ch)
    escaped = "".join(parts)
    if escaped.endswith(_ENCR_MARKER):
        cut = len(escaped) - len(_ENCR_MARKER)
        escaped = escaped[:cut] + "%2E" + escaped[cut + 1:]
    return escaped


def unique_suffix(base: str, existing: Collection[str]) -> int:
    """Smallest n >= 1 such that ``f"{base}-{n}"`` is not in ``existing``."""

    n = 1
    while f"{base}-{n}" in existing:
        n += 1
    return n


def pick_unique_name(base: str, existing: Collection[str]) -> str:
    if base not in existing:
        return base
    return f"{base}-{unique_suffix(base, existing)}"


def unescape_file_name(encoded: str) -> str:
    """Reverse :func:`escape_file_name`; raises ``UnicodeDecodeError`` on invalid byte runs."""

    buffer = bytearray()
    pos = 0
    for match in _ESCAPE_RE.finditer(encoded):
        buffer += encoded[pos : match.start()].encode("utf-8")
        buffer.append(int(match.group(1), 16))
        pos = match.end()
    buffer += encoded[pos:].encode("utf-8")
    return buffer.decode("utf-8")


__all__ = [
    "NOTE_FILE_EXT",
    "ENCRYPTED_NOTE_FILE_EXT",
    "KV_KEY_PREFIX",
    "KV_ENCRYPTED_KEY_PREFIX",
    "DecodedName",
    "NameEscaper",
    "KeyValueEscaper",
    "FileNameEscaper",
    "escape_file_name",
    "unescape_file_name",
    "pick_unique_name",
    "unique_suffix",
]
