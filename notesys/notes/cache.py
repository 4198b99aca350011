"""The in-memory list of known note names."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from notesys.storage.backend import StorageBackend


@dataclass(frozen=True, slots=True)
class NoteEntry:
    """One valid note entry found on a backend."""

    physical_id: str
    name: str
    is_encrypted: bool


async def list_note_entries(backend: StorageBackend) -> list[NoteEntry]:
    """Decode every identifier of ``backend``, skipping invalid ones."""

    entries: list[NoteEntry] = []
    for physical_id in await backend.list():
        decoded = backend.naming.from_physical_name(physical_id)
        if decoded is None:
            logger.debug("Skipping invalid note identifier {}", physical_id)
            continue
        entries.append(NoteEntry(physical_id, decoded.name, decoded.is_encrypted))
    return entries


class NameCache:
    """Known note names and the encrypted subset, always rebuilt from the backend."""

    def __init__(self) -> None:
        self._names: tuple[str, ...] = ()
        self._encrypted: frozenset[str] = frozenset()

    @property
    def all_names(self) -> tuple[str, ...]:
        return self._names

    @property
    def encrypted_names(self) -> frozenset[str]:
        return self._encrypted

    def is_encrypted(self, name: str) -> bool:
        return name in self._encrypted

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    async def reload(self, backend: StorageBackend) -> tuple[str, ...]:
        flags: dict[str, bool] = {}
        for entry in await list_note_entries(backend):
            if entry.name in flags:
                # A plain and an encrypted copy of one note; the later entry decides.
                logger.warning("Note '{}' is stored more than once on {}", entry.name, backend.describe())
            flags[entry.name] = entry.is_encrypted

        self._names = tuple(flags)
        self._encrypted = frozenset(name for name, encrypted in flags.items() if encrypted)
        logger.debug("Loaded {} note names ({} encrypted)", len(self._names), len(self._encrypted))
        return self._names


__all__ = ["NameCache", "NoteEntry", "list_note_entries"]
