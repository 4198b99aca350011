"""The note session: active backend, name cache and the operations built on them."""

from __future__ import annotations

import asyncio
from collections.abc import MutableMapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from notesys.config import AppConfig
from notesys.crypto.gate import EncryptionGate, PasswordProvider
from notesys.errors import (
    InvalidNameError,
    NoteExistsError,
    NoteNotFoundError,
    NoteStoreError,
    ProtectedNoteError,
)
from notesys.storage.backend import DirectoryBackend, KeyValueBackend, StorageBackend, decode_text
from notesys.storage.kv import SqliteKeyValueStore
from notesys.storage.naming import pick_unique_name
from notesys.storage.state import (
    CURRENT_NOTE_KEY,
    OPEN_COUNT_KEY,
    STORAGE_DIR_KEY,
    DurableState,
    JsonFileState,
)

from .cache import NameCache, list_note_entries
from .system import (
    SystemNoteProvider,
    add_journal_day,
    fix_up_note_content,
    get_inbox_note,
    get_journal_note,
    get_welcome_note,
    is_system_note_name,
)

if TYPE_CHECKING:
    from notesys.migration.engine import MigrationReport

SCRATCH_NOTE_NAME = "scratch"
INBOX_NOTE_NAME = "inbox"
DAILY_JOURNAL_NOTE_NAME = "daily journal"


@dataclass(frozen=True, slots=True)
class Note:
    name: str
    content: str
    is_system: bool
    is_encrypted: bool


@dataclass(slots=True)
class NoteStats:
    """Counters of note operations, read by the event logging collaborator."""

    created: int = 0
    deleted: int = 0
    renamed: int = 0
    saved: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class NoteSession:
    """Explicit context object for the storage subsystem.

    Holds the single active backend and the name cache. Every mutating
    operation reloads the cache before returning. Only :meth:`activate`,
    called by the migration engine or when opening a directory, swaps the
    backend.
    """

    scratch_note_name = SCRATCH_NOTE_NAME

    def __init__(
        self,
        state: DurableState,
        kv_store: MutableMapping[str, str],
        gate: EncryptionGate,
        *,
        system_notes: SystemNoteProvider | None = None,
        preload_on_open: bool = False,
    ) -> None:
        self.state = state
        self.kv_store = kv_store
        self.gate = gate
        self.system_notes = system_notes or SystemNoteProvider()
        self.preload_on_open = preload_on_open
        self.backend: StorageBackend = KeyValueBackend(kv_store)
        self.cache = NameCache()
        self.stats = NoteStats()
        self._background: set[asyncio.Task[bytes]] = set()

    @classmethod
    def from_config(cls, config: AppConfig, provider: PasswordProvider) -> NoteSession:
        state = JsonFileState(config.state_path)
        gate = EncryptionGate(provider, state, iterations=config.encryption.kdf_iterations)
        return cls(
            state,
            SqliteKeyValueStore(config.storage.kv_path),
            gate,
            preload_on_open=config.storage.preload_on_open,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def init(self) -> tuple[str, ...]:
        """Open the persisted backend, load names and create the default notes."""

        storage_dir = await self.state.get(STORAGE_DIR_KEY)
        if storage_dir:
            directory = DirectoryBackend(Path(storage_dir))
            await directory.ensure_valid_file_names()
            self.backend = directory
        else:
            self.backend = KeyValueBackend(self.kv_store)
        logger.info("Notes are stored in {}", self.backend.describe())

        await self.gate.restore()
        open_count = int(await self.state.get(OPEN_COUNT_KEY, 0)) + 1
        await self.state.set(OPEN_COUNT_KEY, open_count)

        await self.reload()
        await self.create_default_notes(first_run=open_count < 2)
        if self.preload_on_open:
            self.preload_all_notes()
        return self.note_names

    async def reload(self) -> tuple[str, ...]:
        return await self.cache.reload(self.backend)

    def close(self) -> None:
        if isinstance(self.kv_store, SqliteKeyValueStore):
            self.kv_store.close()

    async def activate(self, backend: StorageBackend) -> None:
        self.backend = backend
        await self.reload()
        await self.create_if_not_exists(SCRATCH_NOTE_NAME, get_welcome_note())

    async def create_default_notes(self, *, first_run: bool = False) -> int:
        if not self.cache.all_names:
            # e.g. notes were moved to a directory and the store switched back
            first_run = True

        created = await self.create_if_not_exists(SCRATCH_NOTE_NAME, get_welcome_note())
        # scratch must always exist; inbox and journal may be deleted by the user
        if first_run:
            created += await self.create_if_not_exists(INBOX_NOTE_NAME, get_inbox_note())
            created += await self.create_if_not_exists(DAILY_JOURNAL_NOTE_NAME, get_journal_note())
        return created

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------
    @property
    def note_names(self) -> tuple[str, ...]:
        return self.cache.all_names

    @property
    def encrypted_names(self) -> frozenset[str]:
        return self.cache.encrypted_names

    @property
    def note_count(self) -> int:
        return len(self.cache)

    def note_exists(self, name: str) -> bool:
        return name in self.cache or is_system_note_name(name)

    @staticmethod
    def sanitize_note_name(name: str) -> str:
        return name.strip()

    def can_delete(self, name: str) -> bool:
        if name == SCRATCH_NOTE_NAME:
            return False
        return not is_system_note_name(name)

    # ------------------------------------------------------------------
    # Reading and writing
    # ------------------------------------------------------------------
    async def get_note(self, name: str) -> Note:
        if is_system_note_name(name):
            return Note(name, self.system_notes.get(name), is_system=True, is_encrypted=False)
        return Note(name, await self.load_note(name), is_system=False, is_encrypted=self.cache.is_encrypted(name))

    async def load_note(self, name: str) -> str:
        logger.debug("Loading note '{}'", name)
        if is_system_note_name(name):
            return self.system_notes.get(name)
        content = await self._read(name)
        if name == DAILY_JOURNAL_NOTE_NAME:
            content = add_journal_day(content)
        return fix_up_note_content(content)

    async def load_note_if_exists(self, name: str) -> str | None:
        if not self.note_exists(name):
            return None
        try:
            return await self.load_note(name)
        except NoteNotFoundError:
            return None

    async def save_note(self, name: str, content: str) -> None:
        if is_system_note_name(name):
            logger.info("Skipped saving system note '{}'", name)
            return
        is_new = name not in self.cache
        is_encrypted = self.is_using_encryption() if is_new else self.cache.is_encrypted(name)
        await self._write(name, content, is_encrypted)
        self.stats.saved += 1
        if is_new:
            await self.reload()

    async def create_note(self, name: str, content: str = "") -> bool:
        """Create ``name`` unless it exists; returns whether a note was written."""

        self._require_user_name(name)
        if name in self.cache:
            logger.info("Note '{}' already exists", name)
            return False
        await self._write(name, fix_up_note_content(content), self.is_using_encryption())
        self.stats.created += 1
        logger.info("Created note '{}'", name)
        await self.reload()
        return True

    async def create_if_not_exists(self, name: str, content: str) -> int:
        return 1 if await self.create_note(name, content) else 0

    async def create_new_scratch_note(self) -> str:
        names = await self.reload()
        name = pick_unique_name(SCRATCH_NOTE_NAME, names)
        await self.create_note(name)
        return name

    async def delete_note(self, name: str) -> None:
        if not self.can_delete(name):
            raise ProtectedNoteError(f"Note '{name}' cannot be deleted")
        if name not in self.cache:
            logger.info("Note '{}' does not exist; nothing to delete", name)
            return
        await self.backend.delete(self._physical_id(name))
        self.stats.deleted += 1
        logger.info("Deleted note '{}'", name)
        if await self.current_note() == name:
            await self.set_current_note(SCRATCH_NOTE_NAME)
        await self.reload()

    async def rename_note(self, old_name: str, new_name: str) -> None:
        if not self.can_delete(old_name):
            raise ProtectedNoteError(f"Note '{old_name}' cannot be renamed")
        self._require_user_name(new_name)
        if old_name not in self.cache:
            raise NoteNotFoundError(old_name)
        if new_name in self.cache:
            raise NoteExistsError(f"Note '{new_name}' already exists")

        is_encrypted = self.cache.is_encrypted(old_name)
        new_id = self.backend.naming.to_physical_name(new_name, is_encrypted)
        await self.backend.rename(self._physical_id(old_name), new_id)
        self.stats.renamed += 1
        logger.info("Renamed note '{}' => '{}'", old_name, new_name)
        if await self.current_note() == old_name:
            await self.set_current_note(new_name)
        await self.reload()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    async def current_note(self) -> str:
        return await self.state.get(CURRENT_NOTE_KEY, SCRATCH_NOTE_NAME)

    async def set_current_note(self, name: str) -> None:
        await self.state.set(CURRENT_NOTE_KEY, name)

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------
    def is_using_encryption(self) -> bool:
        # the key-value store never encrypts new notes
        if not isinstance(self.backend, DirectoryBackend):
            return False
        return self.gate.has_password() or bool(self.cache.encrypted_names)

    async def encrypt_all_notes(self, password: str) -> int:
        backend = self._require_directory("encrypt")
        await self.gate.remember_password(password)

        encrypted = 0
        for entry in await list_note_entries(backend):
            if entry.is_encrypted:
                continue
            logger.info("Encrypting '{}'", entry.name)
            text = decode_text(entry.physical_id, await backend.read(entry.physical_id))
            new_id = backend.naming.to_physical_name(entry.name, True)
            await backend.write(new_id, await self.gate.encrypt(text))
            await backend.delete(entry.physical_id)
            encrypted += 1

        await self.reload()
        return encrypted

    async def decrypt_all_notes(self) -> int:
        backend = self._require_directory("decrypt")

        decrypted = 0
        for entry in await list_note_entries(backend):
            if not entry.is_encrypted:
                continue
            logger.info("Decrypting '{}'", entry.name)
            text = await self.gate.decrypt(lambda: backend.read(entry.physical_id))
            await backend.write(backend.naming.to_physical_name(entry.name, False), text.encode("utf-8"))
            await backend.delete(entry.physical_id)
            decrypted += 1

        await self.gate.forget_password()
        await self.reload()
        return decrypted

    # ------------------------------------------------------------------
    # Backend switching
    # ------------------------------------------------------------------
    async def switch_to_directory(self, directory: Path, *, dry_run: bool = False) -> MigrationReport:
        current = self.backend.handle
        if current is not None and current.resolve() == directory.resolve():
            raise NoteStoreError(f"Notes are already stored in {directory}")
        return await self._migrate(DirectoryBackend(directory), dry_run=dry_run)

    async def switch_to_key_value(self, *, dry_run: bool = False) -> MigrationReport:
        if isinstance(self.backend, KeyValueBackend):
            raise NoteStoreError("Notes are already stored in the key-value store")
        return await self._migrate(KeyValueBackend(self.kv_store), dry_run=dry_run)

    async def open_directory(self, directory: Path) -> None:
        """Use ``directory`` as the store without moving the current notes."""

        backend = DirectoryBackend(directory)
        await backend.ensure_valid_file_names()
        await self.state.set(STORAGE_DIR_KEY, str(directory))
        await self.activate(backend)

    async def _migrate(self, target: StorageBackend, *, dry_run: bool) -> MigrationReport:
        from notesys.migration.engine import MigrationEngine

        return await MigrationEngine(self.state).migrate(self, target, dry_run=dry_run)

    # ------------------------------------------------------------------
    # Pre-loading
    # ------------------------------------------------------------------
    def preload_all_notes(self) -> int:
        """Start background reads of every note file; returns how many were started.

        Notes in a synced folder (OneDrive and the like) may only exist as
        placeholders; reading them forces a local copy. The reads are best
        effort: nobody awaits them and their failures are only logged.
        Requires a running event loop.
        """

        if not isinstance(self.backend, DirectoryBackend):
            return 0
        started = 0
        for name in self.cache.all_names:
            task = asyncio.create_task(self.backend.read(self._physical_id(name)))
            self._background.add(task)
            task.add_done_callback(self._on_preload_done)
            started += 1
        return started

    async def drain_background(self) -> None:
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _on_preload_done(self, task: asyncio.Task[bytes]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Pre-loading a note failed: {}", exc)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _physical_id(self, name: str) -> str:
        return self.backend.naming.to_physical_name(name, self.cache.is_encrypted(name))

    async def _read(self, name: str) -> str:
        physical_id = self._physical_id(name)
        backend = self.backend
        if not self.cache.is_encrypted(name):
            return decode_text(physical_id, await backend.read(physical_id))
        return await self.gate.decrypt(lambda: backend.read(physical_id))

    async def _write(self, name: str, content: str, is_encrypted: bool) -> None:
        physical_id = self.backend.naming.to_physical_name(name, is_encrypted)
        data = await self.gate.encrypt(content) if is_encrypted else content.encode("utf-8")
        await self.backend.write(physical_id, data)

    def _require_directory(self, action: str) -> DirectoryBackend:
        if not isinstance(self.backend, DirectoryBackend):
            raise NoteStoreError(f"Cannot {action} notes in the key-value store; move them to a directory first")
        return self.backend

    @staticmethod
    def _require_user_name(name: str) -> None:
        if not name:
            raise InvalidNameError("Note name must not be empty")
        if is_system_note_name(name):
            raise InvalidNameError(f"'{name}' is reserved for a built-in note")


__all__ = [
    "NoteSession",
    "Note",
    "NoteStats",
    "SCRATCH_NOTE_NAME",
    "INBOX_NOTE_NAME",
    "DAILY_JOURNAL_NOTE_NAME",
]
