"""Move the whole note set from the active backend to the other one."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger

from notesys.errors import InvalidContentError
from notesys.notes.cache import list_note_entries
from notesys.notes.system import is_system_note_name
from notesys.storage.backend import StorageBackend
from notesys.storage.naming import unique_suffix
from notesys.storage.state import STORAGE_DIR_KEY, DurableState

if TYPE_CHECKING:
    from notesys.notes.session import NoteSession

__all__ = ["MigrationDecision", "MigrationEntry", "MigrationReport", "MigrationEngine"]


class MigrationDecision(Enum):
    CREATE = "create"
    SKIP = "skip"
    CREATE_WITH_SUFFIX = "create_with_suffix"


@dataclass(slots=True)
class MigrationEntry:
    """What happens to one source note."""

    logical_name: str
    source_id: str
    source_content: bytes
    is_encrypted: bool
    decision: MigrationDecision
    target_name: str
    suffix: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.logical_name,
            "decision": self.decision.value,
            "target_name": self.target_name,
            "encrypted": self.is_encrypted,
            "bytes": len(self.source_content),
        }


@dataclass(slots=True)
class MigrationReport:
    source: str
    target: str
    dry_run: bool
    entries: list[MigrationEntry] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def counts(self) -> dict[str, int]:
        totals = {decision.value: 0 for decision in MigrationDecision}
        for entry in self.entries:
            totals[entry.decision.value] += 1
        return totals

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "source": self.source,
            "target": self.target,
            "dry_run": self.dry_run,
            "counts": self.counts(),
            "notes": [entry.to_dict() for entry in self.entries],
        }


class MigrationEngine:
    """Copies notes between backends without overwriting divergent content.

    For each source note: missing in the target -> create; identical bytes ->
    skip; different bytes -> skip when a ``name-N`` copy already holds them,
    otherwise create under ``name-N`` with the smallest free ``N``. Bytes are
    copied as stored, so encrypted notes stay encrypted. The pass is not
    resumable, but rerunning it after a crash is safe because identical notes
    and earlier suffixed copies are skipped.
    """

    def __init__(self, state: DurableState) -> None:
        self.state = state

    async def plan(self, source: StorageBackend, target: StorageBackend) -> list[MigrationEntry]:
        """Decide what happens to every source note without writing anything.

        Raises :class:`InvalidContentError` before any write when a note cannot
        be stored in ``target``.
        """

        target_ids = {entry.name: entry.physical_id for entry in await list_note_entries(target)}
        taken: set[str] = set(target_ids)
        planned: dict[str, bytes] = {}
        entries: list[MigrationEntry] = []

        async def content_of(name: str) -> bytes | None:
            if name in planned:
                return planned[name]
            if name in target_ids:
                return await target.read(target_ids[name])
            return None

        for source_entry in await list_note_entries(source):
            name = source_entry.name
            if is_system_note_name(name):
                continue
            content = await source.read(source_entry.physical_id)

            existing = await content_of(name)
            suffix: int | None = None
            if existing is None:
                decision, target_name = MigrationDecision.CREATE, name
            elif existing == content:
                decision, target_name = MigrationDecision.SKIP, name
            else:
                # a copy left by an earlier pass already holds these bytes
                for suffix in _suffixes_in_use(name, taken):
                    if await content_of(f"{name}-{suffix}") == content:
                        decision, target_name = MigrationDecision.SKIP, f"{name}-{suffix}"
                        break
                else:
                    suffix = unique_suffix(name, taken)
                    decision, target_name = MigrationDecision.CREATE_WITH_SUFFIX, f"{name}-{suffix}"

            if decision is not MigrationDecision.SKIP:
                target_id = target.naming.to_physical_name(target_name, source_entry.is_encrypted)
                try:
                    target.validate(target_id, content)
                except InvalidContentError:
                    raise InvalidContentError(source_entry.physical_id) from None
                planned[target_name] = content
            taken.add(target_name)
            entries.append(
                MigrationEntry(
                    logical_name=name,
                    source_id=source_entry.physical_id,
                    source_content=content,
                    is_encrypted=source_entry.is_encrypted,
                    decision=decision,
                    target_name=target_name,
                    suffix=suffix,
                )
            )
        return entries

    async def copy_notes(self, target: StorageBackend, entries: list[MigrationEntry]) -> int:
        """Write every non-skipped entry to ``target``; returns the number written."""

        written = 0
        for entry in entries:
            if entry.decision is MigrationDecision.SKIP:
                logger.info("Same content, skipping '{}'", entry.logical_name)
                continue
            physical_id = target.naming.to_physical_name(entry.target_name, entry.is_encrypted)
            await target.write(physical_id, entry.source_content)
            if entry.decision is MigrationDecision.CREATE_WITH_SUFFIX:
                logger.info(
                    "Created '{}' because '{}' already exists with different content",
                    entry.target_name,
                    entry.logical_name,
                )
            else:
                logger.info("Created '{}'", entry.target_name)
            written += 1
        return written

    async def migrate(self, session: NoteSession, target: StorageBackend, *, dry_run: bool = False) -> MigrationReport:
        source = session.backend
        logger.info("Moving notes from {} to {}", source.describe(), target.describe())

        entries = await self.plan(source, target)
        report = MigrationReport(
            source=source.describe(),
            target=target.describe(),
            dry_run=dry_run,
            entries=entries,
        )
        if dry_run:
            for entry in entries:
                logger.info("[dry-run] {} -> {} ({})", entry.logical_name, entry.target_name, entry.decision.value)
            return report

        await self.copy_notes(target, entries)
        for entry in entries:
            await source.delete(entry.source_id)

        handle = target.handle
        if handle is None:
            await self.state.delete(STORAGE_DIR_KEY)
        else:
            await self.state.set(STORAGE_DIR_KEY, str(handle))

        await session.activate(target)
        await self._redirect_selection(session)

        logger.info("Migration finished: {}", report.counts())
        return report

    async def _redirect_selection(self, session: NoteSession) -> None:
        current = await session.current_note()
        if not session.note_exists(current):
            logger.info("Current note '{}' is gone; selecting '{}'", current, session.scratch_note_name)
            await session.set_current_note(session.scratch_note_name)


def _suffixes_in_use(name: str, taken: set[str]) -> list[int]:
    pattern = re.compile(rf"{re.escape(name)}-(\d+)")
    found = (pattern.fullmatch(candidate) for candidate in taken)
    return sorted(int(match.group(1)) for match in found if match)
