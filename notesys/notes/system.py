"""Read-only built-in notes and the content of the default notes."""

from __future__ import annotations

from datetime import date
from typing import Callable, Mapping

from notesys.errors import UnknownSystemNoteError

BLOCK_HEADER_MARKDOWN = "\n∞∞∞markdown\n"
BLOCK_HEADER_TEXT = "\n∞∞∞text-a\n"

HELP_NOTE_NAME = "system:help"
RELEASE_NOTES_NOTE_NAME = "system:Release Notes"
WELCOME_NOTE_NAME = "system:welcome"
WELCOME_DEV_NOTE_NAME = "system:welcome dev"
BUILT_IN_FUNCTIONS_NOTE_NAME = "system:built in functions"

SYSTEM_NOTE_NAMES: tuple[str, ...] = (
    HELP_NOTE_NAME,
    RELEASE_NOTES_NOTE_NAME,
    WELCOME_NOTE_NAME,
    WELCOME_DEV_NOTE_NAME,
    BUILT_IN_FUNCTIONS_NOTE_NAME,
)


def is_system_note_name(name: str) -> bool:
    return name in SYSTEM_NOTE_NAMES


def get_help() -> str:
    return (
        BLOCK_HEADER_MARKDOWN
        + "# Help\n\n"
        + "Notes are plain text documents identified by a unique name.\n\n"
        + "- `scratch` always exists and cannot be deleted\n"
        + "- notes live in a local key-value store until you move them to a directory\n"
        + "- moving notes keeps both copies when a note with the same name but different\n"
        + "  content already exists; the moved one gets a `-1`, `-2`, ... suffix\n"
        + "- notes in a directory can be encrypted with a password; files of encrypted\n"
        + "  notes end in `.encr.edna.txt`, plain ones in `.edna.txt`\n\n"
        + "Names starting with `system:` are built-in and read-only.\n"
    )


def get_release_notes() -> str:
    return (
        BLOCK_HEADER_MARKDOWN
        + "# Release notes\n\n"
        + "## 0.1.0\n\n"
        + "- key-value and directory storage\n"
        + "- moving all notes between the two with collision-safe renaming\n"
        + "- password based encryption of notes stored in a directory\n"
    )


def get_welcome_note() -> str:
    return (
        BLOCK_HEADER_MARKDOWN
        + "# Welcome\n\n"
        + "This is the scratch note. Use it for anything; it is always here.\n"
        + f"Open `{HELP_NOTE_NAME}` to learn more.\n"
        + BLOCK_HEADER_TEXT
    )


def get_welcome_dev_note() -> str:
    return (
        get_welcome_note()
        + BLOCK_HEADER_MARKDOWN
        + "# Development build\n\n"
        + "Notes created here are stored next to the development configuration.\n"
    )


def get_built_in_functions_note() -> str:
    return (
        BLOCK_HEADER_MARKDOWN
        + "# Built-in functions\n\n"
        + "Functions transform the text of a block or a selection.\n"
        + "Your own functions live in the `edna: my functions` note.\n"
    )


def get_inbox_note() -> str:
    return BLOCK_HEADER_MARKDOWN + "# Inbox\n\nCapture things to process later.\n"


def journal_day(today: date | None = None) -> str:
    return (today or date.today()).strftime("%Y-%m-%d %A")


def get_journal_note(today: date | None = None) -> str:
    return BLOCK_HEADER_MARKDOWN + f"# {journal_day(today)}\n"


def fix_up_note_content(content: str | None) -> str:
    """Make sure ``content`` starts with a block header; empty content becomes one markdown block."""

    if content is None:
        return BLOCK_HEADER_MARKDOWN
    if not content.startswith("\n∞∞∞"):
        return BLOCK_HEADER_MARKDOWN + content
    return content


def add_journal_day(content: str | None, today: date | None = None) -> str:
    """Prepend a ``# <day>`` block for today unless the journal already has one."""

    day = journal_day(today)
    if content is None:
        return get_journal_note(today)
    if day in content:
        return content
    return BLOCK_HEADER_MARKDOWN + f"# {day}\n" + content


_PRODUCERS: dict[str, Callable[[], str]] = {
    HELP_NOTE_NAME: get_help,
    RELEASE_NOTES_NOTE_NAME: get_release_notes,
    WELCOME_NOTE_NAME: get_welcome_note,
    WELCOME_DEV_NOTE_NAME: get_welcome_dev_note,
    BUILT_IN_FUNCTIONS_NOTE_NAME: get_built_in_functions_note,
}


class SystemNoteProvider:
    """Serves the fixed set of virtual notes that never touch a backend."""

    def __init__(self, producers: Mapping[str, Callable[[], str]] | None = None) -> None:
        self._producers = dict(producers if producers is not None else _PRODUCERS)

    def names(self) -> tuple[str, ...]:
        return tuple(self._producers)

    def get(self, name: str) -> str:
        try:
            producer = self._producers[name]
        except KeyError:
            raise UnknownSystemNoteError(f"unknown system note: {name}") from None
        return producer()


__all__ = [
    "SYSTEM_NOTE_NAMES",
    "HELP_NOTE_NAME",
    "RELEASE_NOTES_NOTE_NAME",
    "WELCOME_NOTE_NAME",
    "WELCOME_DEV_NOTE_NAME",
    "BUILT_IN_FUNCTIONS_NOTE_NAME",
    "SystemNoteProvider",
    "is_system_note_name",
    "get_welcome_note",
    "get_inbox_note",
    "get_journal_note",
    "journal_day",
    "fix_up_note_content",
    "add_journal_day",
]
