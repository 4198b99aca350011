"""Note level services: name cache, built-in notes and the session."""

from .cache import NameCache, NoteEntry, list_note_entries
from .session import NoteSession
from .system import SystemNoteProvider, is_system_note_name

__all__ = [
    "NameCache",
    "NoteEntry",
    "list_note_entries",
    "NoteSession",
    "SystemNoteProvider",
    "is_system_note_name",
]
