"""Exception hierarchy shared by the storage subsystem."""

from __future__ import annotations


class NoteStoreError(RuntimeError):
    """Base class for every failure raised by the note store."""


class NoteNotFoundError(NoteStoreError):
    """Raised when a backend is asked for an entry it does not hold."""

    def __init__(self, physical_id: str) -> None:
        super().__init__(f"Note entry '{physical_id}' does not exist")
        self.physical_id = physical_id


class InvalidNameError(NoteStoreError):
    """Raised when a name cannot be used as, or decoded from, an identifier."""


class DecryptFailure(NoteStoreError):
    """Raised when a blob cannot be decrypted with the given key."""


class BackendUnavailableError(NoteStoreError):
    """Raised when the active backend can no longer be reached."""


class ProtectedNoteError(NoteStoreError):
    """Raised when a caller tries to delete or rename a protected note."""


class NoteExistsError(NoteStoreError):
    """Raised when a rename would overwrite an existing note."""


class UnknownSystemNoteError(NoteStoreError):
    """Raised for a system note name outside the built-in set."""


class InvalidContentError(NoteStoreError):
    """Raised when stored bytes of a plain note are not valid UTF-8 text."""

    def __init__(self, physical_id: str) -> None:
        super().__init__(f"Note entry '{physical_id}' is not valid UTF-8 text")
        self.physical_id = physical_id


__all__ = [
    "NoteStoreError",
    "NoteNotFoundError",
    "InvalidNameError",
    "DecryptFailure",
    "BackendUnavailableError",
    "ProtectedNoteError",
    "NoteExistsError",
    "UnknownSystemNoteError",
    "InvalidContentError",
]
