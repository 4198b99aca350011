"""Core package for the notesys personal note store.

The storage subsystem keeps a set of named text notes in either a key-value
store or a directory on disk and can move the whole set between the two.
"""

__all__: list[str] = []
