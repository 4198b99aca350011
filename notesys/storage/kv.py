"""SQLite persistence for the key-value note store."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, MutableMapping
from pathlib import Path

from loguru import logger

from notesys.errors import BackendUnavailableError

_SCHEMA = "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"


class SqliteKeyValueStore(MutableMapping[str, str]):
    """A string-to-string mapping stored in a single SQLite table.

    Every mutation is committed immediately.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            if str(path) != ":memory:":
                path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(path))
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise BackendUnavailableError(f"Cannot open key-value store {path}: {exc}") from exc
        logger.debug("Opened key-value store {}", path)

    def __getitem__(self, key: str) -> str:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise KeyError(key)
        return row[0]

    def __setitem__(self, key: str, value: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def __delitem__(self, key: str) -> None:
        with self._conn:
            cursor = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        if cursor.rowcount == 0:
            raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        rows = self._conn.execute("SELECT key FROM kv ORDER BY rowid").fetchall()
        return iter([row[0] for row in rows])

    def __len__(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM kv").fetchone()[0]

    def close(self) -> None:
        self._conn.close()


__all__ = ["SqliteKeyValueStore"]
