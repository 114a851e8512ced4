from __future__ import annotations

import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

RUNNING_KEY = "tt:runningShift"
SESSIONS_KEY = "tt:sessions"
ROLLUP_DAY_KEY = "tt:rollup:day"
ROLLUP_WEEK_KEY = "tt:rollup:week"
ROLLUP_MONTH_KEY = "tt:rollup:month"
VERSION_KEY = "tt:version"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def set_many(self, items: Mapping[str, str | None]) -> None:
        """Write every item in one commit; a None value removes the key."""
        ...


class SQLiteStore:
    """Key/value store backed by a single SQLite table."""

    def __init__(self, db_path: str | Path) -> None:
        self._conn = sqlite3.connect(str(db_path))
        self._conn.row_factory = sqlite3.Row
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._conn.close()
        self._closed = True

    def initialize(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS kv (
              key TEXT PRIMARY KEY,
              value TEXT NOT NULL
            );
            """
        )
        self._conn.commit()

    def get(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def remove(self, key: str) -> None:
        self.set_many({key: None})

    def set_many(self, items: Mapping[str, str | None]) -> None:
        # The connection context manager commits on success and rolls back on error.
        with self._conn:
            for key, value in items.items():
                if value is None:
                    self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                    continue
                self._conn.execute(
                    """
                    INSERT INTO kv (key, value)
                    VALUES (?, ?)
                    ON CONFLICT(key)
                    DO UPDATE SET value=excluded.value
                    """,
                    (key, value),
                )


class MemoryStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.writes: list[dict[str, str | None]] = []

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def remove(self, key: str) -> None:
        self.set_many({key: None})

    def set_many(self, items: Mapping[str, str | None]) -> None:
        self.writes.append(dict(items))
        for key, value in items.items():
            if value is None:
                self.data.pop(key, None)
            else:
                self.data[key] = value
