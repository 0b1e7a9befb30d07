"""Key-value stores backing the recall cache."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict, Optional, Protocol, Union


class StoreError(RuntimeError):
    """Raised when the underlying store cannot complete an operation."""


class KeyValueStore(Protocol):
    """Protocol for the persistent cache store."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored blob, or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Replace the blob stored under key."""
        ...

    def remove(self, key: str) -> None:
        """Delete key; removing a missing key is not an error."""
        ...


class InMemoryStore:
    """Dictionary-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


class SQLiteStore:
    """Single-table SQLite store; every write is its own transaction."""

    DEFAULT_DB_PATH = Path("cache/recall_cache.db")

    def __init__(self, db_path: Optional[Union[str, Path]] = None, auto_initialize: bool = True) -> None:
        path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        if not path.is_absolute():
            path = Path.cwd() / path
        self.db_path = path
        if auto_initialize:
            self.initialize()

    def initialize(self) -> None:
        """Create the database directory and the cache table."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as conn:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_cache (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
        except (sqlite3.Error, OSError) as exc:
            raise StoreError(f"Cannot initialise cache store at {self.db_path}: {exc}") from exc

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def get(self, key: str) -> Optional[str]:
        try:
            conn = self._connect()
            try:
                row = conn.execute("SELECT value FROM kv_cache WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreError(f"Cache read failed for {key}: {exc}") from exc
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO kv_cache (key, value, updated_at)
                        VALUES (?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value,
                            updated_at = excluded.updated_at
                        """,
                        (key, value),
                    )
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreError(f"Cache write failed for {key}: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute("DELETE FROM kv_cache WHERE key = ?", (key,))
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreError(f"Cache delete failed for {key}: {exc}") from exc
