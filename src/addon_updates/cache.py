"""Key/value cache stores with per-entry TTL.

The version check engine, license manager and update reconciler only rely
on ``get``/``set``/``delete``. The SQLite store is shared safely between
processes (last write wins); the in-memory store is meant for embedding
and tests.
"""

import contextlib
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

MINUTE_IN_SECONDS = 60
HOUR_IN_SECONDS = 60 * MINUTE_IN_SECONDS
DAY_IN_SECONDS = 24 * HOUR_IN_SECONDS


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


class BaseCacheStore(ABC):
    """Abstract TTL cache.

    Values must be JSON-serializable. Expired entries behave exactly like
    missing ones.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or expiry."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...

    def ttl_of(self, key: str) -> Optional[int]:
        """Return the lifetime ``key`` was stored with, if known."""
        return None


class MemoryCacheStore(BaseCacheStore):
    """Process-local cache store."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock
        self._entries: dict[str, tuple[str, datetime, int]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value_json, expires_at, _ = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None

        return json.loads(value_json)

    def set(self, key: str, value: Any, ttl: int) -> None:
        # Round-trip through JSON so both stores hand back equal copies.
        expires_at = self.clock() + timedelta(seconds=ttl)
        self._entries[key] = (json.dumps(value), expires_at, ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def ttl_of(self, key: str) -> Optional[int]:
        entry = self._entries.get(key)
        return entry[2] if entry else None

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store.

    Attributes:
        db_path: Path to the SQLite database file.
        clock: Callable returning the current aware datetime.
    """

    def __init__(self, db_path: Optional[Path] = None, clock: Clock = utc_now):
        """Initialize the cache store.

        Args:
            db_path: Path to SQLite database. If None, uses
                ~/.cache/addon_updates/cache.db.
            clock: Callable returning the current time.
        """
        if db_path is None:
            db_path = default_db_path()

        self.db_path = db_path
        self.clock = clock
        self._conn: Optional[sqlite3.Connection] = None
        self._init_database()

    def __enter__(self) -> "SqliteCacheStore":
        """Enter context manager, keeping connection open."""
        self._conn = sqlite3.connect(self.db_path)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager, closing connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @contextlib.contextmanager
    def _connect(self):
        """Get a database connection.

        If used as a context manager (with statement), reuses the existing
        connection. Otherwise, creates a new one and closes it after use.
        """
        if self._conn:
            yield self._conn
        else:
            conn = sqlite3.connect(self.db_path)
            try:
                yield conn
            finally:
                conn.close()

    def _init_database(self) -> None:
        """Initialize the database schema if it doesn't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    cache_key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    ttl INTEGER NOT NULL,
                    stored_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_cache_expires
                ON cache_entries(expires_at)
                """
            )
            conn.commit()

    def get(self, key: str) -> Optional[Any]:
        """Retrieve a cached value.

        Args:
            key: Cache key.

        Returns:
            The decoded value if present and not expired, None otherwise.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT value, expires_at FROM cache_entries WHERE cache_key = ?",
                (key,),
            )
            row = cursor.fetchone()

        if row is None:
            return None

        value_json, expires_at_str = row

        expires_at = datetime.fromisoformat(expires_at_str)
        if self.clock() >= expires_at:
            return None

        try:
            return json.loads(value_json)
        except json.JSONDecodeError:
            logger.warning("Discarding corrupted cache entry %s", key)
            return None

    def set(self, key: str, value: Any, ttl: int) -> None:
        """Store a value, replacing any previous entry.

        Args:
            key: Cache key.
            value: JSON-serializable value.
            ttl: Lifetime in seconds.
        """
        stored_at = self.clock()
        expires_at = stored_at + timedelta(seconds=ttl)

        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                REPLACE INTO cache_entries
                (cache_key, value, ttl, stored_at, expires_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    key,
                    json.dumps(value),
                    ttl,
                    stored_at.isoformat(),
                    expires_at.isoformat(),
                ),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM cache_entries WHERE cache_key = ?", (key,))
            conn.commit()

    def ttl_of(self, key: str) -> Optional[int]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT ttl FROM cache_entries WHERE cache_key = ?", (key,))
            row = cursor.fetchone()
        return row[0] if row else None

    def clear(self, prefix: Optional[str] = None) -> None:
        """Clear cache entries.

        Args:
            prefix: If specified, clear only keys containing this namespace.
                If None, clear all entries.
        """
        with self._connect() as conn:
            if prefix is None:
                conn.execute("DELETE FROM cache_entries")
            else:
                conn.execute(
                    "DELETE FROM cache_entries WHERE cache_key LIKE ?",
                    (f"%{prefix}%",),
                )
            conn.commit()

    def purge_expired(self) -> int:
        """Delete expired rows and return how many were removed."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM cache_entries WHERE expires_at <= ?",
                (self.clock().isoformat(),),
            )
            conn.commit()
            return cursor.rowcount

    def info(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with cache information:
                - path: Path to cache database file
                - count: Number of stored entries (expired included)
                - size_bytes: Database file size in bytes
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM cache_entries")
            count = cursor.fetchone()[0]

        size_bytes = self.db_path.stat().st_size if self.db_path.exists() else 0

        return {
            "path": str(self.db_path),
            "count": count,
            "size_bytes": size_bytes,
        }


def default_db_path() -> Path:
    """Return ~/.cache/addon_updates/cache.db, creating the directory."""
    cache_dir = Path.home() / ".cache" / "addon_updates"
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir / "cache.db"
