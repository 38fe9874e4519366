"""Persistent option storage.

All updater options live in a single JSON object stored under
``{prefix}_helper_data``. Updates read, modify and write back the whole
object, so concurrent writers from different processes are last-write-wins.
"""

import contextlib
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from addon_updates.cache import default_db_path

logger = logging.getLogger(__name__)


class OptionStore(ABC):
    """Grouped option storage for one vendor namespace.

    Attributes:
        prefix: Namespace used to name the option blob.
    """

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    @property
    def option_name(self) -> str:
        return f"{self.prefix}_helper_data"

    @abstractmethod
    def _load(self) -> dict[str, Any]:
        ...

    @abstractmethod
    def _save(self, options: dict[str, Any]) -> None:
        ...

    def get(self, key: str, default: Any = None) -> Any:
        """Return an option by key, or ``default`` if it does not exist."""
        return self._load().get(key, default)

    def update(self, key: str, value: Any) -> None:
        """Set an option by key."""
        options = self._load()
        options[key] = value
        self._save(options)


class MemoryOptionStore(OptionStore):
    """Option store kept in process memory."""

    def __init__(self, prefix: str, initial: Optional[dict[str, Any]] = None) -> None:
        super().__init__(prefix)
        self._options: dict[str, Any] = dict(initial or {})

    def _load(self) -> dict[str, Any]:
        return dict(self._options)

    def _save(self, options: dict[str, Any]) -> None:
        self._options = dict(options)


class SqliteOptionStore(OptionStore):
    """Option store sharing the cache's SQLite database file."""

    def __init__(self, prefix: str, db_path: Optional[Path] = None) -> None:
        super().__init__(prefix)
        self.db_path = db_path or default_db_path()
        self._init_database()

    @contextlib.contextmanager
    def _connect(self):
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def _init_database(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS options (
                    option_name TEXT PRIMARY KEY,
                    option_value TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def _load(self) -> dict[str, Any]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT option_value FROM options WHERE option_name = ?",
                (self.option_name,),
            )
            row = cursor.fetchone()

        if row is None:
            return {}

        try:
            options = json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupted option %s", self.option_name)
            return {}

        return options if isinstance(options, dict) else {}

    def _save(self, options: dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute(
                "REPLACE INTO options (option_name, option_value) VALUES (?, ?)",
                (self.option_name, json.dumps(options)),
            )
            conn.commit()
