# src/site_audit/storage.py
"""Durable key/value storage supporting JSON files and local SQLite backends."""

import json
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
import logging

from site_audit.config import settings

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class StorageError(Exception):
    """Raised when a storage backend cannot read or write a key."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.message = message
        self.key = key
        super().__init__(message)


class AbstractStorage(ABC):
    """Abstract base class defining the storage interface.

    Values are JSON-compatible objects.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key``, or None if absent.

        Raises:
            StorageError: If the stored value cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            StorageError: If the value cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any open resources."""
        pass


class JsonFileStorage(AbstractStorage):
    """One ``<key>.json`` file per key inside a directory."""

    def __init__(self, directory: Optional[str] = None):
        """Initialize JSON file storage.

        Args:
            directory: Storage directory. Defaults to settings.STORAGE_PATH.
        """
        self.directory = Path(directory or settings.STORAGE_PATH)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}", key=key) from e

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            # Write to a sibling temp file, then atomically swap it in
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}: {e}", key=key) from e
        logger.debug(f"Wrote {key} to {path}")

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}", key=key) from e

    def close(self) -> None:
        pass


class SqliteStorage(AbstractStorage):
    """SQLite key/value table for local storage."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize SQLite storage.

        Args:
            db_path: Database file path. Defaults to <settings.STORAGE_PATH>/site_audit.db.
        """
        if db_path is None:
            storage_dir = Path(settings.STORAGE_PATH)
            storage_dir.mkdir(parents=True, exist_ok=True)
            db_path = str(storage_dir / "site_audit.db")
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None
        self.connect()
        self.create_schema()

    def connect(self) -> None:
        """Establish SQLite connection."""
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to local SQLite database: {self.db_path}")

    def create_schema(self) -> None:
        """Create the key/value table if it doesn't exist."""
        with self.conn:
            self.conn.execute(CREATE_TABLE_SQL)

    def get(self, key: str) -> Optional[Any]:
        try:
            cursor = self.conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt value for {key}: {e}", key=key) from e

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
            with self.conn:
                self.conn.execute(
                    "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    (key, payload),
                )
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {key}: {e}", key=key) from e
        logger.debug(f"Wrote {key} to {self.db_path}")

    def delete(self, key: str) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete {key}: {e}", key=key) from e

    def close(self) -> None:
        """Close SQLite connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed local SQLite connection")


def get_storage(
    backend: Optional[str] = None,
    **kwargs,
) -> AbstractStorage:
    """Factory function to create the appropriate storage backend.

    Args:
        backend: Storage backend ('json' or 'sqlite'). Defaults to settings.STORAGE_BACKEND.
        **kwargs: Additional arguments passed to the backend constructor.

    Returns:
        An instance of AbstractStorage.

    Raises:
        ValueError: If an unknown backend is specified.
    """
    backend = backend or settings.STORAGE_BACKEND

    if backend == "json":
        logger.info("Using JSON file storage backend")
        return JsonFileStorage(**kwargs)
    elif backend == "sqlite":
        logger.info("Using local SQLite storage backend")
        return SqliteStorage(**kwargs)
    else:
        raise ValueError(
            f"Unknown storage backend: '{backend}'. "
            "Supported backends: 'json', 'sqlite'"
        )
