"""
Blob Storage Backend Module

Provides the async key-value blob store interface the ledger persists into,
with in-memory (testing), file and SQLite implementations. Each key holds one
opaque text blob; there are no partial updates.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union
from datetime import datetime, timezone
from pathlib import Path
import asyncio
import os
import sqlite3
import tempfile
import threading

from .config import get_config
from .exceptions import StorageError
from .logging_config import get_logger


class AsyncBlobStore(ABC):
    """Abstract interface for async blob stores"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None if absent"""
        pass

    @abstractmethod
    async def set(self, key: str, blob: str) -> None:
        """Store blob under key, raising StorageError on failure"""
        pass

    async def close(self) -> None:
        """Close storage connection (default no-op)"""
        pass


class InMemoryBlobStore(AsyncBlobStore):
    """In-memory blob store for testing"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, blob: str) -> None:
        if not isinstance(blob, str):
            raise StorageError(f"Blob for {key} must be text, got {type(blob).__name__}")
        async with self._lock:
            self._data[key] = blob

    def get_all_data(self) -> Dict[str, str]:
        """Get all data for debugging/inspection"""
        return dict(self._data)


class FileBlobStore(AsyncBlobStore):
    """File-backed blob store: one ``<key>.json`` file per key"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._lock = threading.RLock()

    def _path_for(self, key: str) -> Path:
        safe_key = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.directory / f"{safe_key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        with self._lock:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

    def _write(self, key: str, blob: str) -> None:
        path = self._path_for(key)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file, then atomically replace
            fd, tmp_name = tempfile.mkstemp(dir=str(self.directory), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(blob)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def set(self, key: str, blob: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, blob)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e


class SQLiteBlobStore(AsyncBlobStore):
    """SQLite blob store for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()

        with self._lock:
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS blobs (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.commit()

    def _read(self, key: str) -> Optional[str]:
        with self._lock:
            if self._connection is None:
                raise StorageError("SQLite blob store is closed")
            cursor = self._connection.execute(
                "SELECT value FROM blobs WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
            return row['value'] if row else None

    def _write(self, key: str, blob: str) -> None:
        with self._lock:
            if self._connection is None:
                raise StorageError("SQLite blob store is closed")
            now = datetime.now(timezone.utc).isoformat()
            self._connection.execute("""
                INSERT OR REPLACE INTO blobs (key, value, updated_at)
                VALUES (?, ?, ?)
            """, (key, blob, now))
            self._connection.commit()

    def _close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def set(self, key: str, blob: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, blob)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    async def close(self) -> None:
        await asyncio.to_thread(self._close)


def create_blob_store(
    storage_type: Optional[str] = None,
    storage_path: Optional[str] = None
) -> AsyncBlobStore:
    """Factory function to create blob store instances from configuration"""
    config = get_config()
    if storage_type is None:
        storage_type = config.storage_type
    if storage_path is None:
        storage_path = config.storage_path

    storage_type = storage_type.lower()
    logger = get_logger("borrow_ledger.storage")

    if storage_type == "sqlite":
        logger.info(f"Using SQLite blob store at {storage_path}")
        return SQLiteBlobStore(storage_path)
    elif storage_type == "file":
        logger.info(f"Using file blob store in {storage_path}")
        return FileBlobStore(storage_path)
    elif storage_type == "memory":
        return InMemoryBlobStore()
    else:
        raise ValueError(f"Unknown storage type: {storage_type}")
