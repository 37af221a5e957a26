"""Key-value storage backends for presets and session state.

The engine only needs ``get``/``set``/``delete`` on string keys holding
JSON text. Backend failures surface as ``PersistenceError``; callers decide
whether that affects anything beyond durability.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
import json
import os

import duckdb
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config.logging_config import get_logger
from .config.settings import StorageConfig
from .exceptions import PersistenceError

logger = get_logger("storage")


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""

    def close(self) -> None:
        """Release backend resources."""


class MemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store, scoped to the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self):
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """Stores every key in a single JSON document on disk.

    Writes go to a temporary file that replaces the document, so a crash
    mid-write leaves the previous document intact.
    """

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: Location of the JSON document. Created on first write.
        """
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        return self._read_document().get(key)

    def set(self, key: str, value: str) -> None:
        document = self._read_document()
        document[key] = value
        self._write(document, key)

    def delete(self, key: str) -> bool:
        document = self._read_document()
        if key not in document:
            return False
        del document[key]
        self._write(document, key)
        return True

    def _read_document(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}")

        if not isinstance(document, dict):
            raise PersistenceError(f"{self.path} does not contain a JSON object")
        return document

    def _write(self, document: Dict[str, str], key: str) -> None:
        try:
            self._write_document(document)
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            raise PersistenceError(f"Cannot write {self.path}: {e}", key=key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, max=0.5),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_document(self, document: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)


class DuckDBKeyValueStore(KeyValueStore):
    """Stores keys in a ``kv_store`` table of a DuckDB database."""

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to database file. None keeps it in memory.
        """
        self.db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None

    def connect(self) -> duckdb.DuckDBPyConnection:
        """Open the database and create the table if needed."""
        if self._connection is not None:
            return self._connection

        try:
            if self.db_path is None:
                self._connection = duckdb.connect(":memory:")
            else:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._connection = duckdb.connect(str(self.db_path))

            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key VARCHAR PRIMARY KEY,
                    value VARCHAR NOT NULL,
                    updated_at TIMESTAMP DEFAULT current_timestamp
                )
            """)
        except (duckdb.Error, OSError) as e:
            self._connection = None
            raise PersistenceError(f"Cannot open key-value database {self.db_path}: {e}")

        logger.info(f"Connected to key-value database: {self.db_path or ':memory:'}")
        return self._connection

    def get(self, key: str) -> Optional[str]:
        try:
            row = self.connect().execute(
                "SELECT value FROM kv_store WHERE key = ?", [key]
            ).fetchone()
        except duckdb.Error as e:
            raise PersistenceError(f"Cannot read key '{key}': {e}", key=key)
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            self.connect().execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, current_timestamp)
                """,
                [key, value],
            )
        except duckdb.Error as e:
            raise PersistenceError(f"Cannot write key '{key}': {e}", key=key)

    def delete(self, key: str) -> bool:
        if self.get(key) is None:
            return False
        try:
            self.connect().execute("DELETE FROM kv_store WHERE key = ?", [key])
        except duckdb.Error as e:
            raise PersistenceError(f"Cannot delete key '{key}': {e}", key=key)
        return True

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("Key-value database connection closed")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def create_store(storage_config: StorageConfig) -> KeyValueStore:
    """
    Build the backend selected in configuration.

    Args:
        storage_config: Storage settings.

    Returns:
        A KeyValueStore instance.
    """
    if storage_config.backend == "json":
        return JsonFileKeyValueStore(storage_config.path)
    if storage_config.backend == "duckdb":
        return DuckDBKeyValueStore(storage_config.path)
    return MemoryKeyValueStore()
