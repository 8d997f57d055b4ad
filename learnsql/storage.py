"""Persistent string key-value store, kept apart from the query database.

``storage_set`` swallows every write failure (quota, I/O, unencodable text) and only
logs it at DEBUG; ``storage_get`` reports a missing key as ``Err(None)``.
"""
from __future__ import annotations
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from . import config as envconfig
from .base_backend import KeyValueStore
from .errors import QuotaExceededError
from .logging_util import debug, warn
from .result import Err, Ok, Result

STORAGE_FILENAME = "localstorage.sqlite3"
DEFAULT_QUOTA_CHARS = 5_000_000
MAX_QUOTA_CHARS = 100_000_000

_SCHEMA = "CREATE TABLE IF NOT EXISTS entries (key TEXT PRIMARY KEY, value TEXT NOT NULL)"


@dataclass
class StorageConfig:
    path: Path = field(default_factory=lambda: envconfig.DEFAULT_DATA_DIR / STORAGE_FILENAME)
    quota_chars: int = DEFAULT_QUOTA_CHARS

    @classmethod
    def from_env(cls) -> "StorageConfig":
        quota, adjusted = envconfig.clamp(
            envconfig.env_int("LOCAL_STORAGE_QUOTA_CHARS", DEFAULT_QUOTA_CHARS), 1, MAX_QUOTA_CHARS)
        if adjusted:
            warn("storage_config_clamped", quota_chars=quota)
        return cls(path=envconfig.data_dir() / STORAGE_FILENAME, quota_chars=quota)


class LocalStorage:
    """Synchronous string store in a single SQLite file.

    The quota counts characters of every key plus its value.
    """
    def __init__(self, path: Union[str, Path], quota_chars: int = DEFAULT_QUOTA_CHARS):
        self.path = Path(path)
        if self.path.is_dir():
            raise ValueError(f"Path points to a directory, expected file: {self.path}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.quota_chars = quota_chars
        self._conn = sqlite3.connect(self.path)
        with self._conn:
            self._conn.execute(_SCHEMA)

    @classmethod
    def from_config(cls, config: StorageConfig) -> "LocalStorage":
        return cls(config.path, quota_chars=config.quota_chars)

    def set_item(self, key: str, value: str) -> None:
        with self._conn:
            used = self._conn.execute(
                "SELECT COALESCE(SUM(length(key) + length(value)), 0) FROM entries WHERE key != ?",
                (key,),
            ).fetchone()[0]
            needed = used + len(key) + len(value)
            if needed > self.quota_chars:
                raise QuotaExceededError(needed, self.quota_chars)
            self._conn.execute(
                "INSERT INTO entries(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def get_item(self, key: str) -> Optional[str]:
        row = self._conn.execute("SELECT value FROM entries WHERE key = ?", (key,)).fetchone()
        return None if row is None else row[0]

    def remove_item(self, key: str) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM entries WHERE key = ?", (key,))

    def clear(self) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM entries")

    def keys(self) -> List[str]:
        return [r[0] for r in self._conn.execute("SELECT key FROM entries ORDER BY key")]

    def __len__(self) -> int:
        return self._conn.execute("SELECT count(*) FROM entries").fetchone()[0]

    def close(self) -> None:
        self._conn.close()


def open_storage() -> LocalStorage:
    return LocalStorage.from_config(StorageConfig.from_env())


def storage_set(store: KeyValueStore, key: str, value: str) -> None:
    try:
        store.set_item(key, value)
    except Exception as e:  # any rejected write is dropped
        debug("storage_set_failed", key=key, error=f"{type(e).__name__}: {e}")


def storage_get(store: KeyValueStore, key: str) -> Result:
    try:
        value = store.get_item(key)
    except UnicodeEncodeError:
        # a key the store cannot encode was never written
        return Err(None)
    if value is None:
        return Err(None)
    return Ok(value)
