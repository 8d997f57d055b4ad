"""SQLite engine behind the adapter.

Enhancements over a bare aiosqlite connection:
    - Environment driven tuning with clamping + sanity logging
    - Lazy open on first use (handle is usable immediately, like an in-browser engine)
    - Array / object row modes on query()
    - Health check helper + optional integrity_check (VERIFY_ON_CONNECT=1)
    - Online backup through the sqlite3 backup API
"""
from __future__ import annotations
import asyncio, re, sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import aiosqlite

from . import DEFAULT_STORAGE_NAME, config as envconfig
from .base_backend import Field, QueryOutput, RowMode
from .logging_util import debug, info, warn

MAX_CACHE_KIB = 512 * 1024        # 512 MiB upper clamp
MIN_CACHE_KIB = 16                # SQLite minimum practical
DEFAULT_CACHE_KIB = 16 * 1024     # 16 MiB
MAX_BUSY_TIMEOUT_MS = 600_000
DEFAULT_BUSY_TIMEOUT_MS = 30_000
DB_SUFFIX = ".sqlite3"
ROW_MODES = ("array", "object")
# statement-leading transaction control; such scripts manage their own atomicity
_TXN_CONTROL_RE = re.compile(r"(?:^|;)\s*(?:BEGIN|COMMIT|END|ROLLBACK|SAVEPOINT|RELEASE)\b", re.IGNORECASE)

@dataclass
class BackendConfig:
    data_dir: Path = field(default_factory=lambda: envconfig.DEFAULT_DATA_DIR)
    storage_name: str = DEFAULT_STORAGE_NAME
    cache_kib: int = DEFAULT_CACHE_KIB
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
    verify_on_connect: bool = False

    @classmethod
    def from_env(cls) -> "BackendConfig":
        cache_kib, cache_adj = envconfig.clamp(
            envconfig.env_int("CACHE_SIZE_KIB", DEFAULT_CACHE_KIB), MIN_CACHE_KIB, MAX_CACHE_KIB)
        busy_ms, busy_adj = envconfig.clamp(
            envconfig.env_int("BUSY_TIMEOUT_MS", DEFAULT_BUSY_TIMEOUT_MS), 0, MAX_BUSY_TIMEOUT_MS)
        if cache_adj or busy_adj:
            warn("backend_config_clamped", clamped={"cache_kib": cache_kib, "busy_timeout_ms": busy_ms})
        return cls(
            data_dir=envconfig.data_dir(),
            storage_name=envconfig.storage_name(),
            cache_kib=cache_kib,
            busy_timeout_ms=busy_ms,
            verify_on_connect=envconfig.env_flag("VERIFY_ON_CONNECT"),
        )

    def pragmas(self) -> List[Tuple[str, str]]:
        """(pragma assignment, tag) pairs applied to every connection."""
        return [
            ("foreign_keys=ON", "foreign_keys"),
            (f"busy_timeout={self.busy_timeout_ms}", "busy_timeout"),
            ("journal_mode=WAL", "journal_mode"),
            (f"cache_size=-{self.cache_kib}", "cache_size"),  # negative => KiB
            ("synchronous=NORMAL", "synchronous"),
        ]


class Database:
    """Handle to one persisted database file.

    The aiosqlite connection is opened on first use. Single statements run in
    autocommit mode; exec() batches run as one transaction unless the SQL text
    manages its own.
    """
    def __init__(self, path: Path, config: BackendConfig):
        self.path = path
        self.config = config
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def query(self, sql: str, params: Sequence[Any] = (), row_mode: RowMode = "object") -> QueryOutput:
        if row_mode not in ROW_MODES:
            raise ValueError(f"Unknown row mode: {row_mode!r}")
        conn = await self._ensure_open()
        async with conn.execute(sql, tuple(params)) as cursor:
            raw_rows = await cursor.fetchall()
            description = cursor.description or ()
        fields = [Field(name=d[0]) for d in description]
        if row_mode == "array":
            rows: List[Any] = [tuple(r) for r in raw_rows]
        else:
            names = [f.name for f in fields]
            rows = [dict(zip(names, r)) for r in raw_rows]
        return QueryOutput(rows=rows, fields=fields)

    async def exec(self, sql: str) -> None:
        """Run a script atomically: a failing statement rolls back the whole batch.

        Scripts that already carry their own transaction control (or run while a
        transaction is open) are executed as-is.
        """
        conn = await self._ensure_open()
        if conn.in_transaction or _TXN_CONTROL_RE.search(sql):
            await conn.executescript(sql)
            return
        try:
            await conn.executescript(f"BEGIN;\n{sql}\n;\nCOMMIT;")
        except Exception:
            if conn.in_transaction:
                await conn.execute("ROLLBACK")
            raise

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await conn.close()

    # --- Internal -------------------------------------------------------------------
    async def _ensure_open(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._conn is None:
                conn = await aiosqlite.connect(self.path, isolation_level=None)
                await self._apply_pragmas(conn)
                self._conn = conn
                info("database_opened", path=str(self.path))
        return self._conn

    async def _apply_pragmas(self, conn: aiosqlite.Connection) -> None:
        for p, tag in self.config.pragmas():
            try:
                await conn.execute(f"PRAGMA {p}")
            except sqlite3.Error as e:
                warn("pragma_failed", pragma=p, tag=tag, path=str(self.path), error=str(e))
        if self.config.verify_on_connect:
            async with conn.execute("PRAGMA integrity_check") as cur:
                row = await cur.fetchone()
            if row is None or row[0] != "ok":
                warn("integrity_check_failed", path=str(self.path), result=row and row[0])


class SQLiteBackend:
    """SQLite backend.

    Responsibilities:
      - Map storage names to database files under the data dir
      - Hand out lazily opened Database handles
      - Health check + backup utilities for operators
    """
    def __init__(self, config: Optional[BackendConfig] = None):
        self.config = config or BackendConfig.from_env()
        if self.config.data_dir.exists() and not self.config.data_dir.is_dir():
            raise ValueError(f"Data dir points to a file, expected directory: {self.config.data_dir}")

    # --- Public API -----------------------------------------------------------------
    def path_for(self, storage_name: Optional[str] = None) -> Path:
        name = envconfig.storage_name(storage_name or self.config.storage_name)
        return self.config.data_dir / f"{name}{DB_SUFFIX}"

    def open(self, storage_name: Optional[str] = None) -> Database:
        """Return a Database handle for ``storage_name``, creating the data dir if absent."""
        path = self.path_for(storage_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        debug("database_handle_created", path=str(path))
        return Database(path, self.config)

    def health_check(self, storage_name: Optional[str] = None) -> Dict[str, Any]:
        """Return current core pragma values and basic status without creating the file."""
        path = self.path_for(storage_name)
        if not path.exists():
            return {"ok": False, "path": str(path), "error": f"Database not found: {path}"}
        try:
            conn = sqlite3.connect(path)
        except sqlite3.Error as e:
            return {"ok": False, "path": str(path), "error": str(e)}
        try:
            # report what a Database handle actually runs with
            for p, tag in self.config.pragmas():
                try:
                    conn.execute(f"PRAGMA {p}")
                except sqlite3.Error as e:
                    warn("pragma_failed", pragma=p, tag=tag, path=str(path), error=str(e))
            rows = {
                "foreign_keys": conn.execute("PRAGMA foreign_keys").fetchone()[0],
                "journal_mode": conn.execute("PRAGMA journal_mode").fetchone()[0],
                "busy_timeout": conn.execute("PRAGMA busy_timeout").fetchone()[0],
                "cache_size": conn.execute("PRAGMA cache_size").fetchone()[0],
                "tables": conn.execute("SELECT count(*) FROM sqlite_master WHERE type='table'").fetchone()[0],
            }
            return {"ok": True, "path": str(path), **rows}
        except sqlite3.Error as e:
            return {"ok": False, "path": str(path), "error": str(e)}
        finally:
            conn.close()

    def backup(self, dest: Union[str, Path], storage_name: Optional[str] = None) -> Path:
        """Write a consistent copy of the database to ``dest`` using the online backup API."""
        src_path = self.path_for(storage_name)
        if not src_path.exists():
            raise FileNotFoundError(f"Database not found: {src_path}")
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        src = sqlite3.connect(src_path)
        try:
            dst = sqlite3.connect(dest)
            try:
                with dst:
                    src.backup(dst)
            finally:
                dst.close()
        finally:
            src.close()
        info("backup_created", source=str(src_path), path=str(dest))
        return dest
