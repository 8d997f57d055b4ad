"""Query adapter exposed to the host application.

``run`` and ``exec`` never raise for query faults: every outcome becomes a
``Result``. Each call returns its result and, when a callback is supplied,
delivers that same result to it exactly once.
"""
from __future__ import annotations
from typing import Callable, Optional

from .base_backend import EngineConnection
from .logging_util import debug
from .result import Err, Ok, Result, Returned
from .sqlite_backend import Database, SQLiteBackend

Callback = Callable[[Result], None]
NULL_TEXT = "NULL"


def connect() -> Database:
    """Open (creating if absent) the persistent database named by the environment."""
    return SQLiteBackend().open()


def cell_text(value) -> str:
    return NULL_TEXT if value is None else str(value)


def describe_error(exc: BaseException) -> str:
    text = str(exc)
    name = type(exc).__name__
    return f"{name}: {text}" if text else name


async def run(db: EngineConnection, query: str, k: Optional[Callback] = None) -> Result:
    """Execute ``query`` and return its headers + stringified rows."""
    try:
        output = await db.query(query, [], row_mode="array")
        headers = [f.name for f in output.fields]
        rows = [[cell_text(col) for col in row] for row in output.rows]
        result: Result = Ok(Returned(headers=headers, rows=rows))
    except Exception as e:
        debug("query_failed", error=describe_error(e))
        result = Err(describe_error(e))
    if k is not None:
        k(result)
    return result


async def exec(db: EngineConnection, queries: str, k: Optional[Callback] = None) -> Result:
    """Execute a batch of statements. Failures carry no message."""
    try:
        await db.exec(queries)
        result: Result = Ok(None)
    except Exception as e:
        debug("exec_failed", error=describe_error(e))
        result = Err(None)
    if k is not None:
        k(result)
    return result
