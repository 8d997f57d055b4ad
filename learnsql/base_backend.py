"""Backend abstraction layer.

Defines the minimal contracts the adapter consumes so the SQLite engine and the
key-value store can be swapped (e.g. an in-memory fake in tests).

KISS: Only the operations the adapter needs are abstracted.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Protocol, Sequence

RowMode = Literal["array", "object"]


@dataclass(frozen=True)
class Field:
    name: str


@dataclass(frozen=True)
class QueryOutput:
    """Raw engine result. Rows are tuples in array mode, dicts in object mode."""
    rows: List[Any]
    fields: List[Field]


class EngineConnection(Protocol):  # pragma: no cover - structural typing helper
    async def query(self, sql: str, params: Sequence[Any] = (), row_mode: RowMode = "object") -> QueryOutput:
        """Run one statement and return its rows + field descriptors."""
        ...

    async def exec(self, sql: str) -> None:
        """Run a script of one or more statements, discarding any rows."""
        ...


class KeyValueStore(Protocol):  # pragma: no cover - structural typing helper
    def set_item(self, key: str, value: str) -> None: ...
    def get_item(self, key: str) -> Optional[str]: ...
