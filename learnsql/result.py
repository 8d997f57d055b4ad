"""Tagged success/failure values handed back to the host application."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False


@dataclass(frozen=True)
class Err:
    """Failure. ``message`` is None when the failure deliberately carries no detail."""
    message: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True


Result = Union[Ok[Any], Err]


@dataclass(frozen=True)
class Returned:
    """Display-oriented query result: column names plus stringified rows."""
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
