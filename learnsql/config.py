"""Environment-driven configuration helpers.

Invalid integers fall back to their default with a warning; out-of-range values
are clamped and the adjustment is reported by the caller.
"""
from __future__ import annotations
import os, re
from pathlib import Path
from typing import Optional, Tuple

from . import DEFAULT_STORAGE_NAME
from .logging_util import warn

DEFAULT_DATA_DIR = Path.home() / ".learnsql"
_STORAGE_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        warn("invalid_env_int", key=name, value=raw, default=default)
        return default


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw == "1"


def clamp(value: int, low: int, high: int) -> Tuple[int, bool]:
    """Return (clamped value, whether it changed)."""
    clamped = min(high, max(low, value))
    return clamped, clamped != value


def data_dir() -> Path:
    """Directory holding the database and key-value files (LEARNSQL_DATA_DIR)."""
    raw = os.environ.get("LEARNSQL_DATA_DIR")
    path = Path(raw).expanduser() if raw else DEFAULT_DATA_DIR
    if path.exists() and not path.is_dir():
        raise ValueError(f"Data dir points to a file, expected directory: {path}")
    return path


def storage_name(override: Optional[str] = None) -> str:
    name = override or os.environ.get("LEARNSQL_STORAGE_NAME") or DEFAULT_STORAGE_NAME
    if not _STORAGE_NAME_RE.match(name):
        raise ValueError(f"Invalid storage name: {name!r}")
    return name
