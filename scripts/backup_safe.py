#!/usr/bin/env python3
"""Create a consistent backup of the playground database.

Uses the sqlite3 online backup API, so it is safe while another process has the
database open.

Usage:
  python scripts/backup_safe.py <backup_path> [storage_name]
"""
from __future__ import annotations
import sys, time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from learnsql.sqlite_backend import SQLiteBackend  # noqa: E402

def main():
    if len(sys.argv) < 2:
        print('Usage: backup_safe.py <backup_path> [storage_name]', file=sys.stderr)
        return 2
    dst = Path(sys.argv[1])
    name = sys.argv[2] if len(sys.argv) > 2 else None
    start = time.time()
    try:
        SQLiteBackend().backup(dst, storage_name=name)
    except FileNotFoundError as e:
        print(f"source missing: {e}", file=sys.stderr)
        return 1
    dur_ms = int((time.time()-start)*1000)
    print(f"backup_created path={dst} ms={dur_ms}")
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
