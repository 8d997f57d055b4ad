"""`learnsql` command line: run SQL against the persisted playground database.

Usage examples:
  learnsql query "SELECT 1 AS one"
  learnsql query                      # rerun the last query
  learnsql exec @schema.sql
  learnsql health
  learnsql storage set theme dark
"""
from __future__ import annotations
import argparse, asyncio, json, sys
from pathlib import Path
from typing import List, Optional

from . import adapter
from .result import Returned
from .sqlite_backend import SQLiteBackend
from .storage import open_storage, storage_get, storage_set

LAST_QUERY_KEY = "last_query"


def render_table(result: Returned) -> str:
    if not result.headers:
        return "(no rows)"
    widths = [len(h) for h in result.headers]
    for row in result.rows:
        widths = [max(w, len(c)) for w, c in zip(widths, row)]
    def line(cells: List[str]) -> str:
        return " | ".join(c.ljust(w) for c, w in zip(cells, widths)).rstrip()
    out = [line(result.headers), "-+-".join("-" * w for w in widths)]
    out.extend(line(r) for r in result.rows)
    out.append(f"({len(result.rows)} row{'s' if len(result.rows) != 1 else ''})")
    return "\n".join(out)


def _read_sql(arg: str) -> str:
    if arg.startswith("@"):
        return Path(arg[1:]).read_text(encoding="utf-8")
    return arg


async def _run_query(sql: str) -> int:
    db = adapter.connect()
    try:
        result = await adapter.run(db, sql)
    finally:
        await db.close()
    if result.is_err:
        print(result.message, file=sys.stderr)
        return 1
    print(render_table(result.value))
    return 0


async def _run_exec(sql: str) -> int:
    db = adapter.connect()
    try:
        result = await adapter.exec(db, sql)
    finally:
        await db.close()
    print("ok" if result.is_ok else "failed")
    return 0 if result.is_ok else 1


def cmd_query(args) -> int:
    store = open_storage()
    try:
        if args.sql is None:
            last = storage_get(store, LAST_QUERY_KEY)
            if last.is_err:
                print("No previous query to rerun", file=sys.stderr)
                return 2
            sql = last.value
        else:
            sql = _read_sql(args.sql)
            storage_set(store, LAST_QUERY_KEY, sql)
    finally:
        store.close()
    return asyncio.run(_run_query(sql))


def cmd_exec(args) -> int:
    return asyncio.run(_run_exec(_read_sql(args.sql)))


def cmd_health(args) -> int:
    hc = SQLiteBackend().health_check()
    print(json.dumps(hc, indent=2))
    return 0 if hc.get("ok") else 1


def cmd_config(args) -> int:
    be = SQLiteBackend()
    cfg = {k: str(v) if isinstance(v, Path) else v for k, v in be.config.__dict__.items()}
    print(json.dumps({"config": cfg, "health_check": be.health_check()}, indent=2))
    return 0


def cmd_storage(args) -> int:
    store = open_storage()
    try:
        if args.action == "set":
            if args.value is None:
                print("storage set requires VALUE", file=sys.stderr)
                return 2
            storage_set(store, args.key, args.value)
            return 0
        result = storage_get(store, args.key)
        if result.is_err:
            return 1
        print(result.value)
        return 0
    finally:
        store.close()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="learnsql", description="SQL playground backed by a persistent SQLite database")
    sub = ap.add_subparsers(dest="command", required=True)
    q = sub.add_parser("query", help="Run one statement and print its rows")
    q.add_argument("sql", nargs="?", help="SQL text or @file; omit to rerun the last query")
    q.set_defaults(func=cmd_query)
    e = sub.add_parser("exec", help="Run a batch of statements")
    e.add_argument("sql", help="SQL text or @file")
    e.set_defaults(func=cmd_exec)
    h = sub.add_parser("health", help="Print database health info")
    h.set_defaults(func=cmd_health)
    c = sub.add_parser("config", help="Dump resolved config + health info")
    c.set_defaults(func=cmd_config)
    s = sub.add_parser("storage", help="Read or write the key-value store")
    s.add_argument("action", choices=["get", "set"])
    s.add_argument("key")
    s.add_argument("value", nargs="?")
    s.set_defaults(func=cmd_storage)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
