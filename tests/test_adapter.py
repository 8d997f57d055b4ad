import asyncio
import pytest
from learnsql import adapter
from learnsql.result import Ok, Err, Returned

SCHEMA = """
CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT, score REAL);
INSERT INTO people VALUES (1, 'ada', 9.5), (2, 'bob', NULL), (3, 'cy', 7);
"""


def test_run_returns_headers_and_string_rows(with_db):
    async def body(db):
        await adapter.exec(db, SCHEMA)
        return await adapter.run(db, "SELECT id, name, score FROM people ORDER BY id")
    r = with_db(body)
    assert isinstance(r, Ok)
    assert r.value.headers == ['id', 'name', 'score']
    assert r.value.rows == [['1', 'ada', '9.5'], ['2', 'bob', 'NULL'], ['3', 'cy', '7.0']]
    for row in r.value.rows:
        assert len(row) == len(r.value.headers)
        assert all(isinstance(c, str) for c in row)


def test_run_empty_select_keeps_headers(with_db):
    async def body(db):
        await adapter.exec(db, SCHEMA)
        return await adapter.run(db, "SELECT name FROM people WHERE id > 100")
    r = with_db(body)
    assert r == Ok(Returned(headers=['name'], rows=[]))


def test_run_write_statement_returns_empty_table(with_db):
    async def body(db):
        await adapter.exec(db, SCHEMA)
        w = await adapter.run(db, "INSERT INTO people(name) VALUES ('dee')")
        c = await adapter.run(db, "SELECT count(*) AS n FROM people")
        return w, c
    w, c = with_db(body)
    assert w == Ok(Returned(headers=[], rows=[]))
    assert c.value.rows == [['4']]


def test_run_syntax_error_has_message(with_db):
    r = with_db(lambda db: adapter.run(db, "SELEC nonsense"))
    assert isinstance(r, Err)
    assert isinstance(r.message, str) and r.message
    assert r.message.startswith('OperationalError')
    assert 'syntax error' in r.message


def test_run_constraint_violation_has_message(with_db):
    async def body(db):
        await adapter.exec(db, SCHEMA)
        return await adapter.run(db, "INSERT INTO people(id, name) VALUES (1, 'dup')")
    r = with_db(body)
    assert r.is_err
    assert 'IntegrityError' in r.message


def test_describe_error_never_empty():
    assert adapter.describe_error(RuntimeError()) == 'RuntimeError'
    assert adapter.describe_error(ValueError('boom')) == 'ValueError: boom'


def test_exec_success_is_unit(with_db):
    r = with_db(lambda db: adapter.exec(db, "CREATE TABLE t(x); SELECT 1; SELECT 2;"))
    assert r == Ok(None)


def test_exec_failure_has_no_message(with_db):
    r = with_db(lambda db: adapter.exec(db, "CREATE TABLE t(x); NOT SQL AT ALL;"))
    assert isinstance(r, Err)
    assert r.message is None


def test_failed_exec_leaves_no_partial_writes(with_db):
    async def body(db):
        failed = await adapter.exec(db, "CREATE TABLE t(x); INSERT INTO t VALUES (1); NOT SQL;")
        left = await adapter.run(db, "SELECT count(*) AS n FROM sqlite_master WHERE name = 't'")
        ok = await adapter.exec(db, "CREATE TABLE t(x); INSERT INTO t VALUES (1)")
        rows = await adapter.run(db, "SELECT x FROM t")
        return failed, left, ok, rows
    failed, left, ok, rows = with_db(body)
    assert failed == Err(None)
    assert left.value.rows == [['0']]
    assert ok == Ok(None)
    assert rows.value.rows == [['1']]


def test_exec_with_own_transaction_control(with_db):
    async def body(db):
        await adapter.exec(db, "CREATE TABLE t(x); BEGIN; INSERT INTO t VALUES (2); COMMIT;")
        return await adapter.run(db, "SELECT x FROM t")
    assert with_db(body).value.rows == [['2']]


def test_null_cells_render_as_null():
    assert adapter.cell_text(None) == 'NULL'
    assert adapter.cell_text(0) == '0'
    assert adapter.cell_text('None') == 'None'


def test_callbacks_fire_exactly_once(with_db):
    seen = []
    async def body(db):
        await adapter.exec(db, "CREATE TABLE t(x)", seen.append)
        await adapter.exec(db, "broken", seen.append)
        await adapter.run(db, "SELECT 1 AS one", seen.append)
        await adapter.run(db, "broken", seen.append)
    with_db(body)
    assert len(seen) == 4
    assert seen[0] == Ok(None)
    assert seen[1] == Err(None)
    assert seen[2] == Ok(Returned(headers=['one'], rows=[['1']]))
    assert seen[3].is_err and seen[3].message


def test_raising_callback_is_not_called_twice(with_db):
    calls = []
    def k(result):
        calls.append(result)
        raise RuntimeError('host blew up')
    with pytest.raises(RuntimeError):
        with_db(lambda db: adapter.run(db, "SELECT 1", k))
    assert len(calls) == 1 and calls[0].is_ok


def test_data_persists_across_handles(with_db):
    with_db(lambda db: adapter.exec(db, SCHEMA))
    r = with_db(lambda db: adapter.run(db, "SELECT name FROM people WHERE id = 1"))
    assert r.value.rows == [['ada']]


def test_overlapping_calls_on_one_handle(with_db):
    async def body(db):
        await adapter.exec(db, SCHEMA)
        return await asyncio.gather(*(adapter.run(db, f"SELECT {i} AS n") for i in range(5)))
    results = with_db(body)
    assert [r.value.rows for r in results] == [[[str(i)]] for i in range(5)]


def test_first_use_opens_once_under_concurrency(with_db):
    async def body(db):
        assert not db.is_open
        results = await asyncio.gather(adapter.run(db, "SELECT 1"), adapter.run(db, "SELECT 2"))
        assert db.is_open
        return results
    assert all(r.is_ok for r in with_db(body))


def test_connect_uses_environment(data_dir, monkeypatch):
    monkeypatch.setenv('LEARNSQL_STORAGE_NAME', 'lesson-1')
    async def main():
        db = adapter.connect()
        try:
            return db, await adapter.run(db, "SELECT 'hi' AS greeting")
        finally:
            await db.close()
    db, r = asyncio.run(main())
    assert db.path == data_dir / 'lesson-1.sqlite3'
    assert db.path.exists()
    assert r.value.rows == [['hi']]
