import asyncio, pytest
from learnsql.sqlite_backend import SQLiteBackend, BackendConfig
from learnsql.storage import LocalStorage

@pytest.fixture()
def data_dir(tmp_path, monkeypatch):
    d = tmp_path / 'data'
    monkeypatch.setenv('LEARNSQL_DATA_DIR', str(d))
    return d

@pytest.fixture()
def backend(data_dir):
    return SQLiteBackend(BackendConfig(data_dir=data_dir))

@pytest.fixture()
def with_db(backend):
    """Run ``body(db)`` on a fresh handle inside its own event loop, closing it afterwards."""
    def _run(body):
        async def main():
            db = backend.open()
            try:
                return await body(db)
            finally:
                await db.close()
        return asyncio.run(main())
    return _run

@pytest.fixture()
def store(tmp_path):
    s = LocalStorage(tmp_path / 'kv.sqlite3')
    yield s
    s.close()
