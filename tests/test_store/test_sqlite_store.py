import pytest

from signed_query.errors import StoreError
from signed_query.query_docs import Rowset
from signed_query.store import SqliteStore, StaticStore, Store


SCHEMA = """
CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, nick TEXT);
INSERT INTO users (id, name, nick) VALUES (1, 'Alice', NULL);
INSERT INTO users (id, name, nick) VALUES (2, 'Bob', 'bobby');
"""


@pytest.fixture
def store(tmp_path):
    s = SqliteStore(tmp_path / "exchange.db")
    assert s.run_script(SCHEMA) == 3
    return s


def test_stores_satisfy_protocol(store):
    assert isinstance(store, Store)
    assert isinstance(StaticStore(["a"], []), Store)


def test_execute_returns_columns_and_rows(store):
    rs = store.execute("SELECT name, nick FROM users ORDER BY id")

    assert isinstance(rs, Rowset)
    assert rs.columns == ("name", "nick")
    assert rs.rows == (("Alice", None), ("Bob", "bobby"))


def test_execute_with_condition(store):
    rs = store.execute("SELECT name FROM users WHERE id=1")
    assert rs.rows == (("Alice",),)


def test_invalid_query_raises_store_error(store):
    with pytest.raises(StoreError):
        store.execute("SELECT missing FROM users")


def test_script_from_file(tmp_path):
    script = tmp_path / "db.sql"
    script.write_text(SCHEMA, encoding="utf-8")
    s = SqliteStore(tmp_path / "other.db")

    assert s.run_script(script) == 3
    assert len(s.execute("SELECT * FROM users")) == 2


def test_broken_script_raises_store_error(tmp_path):
    s = SqliteStore(tmp_path / "broken.db")
    with pytest.raises(StoreError):
        s.run_script("CREATE TABLE t (a INT); INSERT INTO nowhere VALUES (1);")


@pytest.mark.asyncio
async def test_fetch_coroutine(store):
    rs = await store.fetch("SELECT id, name FROM users ORDER BY id DESC")
    assert rs.columns == ("id", "name")
    assert rs.rows == ((2, "Bob"), (1, "Alice"))


def test_static_store_records_queries():
    s = StaticStore(["name"], [["Alice"]])
    rs = s.execute("SELECT name FROM users WHERE id=1")

    assert rs.rows == (("Alice",),)
    assert s.queries == ["SELECT name FROM users WHERE id=1"]


def test_static_store_error():
    s = StaticStore(["name"], [], error=RuntimeError("db down"))
    with pytest.raises(StoreError, match="db down"):
        s.execute("SELECT 1")
