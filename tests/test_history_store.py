"""Tests for history_store module."""
import pytest
import pytest_asyncio

from catalog_picker.history_store import MemoryHistoryStore, SqliteHistoryStore


@pytest_asyncio.fixture
async def store(history_db_path):
    """Create and initialize a test history store."""
    s = SqliteHistoryStore(history_db_path)
    await s.initialize()
    yield s
    await s.close()


@pytest.mark.asyncio
class TestSqliteHistoryStore:
    async def test_initialize_creates_db(self, history_db_path):
        store = SqliteHistoryStore(history_db_path)
        await store.initialize()
        assert history_db_path.exists()
        await store.close()

    async def test_initialize_creates_parent_dirs(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "history.db"
        store = SqliteHistoryStore(db_path)
        await store.initialize()
        assert db_path.exists()
        await store.close()

    async def test_get_missing_key_returns_empty(self, store):
        assert await store.get("catalog_search_history") == []

    async def test_set_and_get(self, store):
        await store.set("catalog_search_history", ["flour", "sugar"])
        assert await store.get("catalog_search_history") == ["flour", "sugar"]

    async def test_set_replaces(self, store):
        await store.set("catalog_search_history", ["flour", "sugar"])
        await store.set("catalog_search_history", ["omo"])
        assert await store.get("catalog_search_history") == ["omo"]

    async def test_keys_are_independent(self, store):
        await store.set("a", ["one"])
        await store.set("b", ["two"])
        assert await store.get("a") == ["one"]
        assert await store.get("b") == ["two"]

    async def test_survives_reopen(self, history_db_path):
        store = SqliteHistoryStore(history_db_path)
        await store.initialize()
        await store.set("catalog_search_history", ["kabras"])
        await store.close()

        reopened = SqliteHistoryStore(history_db_path)
        await reopened.initialize()
        assert await reopened.get("catalog_search_history") == ["kabras"]
        await reopened.close()

    async def test_stores_json_records(self, store):
        records = [{"term": "kabras", "timestamp": "2024-01-01T00:00:00", "result_count": 1, "selected": False}]
        await store.set("catalog_search_analytics", records)
        assert await store.get("catalog_search_analytics") == records

    async def test_corrupt_value_reads_as_empty(self, store):
        await store._connection.execute(
            "INSERT INTO search_history (key, items) VALUES (?, ?)",
            ("broken", "not json"),
        )
        await store._connection.commit()
        assert await store.get("broken") == []

    async def test_requires_initialize(self, history_db_path):
        store = SqliteHistoryStore(history_db_path)
        with pytest.raises(RuntimeError, match="not initialized"):
            await store.get("catalog_search_history")


@pytest.mark.asyncio
class TestMemoryHistoryStore:
    async def test_set_and_get(self):
        store = MemoryHistoryStore()
        await store.set("k", ["a", "b"])
        assert await store.get("k") == ["a", "b"]

    async def test_returns_copies(self):
        store = MemoryHistoryStore({"k": ["a"]})
        values = await store.get("k")
        values.append("b")
        assert await store.get("k") == ["a"]
