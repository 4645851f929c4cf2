"""
Тесты KV-хранилища поверх SQLite.
"""
import aiosqlite
import pytest

import database
from database import KVStore, init_db


@pytest.mark.asyncio
async def test_init_db_creates_table(tmp_path):
    """Тест инициализации базы данных"""
    db_path = str(tmp_path / "nested" / "kv.db")
    await init_db(db_path)

    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in await cursor.fetchall()}
    assert "kv_store" in tables

    # Повторная инициализация не ломает базу
    await init_db(db_path)


@pytest.mark.asyncio
async def test_put_get_delete(kv_store):
    assert await kv_store.get("missing") is None

    await kv_store.put("a", "1")
    assert await kv_store.get("a") == "1"

    await kv_store.put("a", "2")
    assert await kv_store.get("a") == "2"

    await kv_store.delete("a")
    assert await kv_store.get("a") is None

    # Удаление отсутствующего ключа - не ошибка
    await kv_store.delete("a")


@pytest.mark.asyncio
async def test_expired_entries_are_hidden(kv_store, monkeypatch):
    """Записи с истёкшим сроком не видны и удаляются purge_expired"""
    await kv_store.put("short", "x", expiration_ttl=10)
    await kv_store.put("forever", "y")
    assert await kv_store.get("short") == "x"

    real_time = database.time.time()
    monkeypatch.setattr(database.time, "time", lambda: real_time + 60)

    assert await kv_store.get("short") is None
    assert (await kv_store.list()).keys == ["forever"]
    assert await kv_store.purge_expired() == 1
    assert await kv_store.get("forever") == "y"


@pytest.mark.asyncio
async def test_list_is_lexicographic_with_prefix(kv_store):
    for key in ("del:3", "del:1", "policy:1", "del:2", "vio:1:1"):
        await kv_store.put(key, "v")

    result = await kv_store.list("del:")
    assert result.keys == ["del:1", "del:2", "del:3"]
    assert result.list_complete is True
    assert result.cursor is None


@pytest.mark.asyncio
async def test_list_pagination(kv_store):
    """Курсор продолжает перечисление после последнего ключа страницы"""
    for i in range(5):
        await kv_store.put(f"k:{i}", str(i))

    first = await kv_store.list("k:", limit=2)
    assert first.keys == ["k:0", "k:1"]
    assert first.list_complete is False

    second = await kv_store.list("k:", cursor=first.cursor, limit=2)
    assert second.keys == ["k:2", "k:3"]

    third = await kv_store.list("k:", cursor=second.cursor, limit=2)
    assert third.keys == ["k:4"]
    assert third.list_complete is True


@pytest.mark.asyncio
async def test_list_exact_page_is_complete(kv_store):
    for i in range(2):
        await kv_store.put(f"k:{i}", str(i))
    result = await kv_store.list("k:", limit=2)
    assert result.keys == ["k:0", "k:1"]
    assert result.list_complete is True


@pytest.mark.asyncio
async def test_list_rejects_bad_limit(kv_store):
    with pytest.raises(ValueError):
        await kv_store.list("k:", limit=0)


@pytest.mark.asyncio
async def test_prefix_with_like_wildcards(kv_store):
    """Символы % и _ в префиксе сравниваются буквально"""
    await kv_store.put("a_b", "1")
    await kv_store.put("axb", "2")
    assert (await kv_store.list("a_")).keys == ["a_b"]


@pytest.mark.asyncio
async def test_separate_store_instances_share_data(test_db_path):
    await KVStore(test_db_path).put("shared", "1")
    assert await KVStore(test_db_path).get("shared") == "1"
