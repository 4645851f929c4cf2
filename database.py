import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import aiosqlite

logger = logging.getLogger(__name__)

DB_PATH = "moderation.db"

CREATE_TABLES_SCRIPT = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at INTEGER
);
CREATE INDEX IF NOT EXISTS idx_kv_expires_at ON kv_store(expires_at);
"""


async def retry_on_locked(func: Callable, *args, **kwargs) -> Any:
    """
    Повторяет операцию при блокировке базы данных.
    Пытается выполнить операцию до 3 раз с интервалом 0.1 секунды.
    """
    max_attempts = 3
    delay = 0.1

    for attempt in range(max_attempts):
        try:
            return await func(*args, **kwargs)
        except aiosqlite.OperationalError as e:
            if "database is locked" in str(e) and attempt < max_attempts - 1:
                await asyncio.sleep(delay)
                continue
            raise
    return None


async def init_db(db_path: str = DB_PATH) -> None:
    """Создаёт файл базы и таблицу хранилища"""
    logger.info(f"Инициализация базы данных {db_path}...")

    # Убедимся, что директория существует
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)

    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.executescript(CREATE_TABLES_SCRIPT)
        await db.commit()

    # Проверяем, что таблица действительно создана
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = await cursor.fetchall()
        await cursor.close()

        if "kv_store" not in {table[0] for table in tables}:
            raise Exception("Failed to create table: kv_store")

    logger.info("База данных инициализирована успешно")


@dataclass
class KVListResult:
    """Одна страница результата KVStore.list"""
    keys: List[str] = field(default_factory=list)
    cursor: Optional[str] = None  # Передаётся в следующий вызов list
    list_complete: bool = True


class KVStore:
    """
    Строковое хранилище ключ-значение поверх SQLite.

    Транзакций и compare-and-swap наружу не даёт: каждая операция
    выполняется в своём соединении, при конкурентной записи побеждает
    последний писатель. Ключи отдаются в лексикографическом порядке.
    """

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        await conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    async def get(self, key: str) -> Optional[str]:
        async def _get():
            conn = await self._connect()
            try:
                async with conn.execute(
                    """
                    SELECT value FROM kv_store
                    WHERE key = ? AND (expires_at IS NULL OR expires_at > ?)
                    """,
                    (key, int(time.time()))
                ) as cursor:
                    row = await cursor.fetchone()
                return row[0] if row else None
            finally:
                await conn.close()

        return await retry_on_locked(_get)

    async def put(self, key: str, value: str, expiration_ttl: Optional[int] = None) -> None:
        expires_at = int(time.time()) + expiration_ttl if expiration_ttl else None

        async def _put():
            conn = await self._connect()
            try:
                await conn.execute(
                    """
                    INSERT INTO kv_store (key, value, expires_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE
                    SET value = excluded.value, expires_at = excluded.expires_at
                    """,
                    (key, value, expires_at)
                )
                await conn.commit()
            finally:
                await conn.close()

        logger.debug(f"put {key}")
        await retry_on_locked(_put)

    async def delete(self, key: str) -> None:
        async def _delete():
            conn = await self._connect()
            try:
                await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                await conn.commit()
            finally:
                await conn.close()

        logger.debug(f"delete {key}")
        await retry_on_locked(_delete)

    async def list(self, prefix: str = "", cursor: Optional[str] = None, limit: int = 1000) -> KVListResult:
        """Возвращает страницу ключей с префиксом prefix, идущих после cursor"""
        if limit < 1:
            raise ValueError("limit должен быть не меньше 1")

        async def _list():
            conn = await self._connect()
            try:
                async with conn.execute(
                    """
                    SELECT key FROM kv_store
                    WHERE substr(key, 1, ?) = ?
                    AND key > ?
                    AND (expires_at IS NULL OR expires_at > ?)
                    ORDER BY key
                    LIMIT ?
                    """,
                    (len(prefix), prefix, cursor or "", int(time.time()), limit + 1)
                ) as db_cursor:
                    rows = await db_cursor.fetchall()
            finally:
                await conn.close()

            keys = [row[0] for row in rows[:limit]]
            if len(rows) > limit:
                return KVListResult(keys=keys, cursor=keys[-1], list_complete=False)
            return KVListResult(keys=keys, cursor=None, list_complete=True)

        return await retry_on_locked(_list)

    async def purge_expired(self) -> int:
        """Физически удаляет просроченные записи"""
        async def _purge():
            conn = await self._connect()
            try:
                cursor = await conn.execute(
                    "DELETE FROM kv_store WHERE expires_at IS NOT NULL AND expires_at <= ?",
                    (int(time.time()),)
                )
                await conn.commit()
                return cursor.rowcount
            finally:
                await conn.close()

        removed = await retry_on_locked(_purge)
        if removed:
            logger.info(f"Удалено просроченных записей: {removed}")
        return removed
