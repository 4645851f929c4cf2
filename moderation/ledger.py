import logging
from typing import Optional

from database import KVStore
from db.models import ViolationRecord

logger = logging.getLogger(__name__)

VIOLATION_PREFIX = "vio:"


def violation_key(chat_id: int, user_id: int) -> str:
    return f"{VIOLATION_PREFIX}{chat_id}:{user_id}"


class ViolationLedger:
    """
    Счётчики нарушений по паре (чат, пользователь).

    Обновление - чтение, +1 и запись без compare-and-swap: два одновременных
    нарушения одного пользователя могут дать одно увеличение вместо двух.
    Порог от этого достигается позже, но состояние не ломается.
    """

    def __init__(self, store: KVStore, ttl_seconds: int = 0):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def _read(self, chat_id: int, user_id: int) -> Optional[int]:
        raw = await self.store.get(violation_key(chat_id, user_id))
        if raw is None:
            return None
        try:
            count = int(raw)
        except ValueError:
            logger.warning(f"Повреждённый счётчик нарушений {chat_id}:{user_id}: {raw!r}")
            return None
        return max(0, count)

    async def _write(self, chat_id: int, user_id: int, count: int) -> None:
        await self.store.put(
            violation_key(chat_id, user_id),
            str(count),
            expiration_ttl=self.ttl_seconds or None
        )

    async def get(self, chat_id: int, user_id: int) -> ViolationRecord:
        count = await self._read(chat_id, user_id)
        return ViolationRecord(chat_id=chat_id, user_id=user_id, count=count or 0)

    async def increment(self, chat_id: int, user_id: int) -> int:
        count = (await self._read(chat_id, user_id) or 0) + 1
        await self._write(chat_id, user_id, count)
        logger.debug(f"Счётчик нарушений {chat_id}:{user_id} = {count}")
        return count

    async def reset(self, chat_id: int, user_id: int) -> None:
        await self._write(chat_id, user_id, 0)
        logger.debug(f"Счётчик нарушений {chat_id}:{user_id} сброшен")

    async def decrement(self, chat_id: int, user_id: int) -> int:
        count = max(0, (await self._read(chat_id, user_id) or 0) - 1)
        await self._write(chat_id, user_id, count)
        return count
