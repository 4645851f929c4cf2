"""
Отложенное удаление сообщений.

Задачи лежат в KV-хранилище под ключами del:{not_after:012d}:{chat_id}:{message_id}.
Время в ключе дополнено нулями, поэтому лексикографический порядок ключей
совпадает с порядком сроков: проход по очереди читает значения только у
наступивших задач и останавливается на первом ключе из будущего.
"""
import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from database import KVStore
from db.models import DeletionTask
from moderation.gateways import DeletionGateway

logger = logging.getLogger(__name__)

DELETION_PREFIX = "del:"


def task_key(task: DeletionTask) -> str:
    return f"{DELETION_PREFIX}{task.not_after:012d}:{task.chat_id}:{task.message_id}"


def parse_task_key(key: str) -> Optional[Tuple[int, int, int]]:
    """(not_after, chat_id, message_id) или None для чужого/битого ключа"""
    parts = key[len(DELETION_PREFIX):].split(":")
    if not key.startswith(DELETION_PREFIX) or len(parts) != 3:
        return None
    try:
        return int(parts[0]), int(parts[1]), int(parts[2])
    except ValueError:
        return None


@dataclass
class SweepReport:
    """Итог одного прохода по очереди"""
    due: int = 0  # наступивших задач
    executed: int = 0  # удалены и сняты с очереди
    retained: int = 0  # оставлены для повтора
    dropped: int = 0  # сняты после исчерпания попыток или как повреждённые
    skipped: int = 0  # уже обработаны параллельным проходом


class DeletionScheduler:
    def __init__(
        self,
        store: KVStore,
        deletions: DeletionGateway,
        page_size: int = 100,
        max_attempts: int = 5,
        log_deletions: bool = True
    ):
        self.store = store
        self.deletions = deletions
        self.page_size = page_size
        self.max_attempts = max_attempts
        self.log_deletions = log_deletions

    async def schedule(
        self,
        chat_id: int,
        message_id: int,
        delay_seconds: float,
        companion_message_id: Optional[int] = None,
        now: Optional[float] = None
    ) -> DeletionTask:
        """Планирует удаление не раньше чем через delay_seconds"""
        if delay_seconds < 0:
            raise ValueError("delay_seconds не может быть отрицательным")
        if now is None:
            now = time.time()

        task = DeletionTask(
            chat_id=chat_id,
            message_id=message_id,
            not_after=math.ceil(now + delay_seconds),
            companion_message_id=companion_message_id
        )
        await self.store.put(task_key(task), task.to_json())
        if self.log_deletions:
            logger.info(
                f"Запланировано удаление сообщения {message_id} в чате {chat_id} "
                f"через {delay_seconds} секунд"
            )
        return task

    async def sweep(self, now: Optional[float] = None) -> SweepReport:
        """Выполняет все задачи со сроком не позже now"""
        if now is None:
            now = time.time()
        report = SweepReport()
        cursor = None

        while True:
            page = await self.store.list(DELETION_PREFIX, cursor=cursor, limit=self.page_size)
            for key in page.keys:
                parsed = parse_task_key(key)
                if parsed is None:
                    logger.warning(f"Повреждённый ключ задачи удаления {key}, задача снята")
                    await self.store.delete(key)
                    report.dropped += 1
                    continue
                if parsed[0] > now:
                    self._log_report(report)
                    return report

                report.due += 1
                try:
                    await self._execute(key, report)
                except Exception as e:
                    # Задача останется в очереди и будет выполнена следующим проходом
                    logger.error(f"Ошибка при выполнении задачи {key}: {str(e)}", exc_info=True)
                    report.retained += 1

            if page.list_complete:
                break
            cursor = page.cursor

        self._log_report(report)
        return report

    async def _execute(self, key: str, report: SweepReport) -> None:
        raw = await self.store.get(key)
        if raw is None:
            report.skipped += 1
            return

        try:
            task = DeletionTask.from_json(raw)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Повреждённая задача удаления {key}, задача снята: {e}")
            await self.store.delete(key)
            report.dropped += 1
            return

        ok = await self.deletions.delete(task.chat_id, task.message_id)
        if task.companion_message_id is not None:
            companion_ok = await self.deletions.delete(task.chat_id, task.companion_message_id)
            ok = ok and companion_ok

        if ok:
            await self.store.delete(key)
            report.executed += 1
            return

        task.attempts += 1
        if task.attempts >= self.max_attempts:
            logger.error(
                f"Не удалось удалить сообщение {task.message_id} в чате {task.chat_id} "
                f"за {task.attempts} попыток, задача снята"
            )
            await self.store.delete(key)
            report.dropped += 1
            return

        await self.store.put(key, task.to_json())
        report.retained += 1
        logger.warning(
            f"Удаление сообщения {task.message_id} в чате {task.chat_id} не удалось "
            f"(попытка {task.attempts}/{self.max_attempts}), повтор при следующем проходе"
        )

    def _log_report(self, report: SweepReport) -> None:
        if not self.log_deletions:
            return
        if report.due or report.dropped:
            logger.info(
                f"Проход очереди удаления: наступило {report.due}, выполнено {report.executed}, "
                f"отложено {report.retained}, снято {report.dropped}, пропущено {report.skipped}"
            )
        else:
            logger.debug("Наступивших задач удаления нет")


async def run_sweeper(scheduler: DeletionScheduler, interval_seconds: int) -> None:
    """Периодически запускает проход по очереди удаления"""
    logger.info(f"Запуск очереди отложенного удаления, интервал {interval_seconds} с")

    while True:
        try:
            await scheduler.sweep()
            await scheduler.store.purge_expired()
        except Exception as e:
            logger.error(f"Ошибка при проходе очереди удаления: {str(e)}", exc_info=True)

        await asyncio.sleep(interval_seconds)
