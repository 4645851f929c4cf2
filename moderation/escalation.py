import datetime
import logging
from dataclasses import dataclass
from typing import Optional

import pytz
from aiogram.utils.text_decorations import html_decoration

from data.texts import TEXTS, VIOLATION_WARNING_TEXTS
from db.models import ChatPolicy, InboundMessage, ViolationKind
from moderation.gateways import DeletionGateway, NotificationGateway, RestrictionGateway
from moderation.ledger import ViolationLedger
from moderation.scheduler import DeletionScheduler

logger = logging.getLogger(__name__)


@dataclass
class EscalationOutcome:
    """Результат обработки одного нарушения"""
    count: int  # значение счётчика после нарушения; 0 после мута
    threshold: int
    muted: bool = False
    notice_message_id: Optional[int] = None


def mute_minutes(seconds: int) -> int:
    return max(1, (seconds + 59) // 60)  # округление вверх


class EscalationController:
    """
    Предупреждения и мут по счётчику нарушений.

    Чистый -> Предупреждён(n) -> Мут. На пороге счётчик обнуляется в той же
    операции, что и мут, поэтому в покое 0 <= count < threshold. Сам мут
    хранит Telegram, здесь его не видно.
    """

    def __init__(
        self,
        ledger: ViolationLedger,
        deletions: DeletionGateway,
        restrictions: RestrictionGateway,
        notifications: NotificationGateway,
        scheduler: Optional[DeletionScheduler] = None,
        notice_lifetime_seconds: int = 0,
        timezone: str = "Europe/Moscow",
        log_violations: bool = True,
        log_penalties: bool = True
    ):
        self.ledger = ledger
        self.deletions = deletions
        self.restrictions = restrictions
        self.notifications = notifications
        self.scheduler = scheduler
        self.notice_lifetime_seconds = notice_lifetime_seconds
        self.timezone = pytz.timezone(timezone)
        self.log_violations = log_violations
        self.log_penalties = log_penalties

    async def process_violation(
        self,
        message: InboundMessage,
        policy: ChatPolicy,
        kind: ViolationKind
    ) -> EscalationOutcome:
        """Удаляет сообщение-нарушение, затем учитывает нарушение"""
        await self.deletions.delete(message.chat_id, message.message_id)
        return await self.register_violation(
            message.chat_id, message.sender_id, message.sender_name, policy, kind
        )

    async def register_violation(
        self,
        chat_id: int,
        user_id: int,
        user_name: str,
        policy: ChatPolicy,
        kind: ViolationKind
    ) -> EscalationOutcome:
        count = await self.ledger.increment(chat_id, user_id)
        threshold = policy.violation_threshold
        name = html_decoration.quote(user_name or str(user_id))

        if self.log_violations:
            logger.info(f"Нарушение {kind.value} пользователя {user_id} в чате {chat_id}: {count}/{threshold}")

        if count < threshold:
            text = TEXTS[VIOLATION_WARNING_TEXTS[kind.value]].format(
                name=name, count=count, threshold=threshold
            )
            notice_id = await self.send_notice(chat_id, text)
            return EscalationOutcome(count=count, threshold=threshold, notice_message_id=notice_id)

        if self.log_penalties:
            logger.info(f"Порог {threshold} достигнут, мут пользователя {user_id} в чате {chat_id}")
        if not await self.restrictions.restrict(chat_id, user_id, policy.mute_duration_seconds):
            logger.warning(f"Не удалось выдать мут пользователю {user_id} в чате {chat_id}, уведомление о муте всё равно отправлено")
        await self.ledger.reset(chat_id, user_id)

        until = datetime.datetime.now(self.timezone) + datetime.timedelta(seconds=policy.mute_duration_seconds)
        text = TEXTS["mute_applied"].format(
            name=name,
            minutes=mute_minutes(policy.mute_duration_seconds),
            threshold=threshold,
            datetime=until.strftime("%d.%m.%Y %H:%M %Z")
        )
        notice_id = await self.send_notice(chat_id, text)
        return EscalationOutcome(count=0, threshold=threshold, muted=True, notice_message_id=notice_id)

    async def warn(self, chat_id: int, user_id: int, user_name: str, policy: ChatPolicy) -> EscalationOutcome:
        """Предупреждение от администратора: как нарушение, но без проверки сообщения"""
        return await self.register_violation(chat_id, user_id, user_name, policy, ViolationKind.MANUAL)

    async def forgive(self, chat_id: int, user_id: int) -> int:
        """Снимает одно предупреждение"""
        count = await self.ledger.decrement(chat_id, user_id)
        if self.log_violations:
            logger.info(f"Снято предупреждение с пользователя {user_id} в чате {chat_id}, осталось {count}")
        return count

    async def mute(self, chat_id: int, user_id: int, duration_seconds: int) -> bool:
        if self.log_penalties:
            logger.info(f"Мут пользователя {user_id} в чате {chat_id} на {duration_seconds} с по команде")
        return await self.restrictions.restrict(chat_id, user_id, duration_seconds)

    async def unmute(self, chat_id: int, user_id: int) -> bool:
        if self.log_penalties:
            logger.info(f"Снятие мута с пользователя {user_id} в чате {chat_id}")
        return await self.restrictions.unrestrict(chat_id, user_id)

    async def send_notice(self, chat_id: int, text: str) -> Optional[int]:
        """Отправляет уведомление и планирует его удаление"""
        notice_id = await self.notifications.notify(chat_id, text)
        if notice_id is not None and self.scheduler is not None and self.notice_lifetime_seconds > 0:
            await self.scheduler.schedule(chat_id, notice_id, self.notice_lifetime_seconds)
        return notice_id
