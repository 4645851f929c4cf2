"""Вызовы Telegram Bot API, нужные модерации."""
import logging
import time
from typing import Iterable, Optional, Protocol

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import ChatPermissions

logger = logging.getLogger(__name__)

# Ошибки deleteMessage, после которых сообщения в чате уже нет
ALREADY_DELETED_ERRORS = (
    "message to delete not found",
    "message_id_invalid",
)

ADMIN_STATUSES = ("administrator", "creator")


class DeletionGateway(Protocol):
    async def delete(self, chat_id: int, message_id: int) -> bool: ...


class RestrictionGateway(Protocol):
    async def restrict(self, chat_id: int, user_id: int, duration_seconds: int) -> bool: ...

    async def unrestrict(self, chat_id: int, user_id: int) -> bool: ...


class NotificationGateway(Protocol):
    async def notify(self, chat_id: int, text: str) -> Optional[int]: ...


MUTED_PERMISSIONS = ChatPermissions(
    can_send_messages=False,
    can_send_audios=False,
    can_send_documents=False,
    can_send_photos=False,
    can_send_videos=False,
    can_send_video_notes=False,
    can_send_voice_notes=False,
    can_send_polls=False,
    can_send_other_messages=False,
    can_add_web_page_previews=False,
    can_invite_users=True,
    can_change_info=False,
    can_pin_messages=False
)

UNMUTED_PERMISSIONS = ChatPermissions(
    can_send_messages=True,
    can_send_audios=True,
    can_send_documents=True,
    can_send_photos=True,
    can_send_videos=True,
    can_send_video_notes=True,
    can_send_voice_notes=True,
    can_send_polls=True,
    can_send_other_messages=True,
    can_add_web_page_previews=True,
    can_invite_users=True
)


class TelegramGateway:
    """
    Удаление, ограничение и отправка сообщений через aiogram Bot.

    Ошибки API не пробрасываются: они пишутся в лог, а метод возвращает
    False (или None для notify). Повторы - забота вызывающего.
    """

    def __init__(self, bot: Bot, admin_ids: Iterable[int] = ()):
        self.bot = bot
        self.admin_ids = set(admin_ids)

    async def delete(self, chat_id: int, message_id: int) -> bool:
        try:
            await self.bot.delete_message(chat_id, message_id)
            logger.info(f"Сообщение {message_id} удалено из чата {chat_id}")
            return True
        except TelegramBadRequest as e:
            if any(marker in str(e).lower() for marker in ALREADY_DELETED_ERRORS):
                logger.debug(f"Сообщение {message_id} в чате {chat_id} уже удалено")
                return True
            logger.error(f"Ошибка при удалении сообщения {message_id} из чата {chat_id}: {str(e)}")
            return False
        except Exception as e:
            logger.error(f"Сетевая ошибка при удалении сообщения {message_id} из чата {chat_id}: {str(e)}")
            return False

    async def restrict(self, chat_id: int, user_id: int, duration_seconds: int) -> bool:
        until_date = int(time.time()) + duration_seconds
        try:
            await self.bot.restrict_chat_member(
                chat_id,
                user_id,
                permissions=MUTED_PERMISSIONS,
                until_date=until_date
            )
            logger.info(f"Мут установлен пользователю {user_id} в чате {chat_id} на {duration_seconds} с")
            return True
        except Exception as e:
            logger.error(f"Ошибка при установке мута для пользователя {user_id}: {str(e)}")
            return False

    async def unrestrict(self, chat_id: int, user_id: int) -> bool:
        try:
            await self.bot.restrict_chat_member(chat_id, user_id, permissions=UNMUTED_PERMISSIONS)
            logger.info(f"Мут снят с пользователя {user_id} в чате {chat_id}")
            return True
        except Exception as e:
            logger.error(f"Ошибка при снятии мута с пользователя {user_id}: {str(e)}")
            return False

    async def notify(self, chat_id: int, text: str) -> Optional[int]:
        try:
            sent = await self.bot.send_message(chat_id, text, parse_mode="HTML")
        except Exception as e:
            logger.error(f"Ошибка при отправке сообщения в чат {chat_id}: {str(e)}")
            return None
        return sent.message_id if sent else None

    async def is_admin(self, chat_id: int, user_id: int) -> bool:
        if user_id in self.admin_ids:
            return True
        try:
            member = await self.bot.get_chat_member(chat_id, user_id)
        except Exception as e:
            logger.warning(f"Не удалось проверить права пользователя {user_id} в чате {chat_id}: {str(e)}")
            return False
        return member.status in ADMIN_STATUSES
