import logging
from typing import Optional

from aiogram import Bot
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.text_decorations import html_decoration

from config import Config
from data.admin_texts import (
    VIOLATION_DESCRIPTIONS,
    ADMIN_MUTE_NOTIFICATION,
    BUTTON_UNMUTE,
    BUTTON_RESET
)
from moderation.escalation import mute_minutes

logger = logging.getLogger(__name__)


def make_admin_inline_kb(chat_id: int, user_id: int) -> InlineKeyboardMarkup:
    """
    Создает inline клавиатуру для админ-уведомлений.
    Кнопки:
      - "Снять мут" (unmute)
      - "Сбросить счётчик нарушений" (reset)
    """
    kb = InlineKeyboardMarkup(inline_keyboard=[])

    # По одной кнопке в строку
    kb.inline_keyboard.append([
        InlineKeyboardButton(
            text=BUTTON_UNMUTE,
            callback_data=f"unmute:{chat_id}:{user_id}"
        )
    ])

    kb.inline_keyboard.append([
        InlineKeyboardButton(
            text=BUTTON_RESET,
            callback_data=f"reset:{chat_id}:{user_id}"
        )
    ])
    return kb


async def send_admin_notification(
    bot: Bot,
    config: Config,
    chat_id: int,
    user_id: int,
    user_name: str,
    violation_type: str,
    mute_duration_seconds: int,
    msg_text: str
) -> Optional[int]:
    """
    Отправляет в админ-чат отчёт о муте по порогу нарушений с кнопками
    снятия мута и сброса счётчика. Если admin_chat_id не задан, ничего не делает.
    """
    if not config.admin_chat_id:
        return None

    violation_desc = VIOLATION_DESCRIPTIONS.get(violation_type, violation_type)
    text_report = ADMIN_MUTE_NOTIFICATION.format(
        chat_id=chat_id,
        user_name=html_decoration.quote(user_name),
        user_id=user_id,
        violation_desc=violation_desc,
        violation_type=violation_type,
        minutes=mute_minutes(mute_duration_seconds),
        msg_text=html_decoration.quote(msg_text)
    )

    kb = make_admin_inline_kb(chat_id, user_id)
    try:
        sent = await bot.send_message(
            config.admin_chat_id,
            text_report,
            parse_mode="HTML",
            reply_markup=kb
        )
    except Exception as e:
        logger.error(f"Ошибка при отправке уведомления в админ-чат: {str(e)}")
        return None

    if config.logging.modules.admin:
        logger.info(f"Отчёт о муте пользователя {user_id} отправлен в админ-чат")
    return sent.message_id if sent else None
