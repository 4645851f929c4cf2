import logging

from aiogram import Router, Bot
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton

from config import Config
from data.admin_texts import (
    BUTTON_DONE,
    CALLBACK_UNMUTE_DONE,
    CALLBACK_RESET_DONE,
    CALLBACK_NOT_ADMIN
)
from moderation.services import ModerationServices

logger = logging.getLogger(__name__)

callbacks_router = Router(name="callbacks_router")


def parse_target(data: str):
    """'unmute:-100123:42' -> (-100123, 42) или None"""
    parts = data.split(":")
    if len(parts) != 3:
        return None
    try:
        return int(parts[1]), int(parts[2])
    except ValueError:
        return None


async def mark_button_done(call: CallbackQuery, bot: Bot, prefix: str) -> None:
    """Заменяет нажатую кнопку на "Выполнено" """
    if not (call.message and call.message.reply_markup):
        return
    new_keyboard = []
    for row in call.message.reply_markup.inline_keyboard:
        new_row = []
        for button in row:
            if button.callback_data and button.callback_data.startswith(prefix):
                new_row.append(InlineKeyboardButton(text=BUTTON_DONE, callback_data="done"))
            else:
                new_row.append(button)
        new_keyboard.append(new_row)
    await bot.edit_message_reply_markup(
        chat_id=call.message.chat.id,
        message_id=call.message.message_id,
        reply_markup=InlineKeyboardMarkup(inline_keyboard=new_keyboard)
    )


@callbacks_router.callback_query(lambda call: call.data and call.data.startswith("unmute:"))
async def unmute_handler(call: CallbackQuery, bot: Bot, config: Config, services: ModerationServices):
    if call.from_user.id not in config.admin_ids:
        await call.answer(CALLBACK_NOT_ADMIN, show_alert=True)
        return
    target = parse_target(call.data)
    if target is None:
        return
    chat_id, user_id = target

    await services.escalation.unmute(chat_id, user_id)
    logger.info(f"Администратор {call.from_user.id} снял мут с пользователя {user_id} в чате {chat_id}")

    await mark_button_done(call, bot, "unmute:")
    await call.answer(CALLBACK_UNMUTE_DONE, show_alert=True)


@callbacks_router.callback_query(lambda call: call.data and call.data.startswith("reset:"))
async def reset_violations_handler(call: CallbackQuery, bot: Bot, config: Config, services: ModerationServices):
    if call.from_user.id not in config.admin_ids:
        await call.answer(CALLBACK_NOT_ADMIN, show_alert=True)
        return
    target = parse_target(call.data)
    if target is None:
        return
    chat_id, user_id = target

    await services.ledger.reset(chat_id, user_id)
    logger.info(f"Администратор {call.from_user.id} сбросил счётчик пользователя {user_id} в чате {chat_id}")

    await mark_button_done(call, bot, "reset:")
    await call.answer(CALLBACK_RESET_DONE, show_alert=True)
