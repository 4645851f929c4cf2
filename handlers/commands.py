"""
Команды администраторов группы.

Команды от остальных участников сюда не попадают и проверяются
обычным обработчиком сообщений.
"""
import logging
import re
from typing import Optional

from aiogram import Router, F
from aiogram.filters import BaseFilter, Command, CommandObject
from aiogram.types import Message
from aiogram.utils.text_decorations import html_decoration

from data.texts import TEXTS, format_delay, on_off
from db.models import display_name
from db.operations import format_domains
from moderation.escalation import mute_minutes
from moderation.services import ModerationServices

logger = logging.getLogger(__name__)

DURATION_RE = re.compile(r"^(\d+)(s|m|h|d)$", re.IGNORECASE)
DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

DEFAULT_DELETE_DELAY = "10s"
DEFAULT_MUTE_DURATION = "30m"
FALLBACK_DURATION_SECONDS = 60


def parse_duration(value: Optional[str], default: str) -> int:
    """'10s', '5m', '2h', '1d' -> секунды; нераспознанное значение - 60 секунд"""
    match = DURATION_RE.match((value or default).strip())
    if not match:
        return FALLBACK_DURATION_SECONDS
    return int(match.group(1)) * DURATION_UNITS[match.group(2).lower()]


class AdminFilter(BaseFilter):
    """Пропускает только администраторов чата"""

    async def __call__(self, message: Message, services: ModerationServices) -> bool:
        if not message.from_user:
            return False
        return await services.gateway.is_admin(message.chat.id, message.from_user.id)


commands_router = Router(name="commands_router")
# Проверка прав идёт последней: для обычных сообщений она не нужна
commands_router.message.filter(
    F.chat.type.in_({"group", "supergroup"}),
    F.text.startswith("/"),
    AdminFilter()
)


def _first_arg(command: CommandObject) -> Optional[str]:
    return command.args.split()[0] if command.args else None


async def _reply_target(message: Message, services: ModerationServices):
    """Автор сообщения, на которое ответили командой; иначе - подсказка в чат"""
    reply = message.reply_to_message
    if reply and reply.from_user:
        return reply.from_user
    await services.escalation.send_notice(message.chat.id, TEXTS["reply_required"])
    return None


@commands_router.message(Command("del"))
async def delete_later_command(message: Message, command: CommandObject, services: ModerationServices):
    chat_id = message.chat.id
    if not message.reply_to_message:
        await services.escalation.send_notice(chat_id, TEXTS["reply_required"])
        return

    delay = parse_duration(_first_arg(command), DEFAULT_DELETE_DELAY)
    target_id = message.reply_to_message.message_id

    confirmation_id = await services.gateway.notify(
        chat_id, TEXTS["delete_scheduled"].format(delay=format_delay(delay))
    )
    await services.scheduler.schedule(chat_id, target_id, delay, companion_message_id=confirmation_id)
    logger.info(f"Администратор {message.from_user.id} запланировал удаление сообщения {target_id} в чате {chat_id}")
    await services.gateway.delete(chat_id, message.message_id)


@commands_router.message(Command("mute"))
async def mute_command(message: Message, command: CommandObject, services: ModerationServices):
    target = await _reply_target(message, services)
    if target is None:
        return

    duration = parse_duration(_first_arg(command), DEFAULT_MUTE_DURATION)
    if await services.escalation.mute(message.chat.id, target.id, duration):
        await services.escalation.send_notice(
            message.chat.id,
            TEXTS["muted_by_admin"].format(
                name=html_decoration.quote(display_name(target)),
                minutes=mute_minutes(duration)
            )
        )
    await services.gateway.delete(message.chat.id, message.message_id)


@commands_router.message(Command("unmute"))
async def unmute_command(message: Message, services: ModerationServices):
    target = await _reply_target(message, services)
    if target is None:
        return

    if await services.escalation.unmute(message.chat.id, target.id):
        await services.escalation.send_notice(
            message.chat.id,
            TEXTS["unmuted"].format(name=html_decoration.quote(display_name(target)))
        )
    await services.gateway.delete(message.chat.id, message.message_id)


@commands_router.message(Command("warn"))
async def warn_command(message: Message, services: ModerationServices):
    target = await _reply_target(message, services)
    if target is None:
        return

    chat_id = message.chat.id
    policy = await services.policies.get_policy(chat_id)
    await services.gateway.delete(chat_id, message.reply_to_message.message_id)
    await services.escalation.warn(chat_id, target.id, display_name(target), policy)
    await services.gateway.delete(chat_id, message.message_id)


@commands_router.message(Command("forgive"))
async def forgive_command(message: Message, services: ModerationServices):
    target = await _reply_target(message, services)
    if target is None:
        return

    chat_id = message.chat.id
    policy = await services.policies.get_policy(chat_id)
    count = await services.escalation.forgive(chat_id, target.id)
    await services.escalation.send_notice(
        chat_id,
        TEXTS["forgiven"].format(
            name=html_decoration.quote(display_name(target)),
            count=count,
            threshold=policy.violation_threshold
        )
    )
    await services.gateway.delete(chat_id, message.message_id)


@commands_router.message(Command("whitelist"))
async def whitelist_command(message: Message, command: CommandObject, services: ModerationServices):
    chat_id = message.chat.id
    args = command.args.split() if command.args else []

    if not args:
        policy = await services.policies.get_policy(chat_id)
    elif len(args) == 2 and args[0] == "add":
        policy = await services.policies.add_whitelisted_domain(chat_id, args[1])
    elif len(args) == 2 and args[0] == "remove":
        policy = await services.policies.remove_whitelisted_domain(chat_id, args[1])
    else:
        await services.escalation.send_notice(chat_id, TEXTS["whitelist_usage"])
        return

    if policy.whitelisted_domains:
        text = TEXTS["whitelist"].format(
            domains=html_decoration.quote(format_domains(policy.whitelisted_domains))
        )
    else:
        text = TEXTS["whitelist_empty"]
    await services.escalation.send_notice(chat_id, text)


async def _toggle(message: Message, command: CommandObject, services: ModerationServices, field_name: str):
    value = _first_arg(command)
    if value not in ("on", "off"):
        await services.escalation.send_notice(
            message.chat.id, TEXTS["toggle_usage"].format(command=command.command)
        )
        return
    await services.policies.update_policy(message.chat.id, **{field_name: value == "on"})
    await _send_settings(message, services)


@commands_router.message(Command("links"))
async def links_command(message: Message, command: CommandObject, services: ModerationServices):
    await _toggle(message, command, services, "link_filter_enabled")


@commands_router.message(Command("forwards"))
async def forwards_command(message: Message, command: CommandObject, services: ModerationServices):
    await _toggle(message, command, services, "forward_filter_enabled")


@commands_router.message(Command("threshold"))
async def threshold_command(message: Message, command: CommandObject, services: ModerationServices):
    value = _first_arg(command)
    if not value or not value.isdigit() or int(value) < 1:
        await services.escalation.send_notice(message.chat.id, TEXTS["threshold_usage"])
        return
    await services.policies.update_policy(message.chat.id, violation_threshold=int(value))
    await _send_settings(message, services)


@commands_router.message(Command("mutetime"))
async def mutetime_command(message: Message, command: CommandObject, services: ModerationServices):
    value = _first_arg(command)
    if not value or not DURATION_RE.match(value) or parse_duration(value, DEFAULT_MUTE_DURATION) < 1:
        await services.escalation.send_notice(message.chat.id, TEXTS["mutetime_usage"])
        return
    await services.policies.update_policy(
        message.chat.id, mute_duration_seconds=parse_duration(value, DEFAULT_MUTE_DURATION)
    )
    await _send_settings(message, services)


@commands_router.message(Command("settings"))
async def settings_command(message: Message, services: ModerationServices):
    await _send_settings(message, services)


async def _send_settings(message: Message, services: ModerationServices):
    policy = await services.policies.get_policy(message.chat.id)
    await services.escalation.send_notice(
        message.chat.id,
        TEXTS["settings"].format(
            links=on_off(policy.link_filter_enabled),
            forwards=on_off(policy.forward_filter_enabled),
            threshold=policy.violation_threshold,
            minutes=mute_minutes(policy.mute_duration_seconds),
            domains=len(policy.whitelisted_domains)
        )
    )
