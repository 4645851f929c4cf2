import logging

from aiogram import Router, F
from aiogram.filters import ChatMemberUpdatedFilter, JOIN_TRANSITION, LEAVE_TRANSITION
from aiogram.types import ChatMemberUpdated

from db.operations import save_group, remove_group
from moderation.services import ModerationServices

logger = logging.getLogger(__name__)

membership_router = Router(name="membership_router")
membership_router.my_chat_member.filter(F.chat.type.in_({"group", "supergroup"}))


@membership_router.my_chat_member(ChatMemberUpdatedFilter(member_status_changed=JOIN_TRANSITION))
async def bot_added(event: ChatMemberUpdated, services: ModerationServices):
    await save_group(services.store, event.chat.id, event.chat.title)
    logger.info(f"Бот добавлен в группу {event.chat.id} ({event.chat.title})")


@membership_router.my_chat_member(ChatMemberUpdatedFilter(member_status_changed=LEAVE_TRANSITION))
async def bot_removed(event: ChatMemberUpdated, services: ModerationServices):
    await remove_group(services.store, event.chat.id)
    logger.info(f"Бот удалён из группы {event.chat.id}")
