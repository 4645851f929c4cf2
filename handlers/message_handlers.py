import logging

from aiogram import Router, F, Bot
from aiogram.types import Message

from admin_notifications import send_admin_notification
from config import Config
from db.models import InboundMessage
from db.operations import save_group
from moderation.evaluator import evaluate
from moderation.services import ModerationServices

logger = logging.getLogger(__name__)

message_router = Router(name="message_router")


@message_router.message(F.chat.type.in_({"group", "supergroup"}))
async def process_group_message(message: Message, bot: Bot, **data):
    config: Config = data["config"]
    services: ModerationServices = data["services"]
    chat_id = message.chat.id
    user = message.from_user
    if not user:
        return

    # Проверяем, что группа входит в список разрешённых
    if not config.is_group_allowed(chat_id):
        return

    # Игнорируем сообщения от ботов и анонимных администраторов
    if user.is_bot:
        return

    try:
        await save_group(services.store, chat_id, message.chat.title)

        if config.exempt_admins and await services.gateway.is_admin(chat_id, user.id):
            return

        inbound = InboundMessage.from_aiogram(message)
        policy = await services.policies.get_policy(chat_id)
        kind = evaluate(inbound, policy)
        if kind is None:
            return

        if config.logging.violations:
            logger.info(f"Сообщение {message.message_id} пользователя {user.id} в чате {chat_id}: нарушение {kind.value}")

        outcome = await services.escalation.process_violation(inbound, policy, kind)

        if outcome.muted:
            await send_admin_notification(
                bot,
                config,
                chat_id,
                user.id,
                inbound.sender_name,
                kind.value,
                policy.mute_duration_seconds,
                inbound.text
            )
    except Exception as e:
        logger.error(f"Error processing message from user {user.id}: {str(e)}", exc_info=True)
