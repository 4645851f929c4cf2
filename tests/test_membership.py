import pytest
from unittest.mock import MagicMock
from aiogram.types import Chat, ChatMemberUpdated

from db.operations import group_key, policy_key
from handlers.membership import bot_added, bot_removed

CHAT_ID = -1001234567890


@pytest.fixture
def member_update():
    """Фикстура создает мок события смены статуса бота"""
    event = MagicMock(spec=ChatMemberUpdated)
    event.chat = Chat(id=CHAT_ID, type="supergroup", title="Тестовая группа")
    return event


@pytest.mark.asyncio
async def test_bot_added_and_removed(member_update, services, kv_store):
    """Группа запоминается при добавлении бота и забывается при удалении"""
    await bot_added(member_update, services)
    assert await kv_store.get(group_key(CHAT_ID)) is not None

    await services.policies.get_policy(CHAT_ID)
    await bot_removed(member_update, services)
    assert await kv_store.get(group_key(CHAT_ID)) is None
    assert await kv_store.get(policy_key(CHAT_ID)) is None
