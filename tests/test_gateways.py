import pytest
from unittest.mock import AsyncMock, MagicMock
from aiogram.exceptions import TelegramBadRequest, TelegramNetworkError

from moderation.gateways import MUTED_PERMISSIONS, UNMUTED_PERMISSIONS, TelegramGateway

CHAT_ID = -1001234567890
USER_ID = 987654321


def bad_request(text):
    return TelegramBadRequest(method=MagicMock(), message=text)


@pytest.mark.asyncio
async def test_delete_success(mock_bot):
    gateway = TelegramGateway(mock_bot)
    assert await gateway.delete(CHAT_ID, 5) is True
    mock_bot.delete_message.assert_called_once_with(CHAT_ID, 5)


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [
    "Bad Request: message to delete not found",
    "Bad Request: MESSAGE_ID_INVALID",
])
async def test_delete_already_deleted_is_success(mock_bot, text):
    """Сообщения уже нет - цель удаления достигнута"""
    mock_bot.delete_message = AsyncMock(side_effect=bad_request(text))
    assert await TelegramGateway(mock_bot).delete(CHAT_ID, 5) is True


@pytest.mark.asyncio
async def test_delete_other_errors_fail(mock_bot):
    mock_bot.delete_message = AsyncMock(side_effect=bad_request("Bad Request: message can't be deleted"))
    assert await TelegramGateway(mock_bot).delete(CHAT_ID, 5) is False

    mock_bot.delete_message = AsyncMock(side_effect=TelegramNetworkError(method=MagicMock(), message="timeout"))
    assert await TelegramGateway(mock_bot).delete(CHAT_ID, 5) is False


@pytest.mark.asyncio
async def test_restrict(mock_bot):
    assert await TelegramGateway(mock_bot).restrict(CHAT_ID, USER_ID, 1800) is True
    kwargs = mock_bot.restrict_chat_member.call_args[1]
    assert kwargs["permissions"] == MUTED_PERMISSIONS
    assert kwargs["until_date"] > 0

    mock_bot.restrict_chat_member = AsyncMock(side_effect=bad_request("Bad Request: not enough rights"))
    assert await TelegramGateway(mock_bot).restrict(CHAT_ID, USER_ID, 1800) is False


@pytest.mark.asyncio
async def test_unrestrict(mock_bot):
    assert await TelegramGateway(mock_bot).unrestrict(CHAT_ID, USER_ID) is True
    kwargs = mock_bot.restrict_chat_member.call_args[1]
    assert kwargs["permissions"] == UNMUTED_PERMISSIONS


@pytest.mark.asyncio
async def test_notify(mock_bot):
    assert await TelegramGateway(mock_bot).notify(CHAT_ID, "<b>текст</b>") == 555
    call_args = mock_bot.send_message.call_args
    assert call_args[1]["parse_mode"] == "HTML"

    mock_bot.send_message = AsyncMock(side_effect=bad_request("Bad Request: chat not found"))
    assert await TelegramGateway(mock_bot).notify(CHAT_ID, "текст") is None


@pytest.mark.asyncio
async def test_is_admin(mock_bot):
    gateway = TelegramGateway(mock_bot, admin_ids=[123456789])
    assert await gateway.is_admin(CHAT_ID, 123456789) is True
    mock_bot.get_chat_member.assert_not_called()

    assert await gateway.is_admin(CHAT_ID, USER_ID) is False

    mock_bot.get_chat_member = AsyncMock(return_value=MagicMock(status="administrator"))
    assert await gateway.is_admin(CHAT_ID, USER_ID) is True

    mock_bot.get_chat_member = AsyncMock(side_effect=bad_request("Bad Request: user not found"))
    assert await gateway.is_admin(CHAT_ID, USER_ID) is False
