import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from aiogram import Bot

from config import Config
from database import KVStore, init_db
from db.operations import PolicyStore
from moderation.escalation import EscalationController
from moderation.ledger import ViolationLedger
from moderation.scheduler import DeletionScheduler
from moderation.services import ModerationServices

CHAT_ID = -1001234567890
ADMIN_ID = 123456789
USER_ID = 987654321


class FakeGateway:
    """Запоминает вызовы Telegram API вместо реальной отправки"""

    def __init__(self):
        self.deleted = []
        self.restricted = []
        self.unrestricted = []
        self.notices = []
        self.admins = {ADMIN_ID}
        self.failing_deletes = set()
        self.next_message_id = 1000
        self.admin_checks = 0

    async def delete(self, chat_id, message_id):
        if message_id in self.failing_deletes:
            return False
        self.deleted.append((chat_id, message_id))
        return True

    async def restrict(self, chat_id, user_id, duration_seconds):
        self.restricted.append((chat_id, user_id, duration_seconds))
        return True

    async def unrestrict(self, chat_id, user_id):
        self.unrestricted.append((chat_id, user_id))
        return True

    async def notify(self, chat_id, text):
        self.next_message_id += 1
        self.notices.append((chat_id, self.next_message_id, text))
        return self.next_message_id

    async def is_admin(self, chat_id, user_id):
        self.admin_checks += 1
        return user_id in self.admins


@pytest.fixture(scope="session")
def test_config():
    """Фикстура с тестовой конфигурацией"""
    config_data = {
        "bot_token": "test_token",
        "allowed_groups": [CHAT_ID],
        "admin_ids": [ADMIN_ID],
        "admin_chat_id": "-1009876543210",
        "defaults": {
            "link_filter_enabled": True,
            "forward_filter_enabled": True,
            "whitelisted_domains": ["YouTube.com"],
            "violation_threshold": 3,
            "mute_duration_seconds": 1800
        },
        "delete_notices": True,
        "notice_lifetime_seconds": 60,
        "sweep_interval_seconds": 60,
        "deletion_max_attempts": 3,
        "logging": {
            "enabled": True,
            "level": "DEBUG",
            "modules": {
                "bot": True,
                "handlers": True,
                "moderation": True,
                "database": True,
                "admin": True
            },
            "message_deletion": True,
            "violations": True,
            "penalties": True,
            "config": True
        }
    }
    return Config.from_dict(config_data)


@pytest_asyncio.fixture(scope="function")
async def test_db_path(tmp_path):
    """Фикстура создает временную тестовую базу данных"""
    db_path = str(tmp_path / "test_moderation.db")
    await init_db(db_path)
    return db_path


@pytest.fixture(scope="function")
def kv_store(test_db_path):
    return KVStore(test_db_path)


@pytest.fixture(scope="function")
def gateway():
    return FakeGateway()


@pytest.fixture(scope="function")
def services(kv_store, gateway, test_config):
    """Сервисы модерации поверх временной базы и фейкового шлюза"""
    ledger = ViolationLedger(kv_store)
    scheduler = DeletionScheduler(kv_store, gateway, page_size=2, max_attempts=test_config.deletion_max_attempts)
    escalation = EscalationController(
        ledger,
        deletions=gateway,
        restrictions=gateway,
        notifications=gateway,
        scheduler=scheduler,
        notice_lifetime_seconds=test_config.notice_lifetime_seconds
    )
    return ModerationServices(
        store=kv_store,
        gateway=gateway,
        policies=PolicyStore(kv_store, test_config.defaults),
        ledger=ledger,
        scheduler=scheduler,
        escalation=escalation
    )


@pytest.fixture(scope="function")
def mock_bot():
    """Фикстура с моком бота для тестов"""
    bot = AsyncMock(spec=Bot)
    bot.send_message = AsyncMock(return_value=MagicMock(message_id=555))
    bot.delete_message = AsyncMock()
    bot.restrict_chat_member = AsyncMock()
    bot.get_chat_member = AsyncMock(return_value=MagicMock(status="member"))
    bot.edit_message_reply_markup = AsyncMock()
    return bot
