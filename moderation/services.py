from dataclasses import dataclass

from aiogram import Bot

from config import Config
from database import KVStore
from db.operations import PolicyStore
from moderation.escalation import EscalationController
from moderation.gateways import TelegramGateway
from moderation.ledger import ViolationLedger
from moderation.scheduler import DeletionScheduler


@dataclass
class ModerationServices:
    """Всё, что нужно обработчикам; передаётся через middleware"""
    store: KVStore
    gateway: TelegramGateway
    policies: PolicyStore
    ledger: ViolationLedger
    scheduler: DeletionScheduler
    escalation: EscalationController


def build_services(bot: Bot, config: Config, store: KVStore) -> ModerationServices:
    gateway = TelegramGateway(bot, admin_ids=config.admin_ids)
    ledger = ViolationLedger(store, ttl_seconds=config.violation_ttl_seconds)
    scheduler = DeletionScheduler(
        store,
        gateway,
        page_size=config.sweep_page_size,
        max_attempts=config.deletion_max_attempts,
        log_deletions=config.logging.message_deletion
    )
    escalation = EscalationController(
        ledger,
        deletions=gateway,
        restrictions=gateway,
        notifications=gateway,
        scheduler=scheduler,
        notice_lifetime_seconds=config.notice_lifetime_seconds if config.delete_notices else 0,
        timezone=config.timezone,
        log_violations=config.logging.violations,
        log_penalties=config.logging.penalties
    )
    return ModerationServices(
        store=store,
        gateway=gateway,
        policies=PolicyStore(store, config.defaults),
        ledger=ledger,
        scheduler=scheduler,
        escalation=escalation
    )
