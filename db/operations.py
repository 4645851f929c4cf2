import logging
from dataclasses import replace
from typing import Iterable, Optional

from config import PolicyDefaults
from database import KVStore
from db.models import ChatPolicy, GroupRecord, normalize_domain

logger = logging.getLogger(__name__)

POLICY_PREFIX = "policy:"
GROUP_PREFIX = "group:"


def policy_key(chat_id: int) -> str:
    return f"{POLICY_PREFIX}{chat_id}"


def group_key(chat_id: int) -> str:
    return f"{GROUP_PREFIX}{chat_id}"


def policy_from_defaults(defaults: PolicyDefaults) -> ChatPolicy:
    return ChatPolicy(
        link_filter_enabled=defaults.link_filter_enabled,
        forward_filter_enabled=defaults.forward_filter_enabled,
        whitelisted_domains=frozenset(defaults.whitelisted_domains),
        violation_threshold=defaults.violation_threshold,
        mute_duration_seconds=defaults.mute_duration_seconds,
    )


class PolicyStore:
    """Настройки модерации чатов в KV-хранилище"""

    def __init__(self, store: KVStore, defaults: PolicyDefaults):
        self.store = store
        self.defaults = defaults

    async def load_policy(self, chat_id: int) -> Optional[ChatPolicy]:
        """Сохранённая политика чата или None, если её нет или она повреждена"""
        raw = await self.store.get(policy_key(chat_id))
        if raw is None:
            return None
        try:
            return ChatPolicy.from_json(raw)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Повреждённая политика чата {chat_id}, используются значения по умолчанию: {e}")
            return None

    async def get_policy(self, chat_id: int) -> ChatPolicy:
        """Политика чата; при первом обращении сохраняет значения по умолчанию"""
        policy = await self.load_policy(chat_id)
        if policy is not None:
            return policy

        policy = policy_from_defaults(self.defaults)
        if await self.store.get(policy_key(chat_id)) is None:
            await self.set_policy(chat_id, policy)
            logger.info(f"Создана политика по умолчанию для чата {chat_id}")
        return policy

    async def set_policy(self, chat_id: int, policy: ChatPolicy) -> None:
        await self.store.put(policy_key(chat_id), policy.to_json())

    async def delete_policy(self, chat_id: int) -> None:
        await self.store.delete(policy_key(chat_id))

    async def update_policy(self, chat_id: int, **changes) -> ChatPolicy:
        """Меняет отдельные поля политики; ValueError при недопустимых значениях"""
        policy = replace(await self.get_policy(chat_id), **changes)
        await self.set_policy(chat_id, policy)
        logger.info(f"Политика чата {chat_id} изменена: {changes}")
        return policy

    async def add_whitelisted_domain(self, chat_id: int, domain: str) -> ChatPolicy:
        policy = await self.get_policy(chat_id)
        domains = set(policy.whitelisted_domains)
        normalized = normalize_domain(domain)
        if normalized:
            domains.add(normalized)
        return await self.update_policy(chat_id, whitelisted_domains=frozenset(domains))

    async def remove_whitelisted_domain(self, chat_id: int, domain: str) -> ChatPolicy:
        policy = await self.get_policy(chat_id)
        domains = set(policy.whitelisted_domains)
        domains.discard(normalize_domain(domain))
        return await self.update_policy(chat_id, whitelisted_domains=frozenset(domains))


async def save_group(store: KVStore, chat_id: int, title: Optional[str]) -> None:
    """Запоминает группу, в которой работает бот"""
    await store.put(group_key(chat_id), GroupRecord(chat_id=chat_id, title=title).to_json())


async def remove_group(store: KVStore, chat_id: int) -> None:
    """Забывает группу вместе с её настройками"""
    await store.delete(group_key(chat_id))
    await store.delete(policy_key(chat_id))
    logger.info(f"Группа {chat_id} удалена из реестра")


def format_domains(domains: Iterable[str]) -> str:
    return "\n".join(sorted(domains))
