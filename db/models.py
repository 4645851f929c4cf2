import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, FrozenSet, Any


class ViolationKind(str, Enum):
    """Причина нарушения"""
    LINK = "link"
    FORWARD = "forward"
    MANUAL = "manual"


def normalize_domain(domain: str) -> str:
    """Приводит домен белого списка к виду example.com: нижний регистр, без схемы, порта и пути"""
    value = domain.strip().lower()
    if "://" in value:
        value = value.split("://", 1)[1]
    for sep in ("/", "?", "#"):
        value = value.split(sep, 1)[0]
    if "@" in value:
        value = value.rsplit("@", 1)[1]
    value = value.split(":", 1)[0]
    return value.strip(".")


@dataclass(frozen=True)
class ChatPolicy:
    """Настройки модерации одного чата"""
    link_filter_enabled: bool = True
    forward_filter_enabled: bool = True
    whitelisted_domains: FrozenSet[str] = frozenset()
    violation_threshold: int = 3
    mute_duration_seconds: int = 1800

    def __post_init__(self):
        if self.violation_threshold < 1:
            raise ValueError("violation_threshold должен быть не меньше 1")
        if self.mute_duration_seconds < 1:
            raise ValueError("mute_duration_seconds должен быть не меньше 1")
        domains = frozenset(d for d in (normalize_domain(x) for x in self.whitelisted_domains) if d)
        object.__setattr__(self, "whitelisted_domains", domains)

    def to_json(self) -> str:
        return json.dumps({
            "link_filter_enabled": self.link_filter_enabled,
            "forward_filter_enabled": self.forward_filter_enabled,
            "whitelisted_domains": sorted(self.whitelisted_domains),
            "violation_threshold": self.violation_threshold,
            "mute_duration_seconds": self.mute_duration_seconds,
        })

    @staticmethod
    def from_json(raw: str) -> "ChatPolicy":
        """Разбирает сохранённую политику; ValueError/TypeError/KeyError при битых данных"""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("policy is not an object")
        for name in ("link_filter_enabled", "forward_filter_enabled"):
            if not isinstance(data[name], bool):
                raise ValueError(f"{name} is not a boolean")
        domains = data["whitelisted_domains"]
        if not isinstance(domains, list) or not all(isinstance(d, str) for d in domains):
            raise ValueError("whitelisted_domains is not a list of strings")
        return ChatPolicy(
            link_filter_enabled=data["link_filter_enabled"],
            forward_filter_enabled=data["forward_filter_enabled"],
            whitelisted_domains=frozenset(domains),
            violation_threshold=int(data["violation_threshold"]),
            mute_duration_seconds=int(data["mute_duration_seconds"]),
        )


@dataclass
class ViolationRecord:
    """Счётчик нарушений пользователя в чате"""
    chat_id: int
    user_id: int
    count: int = 0  # отсутствие записи - то же самое, что 0


@dataclass
class DeletionTask:
    """Запланированное удаление сообщения"""
    chat_id: int
    message_id: int
    not_after: int  # UNIX timestamp, раньше которого удалять нельзя
    companion_message_id: Optional[int] = None  # например, подтверждение бота
    attempts: int = 0  # сколько раз удаление уже не удалось

    def to_json(self) -> str:
        return json.dumps({
            "chat_id": self.chat_id,
            "message_id": self.message_id,
            "not_after": self.not_after,
            "companion_message_id": self.companion_message_id,
            "attempts": self.attempts,
        })

    @staticmethod
    def from_json(raw: str) -> "DeletionTask":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("task is not an object")
        companion = data.get("companion_message_id")
        return DeletionTask(
            chat_id=int(data["chat_id"]),
            message_id=int(data["message_id"]),
            not_after=int(data["not_after"]),
            companion_message_id=int(companion) if companion is not None else None,
            attempts=int(data.get("attempts", 0)),
        )


@dataclass
class GroupRecord:
    """Группа, в которой работает бот"""
    chat_id: int
    title: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps({"id": self.chat_id, "title": self.title}, ensure_ascii=False)

    @staticmethod
    def from_json(raw: str) -> "GroupRecord":
        data = json.loads(raw)
        return GroupRecord(chat_id=int(data["id"]), title=data.get("title"))


@dataclass(frozen=True)
class InboundMessage:
    """Входящее сообщение в том объёме, который нужен модерации"""
    chat_id: int
    message_id: int
    sender_id: Optional[int]  # None для служебных сообщений и постов от имени канала
    sender_name: str = ""
    text: str = ""
    entity_urls: Tuple[str, ...] = ()
    reply_to_message_id: Optional[int] = None
    # Признаки пересылки
    forward_from_user_id: Optional[int] = None
    forward_from_chat_id: Optional[int] = None
    forward_sender_name: Optional[str] = None
    forward_date: Optional[int] = None
    has_forward_origin: bool = False
    is_automatic_forward: bool = False
    has_story: bool = False

    @property
    def is_forwarded(self) -> bool:
        return any((
            self.forward_from_user_id is not None,
            self.forward_from_chat_id is not None,
            bool(self.forward_sender_name),
            self.forward_date is not None,
            self.has_forward_origin,
            self.is_automatic_forward,
            self.has_story,
        ))

    @staticmethod
    def from_aiogram(message: Any) -> "InboundMessage":
        """Строит запись из aiogram Message"""
        user = message.from_user
        text = message.text or message.caption or ""

        entity_urls = []
        for entity in list(message.entities or []) + list(message.caption_entities or []):
            if entity.type == "text_link" and entity.url:
                entity_urls.append(entity.url)
            elif entity.type == "url":
                entity_urls.append(entity.extract_from(text))

        forward_from = getattr(message, "forward_from", None)
        forward_from_chat = getattr(message, "forward_from_chat", None)
        forward_date = getattr(message, "forward_date", None)
        reply = message.reply_to_message

        return InboundMessage(
            chat_id=message.chat.id,
            message_id=message.message_id,
            sender_id=user.id if user else None,
            sender_name=display_name(user) if user else "",
            text=text,
            entity_urls=tuple(entity_urls),
            reply_to_message_id=reply.message_id if reply else None,
            forward_from_user_id=forward_from.id if forward_from else None,
            forward_from_chat_id=forward_from_chat.id if forward_from_chat else None,
            forward_sender_name=getattr(message, "forward_sender_name", None),
            forward_date=_to_timestamp(forward_date),
            has_forward_origin=getattr(message, "forward_origin", None) is not None,
            is_automatic_forward=bool(getattr(message, "is_automatic_forward", False)),
            has_story=getattr(message, "story", None) is not None,
        )


def display_name(user: Any) -> str:
    return f"@{user.username}" if user.username else user.full_name


def _to_timestamp(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value.timestamp())
