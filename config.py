import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

import pytz


@dataclass
class LoggingModules:
    bot: bool = True
    handlers: bool = True
    moderation: bool = True
    database: bool = True
    admin: bool = True


@dataclass
class LoggingConfig:
    enabled: bool = True
    level: str = "INFO"
    modules: LoggingModules = field(default_factory=LoggingModules)
    message_deletion: bool = True
    violations: bool = True
    penalties: bool = True
    config: bool = True


@dataclass
class PolicyDefaults:
    """Настройки модерации для чатов, у которых ещё нет сохранённой политики"""
    link_filter_enabled: bool = True
    forward_filter_enabled: bool = True
    whitelisted_domains: List[str] = field(default_factory=list)
    violation_threshold: int = 3  # Сколько нарушений до мута
    mute_duration_seconds: int = 1800  # Длительность мута в секундах


@dataclass
class Config:
    # Основные параметры бота
    bot_token: str
    admin_ids: List[int] = field(default_factory=list)
    admin_chat_id: Optional[str] = None  # Чат для отчётов о мутах; None - отчёты выключены
    allowed_groups: List[int] = field(default_factory=list)  # Пустой список - все группы
    exempt_admins: bool = True  # Не проверять сообщения администраторов

    # Хранилище
    db_path: str = "moderation.db"

    # Политика по умолчанию
    defaults: PolicyDefaults = field(default_factory=PolicyDefaults)

    # Сообщения бота
    delete_notices: bool = True  # Удалять ли предупреждения и уведомления о муте
    notice_lifetime_seconds: int = 60  # Через сколько секунд удалять уведомления

    # Счётчики нарушений
    violation_ttl_seconds: int = 0  # Время жизни счётчика; 0 - бессрочно

    # Отложенное удаление
    sweep_interval_seconds: int = 60  # Как часто проверять очередь удаления
    sweep_page_size: int = 100  # Сколько ключей читать за один запрос
    deletion_max_attempts: int = 5  # Сколько раз повторять неудачное удаление

    timezone: str = "Europe/Moscow"  # Часовой пояс для времени окончания мута

    # Настройки логирования
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if not self.bot_token:
            raise ValueError("bot_token не задан")
        if self.defaults.violation_threshold < 1:
            raise ValueError("violation_threshold должен быть не меньше 1")
        if self.defaults.mute_duration_seconds < 1:
            raise ValueError("mute_duration_seconds должен быть не меньше 1")
        if self.notice_lifetime_seconds < 0:
            raise ValueError("notice_lifetime_seconds не может быть отрицательным")
        if self.violation_ttl_seconds < 0:
            raise ValueError("violation_ttl_seconds не может быть отрицательным")
        if self.sweep_interval_seconds < 1:
            raise ValueError("sweep_interval_seconds должен быть не меньше 1")
        if self.sweep_page_size < 1:
            raise ValueError("sweep_page_size должен быть не меньше 1")
        if self.deletion_max_attempts < 1:
            raise ValueError("deletion_max_attempts должен быть не меньше 1")
        if self.timezone not in pytz.all_timezones_set:
            raise ValueError(f"Неизвестный часовой пояс: {self.timezone}")

    def is_group_allowed(self, chat_id: int) -> bool:
        return not self.allowed_groups or chat_id in self.allowed_groups

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Config":
        # Политика по умолчанию
        defaults_data = data.get("defaults", {})
        defaults = PolicyDefaults(
            link_filter_enabled=defaults_data.get("link_filter_enabled", True),
            forward_filter_enabled=defaults_data.get("forward_filter_enabled", True),
            whitelisted_domains=[d.lower() for d in defaults_data.get("whitelisted_domains", [])],
            violation_threshold=int(defaults_data.get("violation_threshold", 3)),
            mute_duration_seconds=int(defaults_data.get("mute_duration_seconds", 1800))
        )

        # Настройки логирования
        logging_data = data.get("logging", {})
        modules_data = logging_data.get("modules", {})
        logging_config = LoggingConfig(
            enabled=logging_data.get("enabled", True),
            level=logging_data.get("level", "INFO"),
            modules=LoggingModules(
                bot=modules_data.get("bot", True),
                handlers=modules_data.get("handlers", True),
                moderation=modules_data.get("moderation", True),
                database=modules_data.get("database", True),
                admin=modules_data.get("admin", True)
            ),
            message_deletion=logging_data.get("message_deletion", True),
            violations=logging_data.get("violations", True),
            penalties=logging_data.get("penalties", True),
            config=logging_data.get("config", True)
        )

        admin_chat_id = data.get("admin_chat_id")

        return Config(
            bot_token=data.get("bot_token", ""),
            admin_ids=[int(x) for x in data.get("admin_ids", [])],
            admin_chat_id=str(admin_chat_id) if admin_chat_id else None,
            allowed_groups=[int(x) for x in data.get("allowed_groups", [])],
            exempt_admins=data.get("exempt_admins", True),

            db_path=data.get("db_path", "moderation.db"),

            defaults=defaults,

            delete_notices=data.get("delete_notices", True),
            notice_lifetime_seconds=int(data.get("notice_lifetime_seconds", 60)),

            violation_ttl_seconds=int(data.get("violation_ttl_seconds", 0)),

            sweep_interval_seconds=int(data.get("sweep_interval_seconds", 60)),
            sweep_page_size=int(data.get("sweep_page_size", 100)),
            deletion_max_attempts=int(data.get("deletion_max_attempts", 5)),

            timezone=data.get("timezone", "Europe/Moscow"),

            logging=logging_config
        )

    @staticmethod
    def from_json_file(path: str) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Config.from_dict(data)
