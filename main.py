import asyncio
import logging
import os
import sys
from typing import Any, Callable, Dict, Awaitable

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from aiogram.types import TelegramObject

from config import Config
from database import KVStore, init_db
from handlers.callbacks import callbacks_router
from handlers.commands import commands_router
from handlers.membership import membership_router
from handlers.message_handlers import message_router
from moderation.scheduler import run_sweeper
from moderation.services import ModerationServices, build_services

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")


def setup_logging(config: Config):
    """Настраивает логирование на основе конфигурации"""
    if not config.logging.enabled:
        return

    # Настраиваем корневой логгер
    root_logger = logging.getLogger()
    root_logger.setLevel(config.logging.level)

    # Создаем форматтер для логов
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Добавляем вывод в консоль
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Уровни логирования для модулей; выключенные модули пишут только ошибки
    module_switches = {
        "aiogram": config.logging.modules.bot,
        "handlers": config.logging.modules.handlers,
        "moderation": config.logging.modules.moderation,
        "database": config.logging.modules.database,
        "db": config.logging.modules.database,
        "admin_notifications": config.logging.modules.admin,
    }
    for name, enabled in module_switches.items():
        logging.getLogger(name).setLevel(config.logging.level if enabled else logging.ERROR)

    logger = logging.getLogger(__name__)
    logger.info("Логирование настроено")

    # Логируем важные параметры конфигурации
    if config.logging.config:
        logger.info("Параметры конфигурации:")
        logger.info(f"allowed_groups: {config.allowed_groups or 'все'}")
        logger.info(f"defaults: {config.defaults}")
        logger.info(f"delete_notices: {config.delete_notices}")
        logger.info(f"notice_lifetime_seconds: {config.notice_lifetime_seconds}")
        logger.info(f"violation_ttl_seconds: {config.violation_ttl_seconds}")
        logger.info(f"sweep_interval_seconds: {config.sweep_interval_seconds}")
        logger.info(f"deletion_max_attempts: {config.deletion_max_attempts}")


# Middleware передаёт конфигурацию и сервисы модерации в обработчики
class ServicesMiddleware:
    def __init__(self, config: Config, services: ModerationServices):
        self.config = config
        self.services = services

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        data["config"] = self.config
        data["services"] = self.services
        return await handler(event, data)


def create_bot(config: Config) -> Bot:
    return Bot(
        token=config.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )


async def main():
    # Загружаем конфигурацию
    config = Config.from_json_file(CONFIG_PATH)

    # Настраиваем логирование
    setup_logging(config)

    logger = logging.getLogger(__name__)
    logger.info("Запуск бота...")

    # Инициализируем базу данных
    await init_db(config.db_path)

    bot = create_bot(config)
    services = build_services(bot, config, KVStore(config.db_path))
    dp = Dispatcher()

    dp.update.outer_middleware(ServicesMiddleware(config, services))

    # Команды администраторов раньше обычных сообщений
    dp.include_router(commands_router)
    dp.include_router(membership_router)
    dp.include_router(callbacks_router)
    dp.include_router(message_router)
    logger.info("Обработчики зарегистрированы")

    # Запускаем очередь отложенного удаления
    sweeper = asyncio.create_task(run_sweeper(services.scheduler, config.sweep_interval_seconds))

    try:
        logger.info("Запуск поллинга...")
        await dp.start_polling(bot)
    except Exception as e:
        logger.error(f"Ошибка при работе бота: {str(e)}")
    finally:
        logger.info("Завершение работы бота")
        sweeper.cancel()
        await bot.session.close()


async def sweep_once():
    """Один проход очереди удаления, для запуска из cron"""
    config = Config.from_json_file(CONFIG_PATH)
    setup_logging(config)
    await init_db(config.db_path)

    bot = create_bot(config)
    try:
        services = build_services(bot, config, KVStore(config.db_path))
        await services.scheduler.sweep()
        await services.store.purge_expired()
    finally:
        await bot.session.close()


if __name__ == "__main__":
    try:
        if len(sys.argv) > 1 and sys.argv[1] == "sweep":
            asyncio.run(sweep_once())
        else:
            asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Бот остановлен пользователем")
    except Exception as e:
        logging.error(f"Критическая ошибка: {str(e)}")
        sys.exit(1)
