"""
Сборка Telegram бота: диспетчер, хранилище диалогов, меню команд.
"""

from __future__ import annotations

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.base import BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand, BotCommandScopeDefault, MenuButtonCommands

from panelbridge.core.config import settings
from panelbridge.services.panel_service import PanelService

# Время жизни незавершённого диалога оформления заказа
CONVERSATION_TTL = 60 * 60


def build_fsm_storage() -> BaseStorage:
    """Redis, если задан REDIS_URL (с TTL диалога), иначе память процесса."""
    if settings.REDIS_URL:
        from aiogram.fsm.storage.redis import RedisStorage

        return RedisStorage.from_url(
            settings.REDIS_URL,
            state_ttl=CONVERSATION_TTL,
            data_ttl=CONVERSATION_TTL,
        )
    return MemoryStorage()


def create_dispatcher(panel_service: PanelService, storage: BaseStorage | None = None) -> Dispatcher:
    """Диспетчер с роутером обработчиков; panel_service доступен хендлерам как аргумент."""
    from panelbridge.bot.handlers import router

    dp = Dispatcher(storage=storage or build_fsm_storage())
    dp["panel_service"] = panel_service
    dp.include_router(router)
    return dp


async def setup_bot_menu(bot: Bot) -> None:
    """
    Настраивает список команд бота, отображаемых в боковом меню Telegram.
    """
    commands = [
        BotCommand(command="start", description="Главное меню"),
        BotCommand(command="order", description="Оформить заказ"),
        BotCommand(command="orders", description="Мои заказы"),
        BotCommand(command="status", description="Статус заказа"),
        BotCommand(command="balance", description="Баланс панели"),
        BotCommand(command="setkey", description="Сохранить API ключ панели"),
    ]
    await bot.set_my_commands(commands, scope=BotCommandScopeDefault())
    await bot.set_chat_menu_button(menu_button=MenuButtonCommands())
