"""
==============================================================================
PANELBRIDGE - TELEGRAM BOT ENTRY POINT
==============================================================================
Запуск Telegram бота в режиме long polling.
Для webhook-режима достаточно задать HOST_URL и запустить HTTP API (run_api.py).
==============================================================================
"""

import asyncio
import logging

from aiogram import Bot

from panelbridge.bot.notifier import TelegramStatusNotifier
from panelbridge.bot.setup import create_dispatcher, setup_bot_menu
from panelbridge.core.config import settings
from panelbridge.core.logging_config import setup_logging
from panelbridge.db.init_db import init_db
from panelbridge.services.factory import build_panel_service

# Конфигурация логирования
setup_logging(settings.LOG_LEVEL)


async def main():
    """
    Основная асинхронная функция для запуска Telegram бота.

    1. Создаёт таблицы БД (если их нет)
    2. Инициализирует бота и PanelService с уведомлениями в Telegram
    3. Удаляет вебхук и запускает long polling
    """
    if not settings.BOT_TOKEN:
        raise SystemExit("BOT_TOKEN не задан")

    await init_db()

    bot = Bot(token=settings.BOT_TOKEN)
    panel_service = build_panel_service(notifier=TelegramStatusNotifier(bot))
    dp = create_dispatcher(panel_service)
    await setup_bot_menu(bot)

    await bot.delete_webhook(drop_pending_updates=True)
    logging.info("Bot started successfully! 🚀")
    try:
        await dp.start_polling(bot)
    except asyncio.CancelledError:
        logging.info("Остановка бота по запросу пользователя…")
    finally:
        await dp.storage.close()
        await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Работа завершена по прерыванию.")
