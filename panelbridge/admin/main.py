"""
Главный файл FastAPI приложения: HTTP API панели и webhook Telegram бота.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from aiogram import Bot
from aiogram.types import Update
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from panelbridge.admin.api import auth, panel, settings as settings_api
from panelbridge.core.config import settings as app_settings
from panelbridge.core.logging_config import setup_logging
from panelbridge.services.order_store import UserStore
from panelbridge.services.panel_service import PanelService

logger = logging.getLogger(__name__)


async def _startup(app: FastAPI) -> None:
    from panelbridge.bot.notifier import TelegramStatusNotifier
    from panelbridge.db.init_db import init_db, seed_default_user
    from panelbridge.db.session import async_session_factory
    from panelbridge.services.factory import build_panel_service

    await init_db()
    await seed_default_user()

    bot: Optional[Bot] = Bot(token=app_settings.BOT_TOKEN) if app_settings.BOT_TOKEN else None
    notifier = TelegramStatusNotifier(bot) if bot else None
    app.state.panel_service = build_panel_service(async_session_factory, notifier=notifier)
    app.state.user_store = UserStore(async_session_factory)
    app.state.bot = bot

    if bot and app_settings.webhook_enabled:
        from panelbridge.bot.setup import create_dispatcher, setup_bot_menu

        app.state.dispatcher = create_dispatcher(app.state.panel_service)
        await setup_bot_menu(bot)
        webhook_url = f"{app_settings.HOST_URL.rstrip('/')}/bot/{app_settings.BOT_TOKEN}"
        await bot.set_webhook(webhook_url)
        logger.info("🤖 Telegram бот подключён через webhook")
    elif not bot:
        logger.warning("⚠️ Telegram бот не настроен (нет BOT_TOKEN)")


def create_app(
    panel_service: Optional[PanelService] = None,
    user_store: Optional[UserStore] = None,
) -> FastAPI:
    """
    Создаёт приложение.

    Если panel_service и user_store переданы (тесты), БД и бот при старте
    не инициализируются.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if panel_service is None:
            await _startup(app)
        try:
            yield
        finally:
            bot = getattr(app.state, "bot", None)
            if bot is not None:
                await bot.session.close()
            logger.info("🧹 Остановка приложения")

    app = FastAPI(
        title="panelbridge",
        description="SMM panel proxy: services, orders, settings",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.bot = None
    app.state.dispatcher = None
    if panel_service is not None:
        app.state.panel_service = panel_service
        app.state.user_store = user_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api")
    app.include_router(panel.router, prefix="/api")
    app.include_router(settings_api.router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "ok": True,
            "message": "panelbridge backend is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/health")
    async def health_check():
        """Проверка работоспособности API."""
        return {"status": "ok"}

    @app.post("/bot/{token}", include_in_schema=False)
    async def telegram_webhook(token: str, request: Request):
        """Приём обновлений Telegram в webhook-режиме."""
        bot = request.app.state.bot
        dispatcher = request.app.state.dispatcher
        if bot is None or dispatcher is None or token != app_settings.BOT_TOKEN:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        update = Update.model_validate(await request.json(), context={"bot": bot})
        await dispatcher.feed_update(bot, update)
        return {"ok": True}

    return app


setup_logging(app_settings.LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "panelbridge.admin.main:app",
        host=app_settings.API_HOST,
        port=app_settings.API_PORT,
        reload=app_settings.DEBUG_MODE,
    )
