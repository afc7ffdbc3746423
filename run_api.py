"""
Запуск HTTP API (и Telegram бота в webhook-режиме, если задан HOST_URL).

Использование:
    python run_api.py
"""

import uvicorn
from panelbridge.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "panelbridge.admin.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG_MODE,
        log_level="info",
        log_config=None,
    )
