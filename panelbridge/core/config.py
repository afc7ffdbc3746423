"""
==============================================================================
PANELBRIDGE - CONFIGURATION
==============================================================================
Управление конфигурацией через переменные окружения.
Использует Pydantic Settings для валидации и загрузки из .env файла.
==============================================================================
"""

from __future__ import annotations

from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Класс для управления настройками приложения.

    Автоматически загружает переменные окружения из файла .env
    с валидацией типов и значений по умолчанию.

    Attributes:
        PANEL_API_URL (str): Endpoint API SMM-панели (один URL на все action)
        PANEL_API_KEY (str): Ключ панели по умолчанию, если в БД ключ не задан
        PANEL_TIMEOUT (float): Таймаут одного запроса к панели в секундах
        SERVICES_CACHE_TTL (int): Время жизни кэша списка услуг в секундах
        SYNC_FAILURE_THRESHOLD (int): Сколько неудачных синхронизаций допускается до статуса error
        JWT_SECRET (str): Секрет подписи JWT для HTTP API
        BOT_JWT (str): Фиксированный токен, с которым ходит внутренний бот
        BOT_TOKEN (str): Токен Telegram бота от @BotFather
        HOST_URL (str): Публичный URL сервера (включает webhook-режим бота)
        DEFAULT_SERVICE_ID (str): Услуга, которую бот использует при оформлении заказа
    """
    # SMM-панель
    PANEL_API_URL: str = "https://justanotherpanel.com/api/v2"
    PANEL_API_KEY: str = ""  # Запасной ключ, если в настройках БД ключ не сохранён
    PANEL_TIMEOUT: float = 10.0  # Таймаут запросов к панели (секунды)
    PANEL_PLATFORM_KEYWORDS: str = "twitter"  # Через запятую
    PANEL_CONTENT_KEYWORDS: str = "view,impression,bookmark"  # Через запятую
    SERVICES_CACHE_TTL: int = 15 * 60  # 15 минут
    SYNC_FAILURE_THRESHOLD: int = 3

    # База данных
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "panelbridge"
    POSTGRES_USER: str = "panelbridge"
    POSTGRES_PASSWORD: str = ""

    # Redis (необязателен: кэш услуг и FSM-хранилище бота)
    REDIS_URL: str = ""

    # HTTP API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 4000
    CORS_ORIGINS: str = "http://localhost:5173"
    JWT_SECRET: str = "secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7
    BOT_JWT: str = ""  # Пустое значение отключает обход авторизации для бота

    # Первичный администратор (создаётся, если таблица users пуста)
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "changeme123"

    # Telegram
    BOT_TOKEN: str = ""
    HOST_URL: str = ""  # например, https://panelbridge.example.com
    DEFAULT_SERVICE_ID: str = "1"

    DEBUG_MODE: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra='ignore'  # Игнорировать лишние переменные в .env
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Возвращает список разрешённых CORS origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def platform_keywords(self) -> list[str]:
        return _split_keywords(self.PANEL_PLATFORM_KEYWORDS)

    @property
    def content_keywords(self) -> list[str]:
        return _split_keywords(self.PANEL_CONTENT_KEYWORDS)

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.BOT_TOKEN and self.HOST_URL)


def _split_keywords(raw: str) -> list[str]:
    return [item.strip().lower() for item in (raw or "").split(",") if item.strip()]


def build_async_db_url() -> str:
    """
    Возвращает итоговый URL подключения к БД.

    Приоритет:
    1) DATABASE_URL (если задан)
    2) Сборка из POSTGRES_* (asyncpg)

    Логин и пароль кодируются через URL-encoding, чтобы спецсимволы
    (`@`, `&`, `:`) не ломали строку подключения.
    """
    if settings.DATABASE_URL and settings.DATABASE_URL.strip():
        return settings.DATABASE_URL.strip()

    user = quote_plus((settings.POSTGRES_USER or "").strip().strip('"').strip("'"))
    password = quote_plus((settings.POSTGRES_PASSWORD or "").strip().strip('"').strip("'"))
    host = (settings.POSTGRES_HOST or "localhost").strip()
    port = int(settings.POSTGRES_PORT or 5432)
    db = (settings.POSTGRES_DB or "").strip()
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"


settings = Settings()
