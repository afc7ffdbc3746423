"""
Tests for конфигурации, логирования и сборки сервисов из настроек.
"""

import os
import time

from panelbridge.core.config import build_async_db_url, settings
from panelbridge.core.logging_config import build_logging_config, cleanup_logs
from panelbridge.db.redis_client import RedisClient
from panelbridge.services.factory import build_panel_service, build_services_cache
from panelbridge.services.services_cache import MemoryBackend


def test_database_url_from_postgres_parts(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "")
    monkeypatch.setattr(settings, "POSTGRES_USER", "bridge")
    monkeypatch.setattr(settings, "POSTGRES_PASSWORD", "p@ss:w&rd")
    monkeypatch.setattr(settings, "POSTGRES_HOST", "db")
    monkeypatch.setattr(settings, "POSTGRES_PORT", 5433)
    monkeypatch.setattr(settings, "POSTGRES_DB", "orders")

    assert build_async_db_url() == "postgresql+asyncpg://bridge:p%40ss%3Aw%26rd@db:5433/orders"


def test_explicit_database_url_wins(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", " sqlite+aiosqlite:///x.db ")

    assert build_async_db_url() == "sqlite+aiosqlite:///x.db"


def test_keyword_lists(monkeypatch):
    monkeypatch.setattr(settings, "PANEL_CONTENT_KEYWORDS", "View, Impression ,,bookmark")

    assert settings.content_keywords == ["view", "impression", "bookmark"]


def test_webhook_needs_token_and_host(monkeypatch):
    monkeypatch.setattr(settings, "BOT_TOKEN", "123:abc")
    monkeypatch.setattr(settings, "HOST_URL", "")
    assert settings.webhook_enabled is False

    monkeypatch.setattr(settings, "HOST_URL", "https://bridge.example.com")
    assert settings.webhook_enabled is True


def test_logging_config_routes_noisy_loggers_to_file(tmp_path):
    config = build_logging_config("debug", tmp_path / "app.log")

    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["httpx"] == {"handlers": ["file"], "level": "WARNING", "propagate": False}
    assert config["loggers"]["aiogram"]["level"] == "DEBUG"
    assert config["handlers"]["file"]["filename"] == str(tmp_path / "app.log")


def test_cleanup_logs_removes_old_files(tmp_path):
    fresh = tmp_path / "app.log"
    old = tmp_path / "app.log.3"
    unrelated = tmp_path / "other.txt"
    for path in (fresh, old, unrelated):
        path.write_text("x")
    month_ago = time.time() - 40 * 24 * 60 * 60
    os.utime(old, (month_ago, month_ago))

    removed = cleanup_logs(tmp_path)

    assert removed == 1
    assert fresh.exists()
    assert not old.exists()
    assert unrelated.exists()


def test_cleanup_logs_limits_total_size(tmp_path):
    newest = tmp_path / "app.log"
    oldest = tmp_path / "app.log.1"
    newest.write_text("a" * 60)
    oldest.write_text("b" * 60)
    hour_ago = time.time() - 3600
    os.utime(oldest, (hour_ago, hour_ago))

    removed = cleanup_logs(tmp_path, max_total_size=100)

    assert removed == 1
    assert newest.exists()
    assert not oldest.exists()


def test_services_cache_in_memory_without_redis(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "")

    cache = build_services_cache()

    assert isinstance(cache.backend, MemoryBackend)
    assert cache.ttl == settings.SERVICES_CACHE_TTL


def test_services_cache_uses_redis_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "redis://localhost:6379/0")

    cache = build_services_cache()

    assert isinstance(cache.backend, RedisClient)
    assert cache.backend.url == "redis://localhost:6379/0"
    # Подключение ленивое
    assert cache.backend.redis is None


async def test_build_panel_service(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "SYNC_FAILURE_THRESHOLD", 5)

    service = build_panel_service(session_factory)

    assert service.reconciler.failure_threshold == 5
    assert service.gateway.api_url == settings.PANEL_API_URL
    assert service.gateway.content_keywords == tuple(settings.content_keywords)


def test_client_and_bot_modules_are_documented():
    from panelbridge.api import panel_client
    from panelbridge.bot import handlers

    assert panel_client.__doc__.strip()
    assert handlers.__doc__.strip()
