"""Async engine и фабрика сессий SQLAlchemy."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from panelbridge.core.config import build_async_db_url, settings


def make_engine(url: Optional[str] = None) -> AsyncEngine:
    """
    Движок для URL (по умолчанию из настроек).

    Для Postgres включается pool_pre_ping и ограниченный пул; SQLite
    (тесты, локальный запуск) работает с пулом по умолчанию.
    """
    url = url or build_async_db_url()
    options = {"echo": settings.DEBUG_MODE}
    if not url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_size=5, max_overflow=10)
    return create_async_engine(url, **options)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Записи читаются после commit (OrderStore возвращает снимки)
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async_engine = make_engine()
async_session_factory = make_session_factory(async_engine)
