"""
Утилита для инициализации базы данных.
Создаёт все таблицы согласно моделям SQLAlchemy и первого пользователя API.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from panelbridge.core.config import settings
from panelbridge.db.models import Base

logger = logging.getLogger(__name__)


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """
    Создаёт все таблицы в базе данных согласно моделям.
    """
    if engine is None:
        from panelbridge.db.session import async_engine as engine
    try:
        async with engine.begin() as conn:
            # Проверяем подключение
            await conn.execute(text("SELECT 1"))
            logger.info("✅ Подключение к БД успешно")

            await conn.run_sync(Base.metadata.create_all)
            logger.info("✅ Таблицы созданы успешно")

    except Exception as e:
        logger.error(f"❌ Ошибка при инициализации БД: {e}")
        raise


async def seed_default_user(session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> bool:
    """
    Создаёт администратора из ADMIN_EMAIL / ADMIN_PASSWORD, если пользователей ещё нет.

    Returns:
        bool: True если пользователь был создан
    """
    from panelbridge.admin.services.auth_service import AuthService
    from panelbridge.services.order_store import UserStore

    if session_factory is None:
        from panelbridge.db.session import async_session_factory as session_factory

    users = UserStore(session_factory)
    if await users.count() > 0:
        return False

    await users.create(settings.ADMIN_EMAIL, AuthService.get_password_hash(settings.ADMIN_PASSWORD))
    logger.warning("Создан пользователь по умолчанию: %s (смените пароль!)", settings.ADMIN_EMAIL)
    return True


async def _main() -> None:
    await init_db()
    await seed_default_user()


if __name__ == "__main__":
    """
    Запуск инициализации БД из командной строки.

    Использование:
        python -m panelbridge.db.init_db
    """
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_main())
