"""
Сервис аутентификации пользователей HTTP API.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from passlib.context import CryptContext

from panelbridge.core.config import settings
from panelbridge.db.models import User
from panelbridge.services.order_store import UserStore

# Контекст для хеширования паролей
# argon2 - основной алгоритм, bcrypt оставлен для старых хешей
pwd_context = CryptContext(
    schemes=["argon2", "bcrypt"],
    default="argon2",
    deprecated="auto",
)


class AuthService:
    """Сервис для аутентификации пользователей API."""

    def __init__(self, users: UserStore):
        self.users = users

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Создает JWT токен."""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.JWT_EXPIRE_DAYS))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Проверяет email и пароль.

        Returns:
            User если аутентификация успешна, иначе None
        """
        user = await self.users.get_by_email(email)
        if user is None:
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user
