"""
Зависимости FastAPI для HTTP API.

Включает проверку аутентификации и доступ к PanelService.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from panelbridge.core.config import settings
from panelbridge.services.order_store import UserStore
from panelbridge.services.panel_service import PanelService

# Схема безопасности для JWT токенов
optional_security = HTTPBearer(auto_error=False)

BOT_IDENTITY = {"id": "bot", "email": "bot@system.local", "role": "bot"}


@dataclass(slots=True)
class CurrentUser:
    """Личность вызывающего, уже прошедшая проверку токена."""

    id: str
    email: Optional[str]
    role: str = "user"


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(optional_security)],
) -> CurrentUser:
    """
    Проверяет токен из заголовка Authorization.

    Фиксированный BOT_JWT пропускает внутреннего бота без проверки подписи,
    остальные токены декодируются как JWT.
    """
    if credentials is None:
        raise _unauthorized()
    token = credentials.credentials

    if settings.BOT_JWT and secrets.compare_digest(token, settings.BOT_JWT):
        return CurrentUser(**BOT_IDENTITY)

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized()

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized()
    return CurrentUser(id=str(user_id), email=payload.get("email"))


def get_panel_service(request: Request) -> PanelService:
    """PanelService, созданный при старте приложения."""
    return request.app.state.panel_service


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store
