"""
API endpoints для аутентификации.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from panelbridge.admin.dependencies import get_user_store
from panelbridge.admin.models.schemas import LoginRequest, LoginResponse, LoginUserInfo
from panelbridge.admin.services.auth_service import AuthService
from panelbridge.services.order_store import UserStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    users: Annotated[UserStore, Depends(get_user_store)],
):
    """
    Вход по email и паролю.

    Возвращает JWT токен для дальнейшей аутентификации.
    """
    auth_service = AuthService(users)
    user = await auth_service.authenticate_user(login_data.email, login_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token = auth_service.create_access_token(data={"sub": str(user.id), "email": user.email})
    return LoginResponse(token=token, user=LoginUserInfo(email=user.email))
