"""
Pydantic схемы для HTTP API.

Поля наружу отдаются в camelCase (как их ждёт фронтенд).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from panelbridge.services.models import OrderRecord


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Аутентификация
# ============================================================================

class LoginRequest(BaseModel):
    """Запрос на вход."""
    email: str
    password: str


class LoginUserInfo(BaseModel):
    email: str


class LoginResponse(BaseModel):
    """Ответ на успешный вход."""
    token: str
    user: LoginUserInfo


# ============================================================================
# Заказы
# ============================================================================

class OrderOut(CamelModel):
    """Локальный заказ."""
    id: str
    upstream_order_id: Optional[str] = None
    service_id: Optional[str] = None
    link: str = ""
    quantity: Optional[int] = None
    runs: Optional[int] = None
    interval: Optional[int] = None
    status: str
    error: Optional[str] = None
    chat_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    sync_attempts: int = 0
    upstream_data: Optional[Dict[str, Any]] = None

    @classmethod
    def from_record(cls, order: OrderRecord) -> "OrderOut":
        return cls(**order.as_dict())


class PlaceOrderRequest(CamelModel):
    """Параметры нового заказа."""
    service_id: str | int
    link: str = Field(..., min_length=1)
    quantity: Optional[int] = Field(None, gt=0)
    runs: Optional[int] = Field(None, ge=0)
    interval: Optional[int] = Field(None, ge=0)
    chat_id: Optional[str | int] = None


class PlaceOrderResponse(CamelModel):
    local_order: OrderOut
    upstream_response: Any = None


class OrderStatusResponse(BaseModel):
    local: OrderOut
    status: Any = None


class OrdersResponse(BaseModel):
    orders: List[OrderOut]


class ServicesResponse(CamelModel):
    services: List[Dict[str, Any]]
    from_cache: bool = False


# ============================================================================
# Настройки
# ============================================================================

class PanelKeyUpdate(CamelModel):
    """Новый ключ API панели (валидируется в PanelService)."""
    panel_key: Any = None


class SettingsResponse(BaseModel):
    settings: Dict[str, Any]


class OkResponse(BaseModel):
    ok: bool = True
    message: Optional[str] = None
