"""
Модели данных сервисного слоя (снимки записей, не привязанные к сессии БД).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from panelbridge.core.status import OrderStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite теряет tzinfo - считаем такие значения UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(slots=True)
class OrderRecord:
    """Локальный заказ."""

    id: str
    link: str = ""
    quantity: Optional[int] = None
    service_id: Optional[str] = None
    runs: Optional[int] = None
    interval: Optional[int] = None
    upstream_order_id: Optional[str] = None
    status: str = OrderStatus.PENDING.value
    error: Optional[str] = None
    chat_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    sync_attempts: int = 0
    upstream_data: Optional[Dict[str, Any]] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class PlacementResult:
    """Результат размещения заказа: локальная запись плюс ответ панели или ошибка."""

    order: OrderRecord
    upstream_response: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
