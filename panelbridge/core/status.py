"""
Внутренний словарь статусов заказа и нормализация статусов SMM-панели.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    """Статус заказа в локальном хранилище."""

    PLACING = "placing"
    PENDING = "pending"
    IN_PROGRESS = "in progress"
    PARTIAL = "partial"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


# Статусы, при которых заказ ещё может измениться на стороне панели
SYNC_ELIGIBLE_STATUSES = frozenset(
    {
        OrderStatus.PLACING,
        OrderStatus.IN_PROGRESS,
        OrderStatus.PENDING,
        OrderStatus.PARTIAL,
    }
)

TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
        OrderStatus.ERROR,
    }
)

# Статус панели (lowercase) -> внутренний статус
_STATUS_MAP = {
    "processing": OrderStatus.PLACING,
    "in progress": OrderStatus.IN_PROGRESS,
    "placed": OrderStatus.IN_PROGRESS,
    "completed": OrderStatus.COMPLETED,
    "partial": OrderStatus.PARTIAL,
    "canceled": OrderStatus.CANCELLED,
    "cancelled": OrderStatus.CANCELLED,
    "refund": OrderStatus.REFUNDED,
    "refunds": OrderStatus.REFUNDED,
    "pending": OrderStatus.PENDING,
    "error": OrderStatus.ERROR,
}


def normalize_status(raw_status: Optional[str]) -> OrderStatus:
    """
    Приводит произвольную строку статуса панели к OrderStatus.

    Регистр и пробелы по краям игнорируются. Всё неизвестное (включая
    пустую строку и None) превращается в ``pending``.
    """
    if not isinstance(raw_status, str):
        return OrderStatus.PENDING
    return _STATUS_MAP.get(raw_status.strip().lower(), OrderStatus.PENDING)
