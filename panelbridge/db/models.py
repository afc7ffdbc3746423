"""SQLAlchemy ORM models for orders, settings and API users."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, SmallInteger, String, Text
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, TimestampMixin, utcnow


class Order(TimestampMixin, Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Идентификатор заказа в панели, появляется после успешного размещения
    upstream_order_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, index=True)
    service_id: Mapped[Optional[str]] = mapped_column(String(64))
    link: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[Optional[int]] = mapped_column(Integer)
    runs: Mapped[Optional[int]] = mapped_column(Integer)
    interval: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    error: Mapped[Optional[str]] = mapped_column(Text)
    chat_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    sync_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Последний сырой ответ панели на запрос статуса
    upstream_data: Mapped[Optional[dict]] = mapped_column(JSONType)


class Setting(Base):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(SmallInteger, primary_key=True, default=1)
    panel_key: Mapped[Optional[str]] = mapped_column(String(255))
    other_settings: Mapped[dict] = mapped_column(
        MutableDict.as_mutable(JSONType), default=dict, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
