"""
Уведомления о статусе заказа в Telegram.
"""

import html
import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from panelbridge.core.status import OrderStatus
from panelbridge.services.models import OrderRecord

logger = logging.getLogger(__name__)

STATUS_EMOJI = {
    OrderStatus.PLACING.value: "⏳",
    OrderStatus.PENDING.value: "🕒",
    OrderStatus.IN_PROGRESS.value: "🚀",
    OrderStatus.PARTIAL.value: "🌓",
    OrderStatus.COMPLETED.value: "✅",
    OrderStatus.CANCELLED.value: "❌",
    OrderStatus.REFUNDED.value: "💸",
    OrderStatus.ERROR.value: "❗",
}


def format_order_status(order: OrderRecord) -> str:
    """Текст сообщения о заказе для пользователя."""
    emoji = STATUS_EMOJI.get(order.status, "📦")
    lines = [
        f"{emoji} Заказ <code>{order.id}</code>",
        f"📦 Статус: <b>{order.status}</b>",
    ]
    if order.upstream_order_id:
        lines.append(f"🆔 ID в панели: <code>{order.upstream_order_id}</code>")
    if order.error:
        lines.append(f"⚠️ Ошибка: {html.escape(order.error)}")
    return "\n".join(lines)


class TelegramStatusNotifier:
    """Отправляет изменение статуса в чат, из которого был сделан заказ."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def notify_status(self, order: OrderRecord) -> None:
        if not order.chat_id:
            return
        try:
            await self.bot.send_message(order.chat_id, format_order_status(order), parse_mode="HTML")
        except TelegramAPIError as e:
            logger.warning("Не удалось отправить статус заказа %s в чат %s: %s", order.id, order.chat_id, e)
