"""
Bot Package
===========
Telegram bot handlers and status notifications.
"""

from .handlers import router
from .notifier import TelegramStatusNotifier, format_order_status
from .setup import create_dispatcher, setup_bot_menu

__all__ = ['router', 'TelegramStatusNotifier', 'format_order_status', 'create_dispatcher', 'setup_bot_menu']
