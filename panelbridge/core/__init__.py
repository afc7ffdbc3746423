"""
Core Package
============
Configuration, logging and the order status vocabulary.
"""

from .config import settings
from .status import OrderStatus, normalize_status

__all__ = ['settings', 'OrderStatus', 'normalize_status']
