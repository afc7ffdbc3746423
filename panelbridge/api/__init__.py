"""
API Package
===========
External API clients (SMM panel).
"""

from .panel_client import PanelAPIError, PanelClient

__all__ = [
    'PanelAPIError',
    'PanelClient',
]
