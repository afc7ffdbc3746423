"""
panelbridge
===========
SMM panel proxy with order reconciliation, HTTP API and Telegram bot.
"""

__version__ = "1.0.0"
