"""Database package: async engine, models, and session utilities."""

from .models import Base
from .session import async_engine, async_session_factory, make_engine, make_session_factory

__all__ = ["async_engine", "async_session_factory", "make_engine", "make_session_factory", "Base"]
