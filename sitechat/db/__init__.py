"""
SQLAlchemy models and session helpers for the SQL key-value backend.
"""

from .models import Base, KVEntry
from .session import create_engine_and_sessions, init_models

__all__ = ["Base", "KVEntry", "create_engine_and_sessions", "init_models"]
