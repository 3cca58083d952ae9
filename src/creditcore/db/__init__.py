"""Database access layer."""

from creditcore.db.engine import get_async_engine
from creditcore.db.session import get_session_factory
from creditcore.db.store import PostgresAccountStore

__all__ = ["get_async_engine", "get_session_factory", "PostgresAccountStore"]
