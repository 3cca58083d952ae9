"""Async database engine configuration."""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from creditcore.settings import get_settings

_engine: AsyncEngine | None = None


def get_async_engine() -> AsyncEngine:
    """Get or create async database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url_async,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            echo=settings.debug,
        )
    return _engine


def reset_engine() -> None:
    """Drop the cached engine (for testing)."""
    global _engine
    _engine = None
