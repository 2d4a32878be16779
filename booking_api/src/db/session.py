from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings


_SETTINGS = get_settings()
_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None

# Key under AsyncSession.info holding the audit actor for the save interceptor.
ACTOR_INFO_KEY = "audit_actor"


def _ensure_engine_initialized() -> None:
    """
    Lazily initialize the AsyncEngine and session maker.
    """
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        _ENGINE = create_async_engine(
            _SETTINGS.async_database_url,
            echo=_SETTINGS.SQL_ECHO,
            pool_pre_ping=True,
        )
    if _SESSION_MAKER is None:
        _SESSION_MAKER = async_sessionmaker(
            bind=_ENGINE, expire_on_commit=False, autoflush=False, autocommit=False
        )


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory (used by scripts outside a request)."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.
    Ensures engine/session factory is initialized.
    """
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
def bind_actor(session: AsyncSession, actor: Optional[str]) -> None:
    """
    Record who is acting on this session.

    The before_flush interceptor copies the actor into created_by, updated_by
    and deleted_by columns.
    """
    session.info[ACTOR_INFO_KEY] = actor or "System"


# PUBLIC_INTERFACE
@asynccontextmanager
async def acting_as(session: AsyncSession, actor: Optional[str]) -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager that binds an audit actor and restores the previous one.

    Usage:
        async with acting_as(session, "seed"):
            session.add(...)
            await session.commit()
    """
    previous = session.info.get(ACTOR_INFO_KEY)
    bind_actor(session, actor)
    try:
        yield session
    finally:
        if previous is None:
            session.info.pop(ACTOR_INFO_KEY, None)
        else:
            session.info[ACTOR_INFO_KEY] = previous
