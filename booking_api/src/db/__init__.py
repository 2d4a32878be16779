"""
Database package initializer exposing key public interfaces for configuration,
engine/session management, and audit actor helpers.
"""

from .base import Base
from .config import get_settings, Settings
from .session import (
    acting_as,
    bind_actor,
    get_engine,
    get_async_session,
    get_session_maker,
)

# Import models to ensure they are registered with SQLAlchemy metadata
# when the db package is imported, and register the session interceptors.
from . import models as models  # noqa: F401
from . import interceptors as interceptors  # noqa: F401

__all__ = [
    "Base",
    "Settings",
    "get_settings",
    "get_engine",
    "get_async_session",
    "get_session_maker",
    "bind_actor",
    "acting_as",
    "models",
    "interceptors",
]
