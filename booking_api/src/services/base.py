from __future__ import annotations

from typing import Any, Optional, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import ForbiddenError, NotFoundError
from src.core.settings import AppSettings, get_app_settings

E = TypeVar("E")


class BaseService:
    """
    Base class for services and request handlers. Holds a session for use across
    multiple repositories.

    Services should keep business logic and orchestration, delegating data access
    to repositories. Commands commit once, at the end of the use case.
    """

    def __init__(self, session: AsyncSession, settings: Optional[AppSettings] = None) -> None:
        self.session = session
        self.settings = settings or get_app_settings()

    @staticmethod
    def ensure_found(entity: Optional[E], name: str, key: Any) -> E:
        """Raise NotFoundError when a lookup came back empty."""
        if entity is None:
            raise NotFoundError(name, key)
        return entity

    @staticmethod
    def ensure_tenant(entity: Any, tenant_id: Optional[UUID]) -> None:
        """Reject access to an entity owned by another tenant."""
        if entity.tenant_id != tenant_id:
            raise ForbiddenError()

    def load_owned(self, entity: Optional[E], name: str, key: Any, tenant_id: Optional[UUID]) -> E:
        """NotFound when missing, Forbidden when it belongs to another tenant."""
        found = self.ensure_found(entity, name, key)
        self.ensure_tenant(found, tenant_id)
        return found
