from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, MetaData, String, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


# Standardized naming convention for alembic-friendly constraints/indexes.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(tz=timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    DateTime column that always binds and returns timezone-aware UTC values.

    Backends without native timezone support (SQLite) hand back naive values;
    those are interpreted as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """Declarative base class with metadata naming conventions."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDPkMixin:
    """Mixin that provides a UUID primary key generated client-side."""
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class AuditMixin:
    """Mixin with created/updated timestamps and actors, stamped by the save interceptor."""
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now(), nullable=False
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class SoftDeleteMixin:
    """
    Mixin for rows that are hidden instead of removed.

    Soft-deleted rows are excluded from ORM selects by a global loader criteria
    (see src.db.interceptors); pass execution_options(include_deleted=True) to see them.
    """
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false", index=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    deleted_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    def soft_delete(self, actor: Optional[str] = None) -> None:
        self.is_deleted = True
        self.deleted_at = utcnow()
        self.deleted_by = actor


class TenantMixin:
    """Mixin that provides tenant scoping and FK to tenants.id."""
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class BaseEntity(UUIDPkMixin, TenantMixin, AuditMixin, SoftDeleteMixin):
    """Column set shared by every tenant-owned aggregate."""
