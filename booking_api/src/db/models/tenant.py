from __future__ import annotations

import uuid
from datetime import time
from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import AuditMixin, Base, SoftDeleteMixin, TenantMixin, UUIDPkMixin


class Tenant(UUIDPkMixin, AuditMixin, SoftDeleteMixin, Base):
    """
    A business using the platform. All other data is partitioned by tenant id.

    A tenant's own tenant_id always equals its id.
    """
    __tablename__ = "tenants"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    subdomain: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    primary_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#3498db")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    working_hours: Mapped[list["TenantWorkingHours"]] = relationship(
        "TenantWorkingHours",
        back_populates="tenant",
        cascade="all, delete-orphan",
        order_by="TenantWorkingHours.day_of_week",
        lazy="selectin",
    )


class TenantWorkingHours(UUIDPkMixin, TenantMixin, AuditMixin, Base):
    """Opening hours of a business for one weekday (0=Monday ... 6=Sunday)."""
    __tablename__ = "tenant_working_hours"

    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    open_time: Mapped[time] = mapped_column(Time, nullable=False)
    close_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="working_hours")
