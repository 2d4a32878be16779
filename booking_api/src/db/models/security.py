from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import AuditMixin, Base, UTCDateTime, UUIDPkMixin


class UserRole(str, enum.Enum):
    """Roles carried in access tokens."""
    ADMIN = "Admin"
    EMPLOYEE = "Employee"
    CUSTOMER = "Customer"


# Platform operator role; granted through User.is_superadmin, never self-assigned.
SUPER_ADMIN_ROLE = "SuperAdmin"


class User(UUIDPkMixin, AuditMixin, Base):
    """
    Application user (identity).

    Users sign up before they belong to a business, so tenant_id stays empty
    until the user creates a business or registers against one.
    """
    __tablename__ = "users"

    tenant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    is_superadmin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    refresh_token: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    refresh_token_expiry_time: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @property
    def roles(self) -> list[str]:
        return [self.role, SUPER_ADMIN_ROLE] if self.is_superadmin else [self.role]
