from __future__ import annotations

import uuid
from datetime import datetime, time
from typing import Optional

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import AuditMixin, Base, BaseEntity, TenantMixin, UUIDPkMixin


employee_services = Table(
    "employee_services",
    Base.metadata,
    Column("employee_id", Uuid, ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", Uuid, ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Employee(BaseEntity, Base):
    """Staff member who performs services."""
    __tablename__ = "employees"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    services: Mapped[list["Service"]] = relationship(  # noqa: F821
        "Service",
        secondary=employee_services,
        lazy="selectin",
    )
    working_hours: Mapped[list["EmployeeWorkingHours"]] = relationship(
        "EmployeeWorkingHours",
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="EmployeeWorkingHours.day_of_week",
        lazy="selectin",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def service_ids(self) -> list[uuid.UUID]:
        return [s.id for s in self.services]

    def hours_for(self, day_of_week: int) -> Optional["EmployeeWorkingHours"]:
        for wh in self.working_hours:
            if wh.day_of_week == day_of_week and wh.is_working_day:
                return wh
        return None

    def is_available(self, start: datetime, end: datetime) -> bool:
        """True when [start, end) lies inside the working hours of start's weekday."""
        hours = self.hours_for(start.weekday())
        if hours is None:
            return False
        return start.time() >= hours.start_time and end.time() <= hours.end_time


class EmployeeWorkingHours(UUIDPkMixin, TenantMixin, AuditMixin, Base):
    """Working window of an employee for one weekday (0=Monday ... 6=Sunday)."""
    __tablename__ = "employee_working_hours"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_working_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    employee: Mapped["Employee"] = relationship("Employee", back_populates="working_hours")
