from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, BaseEntity, UTCDateTime, utcnow


class AppointmentStatus(int, enum.Enum):
    """Lifecycle of an appointment. Values are persisted, do not renumber."""
    PENDING = 0
    SCHEDULED = 1
    CONFIRMED = 2
    IN_PROGRESS = 3
    COMPLETED = 4
    CANCELED = 5
    NO_SHOW = 6
    REJECTED = 7


# Statuses that no longer occupy the employee's calendar.
RELEASED_STATUSES = (AppointmentStatus.CANCELED, AppointmentStatus.REJECTED)


class Appointment(BaseEntity, Base):
    """
    Booking of one service with one employee.

    Registered bookings reference a customer; guest bookings (public booking
    page) carry the guest's contact details instead.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_employee_slot", "tenant_id", "employee_id", "start_time", "end_time"),
    )

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("customers.id"), nullable=True, index=True
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id"), nullable=False, index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id"), nullable=False, index=True
    )
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=AppointmentStatus.SCHEDULED.value)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_guest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    guest_first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    guest_last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    guest_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    guest_phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    customer_message: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    @property
    def current_status(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    @property
    def guest_full_name(self) -> Optional[str]:
        if not self.is_guest:
            return None
        return " ".join(p for p in (self.guest_first_name, self.guest_last_name) if p)

    # Domain rules

    def can_be_canceled(self) -> bool:
        return self.current_status in (
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.PENDING,
        )

    def can_be_confirmed(self) -> bool:
        return self.current_status in (AppointmentStatus.PENDING, AppointmentStatus.SCHEDULED)

    def _append_note(self, line: str) -> None:
        self.notes = f"{self.notes}\n{line}" if self.notes else line

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self.can_be_canceled():
            raise ValueError(f"Appointment in status {self.current_status.name} cannot be canceled")
        self.status = AppointmentStatus.CANCELED.value
        stamp = utcnow().strftime("%Y-%m-%d %H:%M")
        line = f"Canceled at {stamp}"
        if reason:
            line += f" - Reason: {reason}"
        self._append_note(line)

    def confirm(self) -> None:
        if not self.can_be_confirmed():
            raise ValueError(f"Appointment in status {self.current_status.name} cannot be confirmed")
        self.status = AppointmentStatus.CONFIRMED.value
        self._append_note(f"Confirmed at {utcnow().strftime('%Y-%m-%d %H:%M')}")

    def reject(self, reason: Optional[str] = None) -> None:
        if self.current_status != AppointmentStatus.PENDING:
            raise ValueError("Only pending appointments can be rejected")
        self.status = AppointmentStatus.REJECTED.value
        line = f"Rejected at {utcnow().strftime('%Y-%m-%d %H:%M')}"
        if reason:
            line += f" - Reason: {reason}"
        self._append_note(line)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_time < end and self.end_time > start
