from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.appointment import AppointmentStatus
from src.repositories.appointments import AppointmentRow


class AppointmentRead(BaseModel):
    """Appointment read model enriched with display names."""
    id: UUID = Field(..., description="Appointment id")
    tenant_id: UUID = Field(..., description="Owning tenant")
    customer_id: Optional[UUID] = Field(None, description="Registered customer, empty for guests")
    customer_name: Optional[str] = Field(None, description="Customer or guest name")
    employee_id: UUID = Field(...)
    employee_name: Optional[str] = Field(None)
    service_id: UUID = Field(...)
    service_name: Optional[str] = Field(None)
    start_time: datetime = Field(...)
    end_time: datetime = Field(...)
    status: int = Field(..., description="Pending=0 Scheduled=1 Confirmed=2 InProgress=3 Completed=4 Canceled=5 NoShow=6 Rejected=7")
    status_name: str = Field(...)
    notes: Optional[str] = Field(None)
    is_guest: bool = Field(False)
    guest_email: Optional[str] = Field(None)
    guest_phone_number: Optional[str] = Field(None)
    customer_message: Optional[str] = Field(None)
    created_at: datetime = Field(...)
    updated_at: Optional[datetime] = Field(None)

    # PUBLIC_INTERFACE
    @classmethod
    def from_row(cls, row: AppointmentRow) -> "AppointmentRead":
        """Build the read model from an appointment and its joined names."""
        a = row.appointment
        return cls(
            id=a.id,
            tenant_id=a.tenant_id,
            customer_id=a.customer_id,
            customer_name=a.guest_full_name if a.is_guest else row.customer_name,
            employee_id=a.employee_id,
            employee_name=row.employee_name,
            service_id=a.service_id,
            service_name=row.service_name,
            start_time=a.start_time,
            end_time=a.end_time,
            status=a.status,
            status_name=AppointmentStatus(a.status).name.title().replace("_", ""),
            notes=a.notes,
            is_guest=a.is_guest,
            guest_email=a.guest_email,
            guest_phone_number=a.guest_phone_number,
            customer_message=a.customer_message,
            created_at=a.created_at,
            updated_at=a.updated_at,
        )


class TimeSlot(BaseModel):
    """Candidate booking slot."""
    start_time: datetime = Field(...)
    end_time: datetime = Field(...)
    is_available: bool = Field(...)


class GuestBookingConfirmation(BaseModel):
    """Returned to a guest after a public booking."""
    appointment_id: UUID = Field(...)
    confirmation_code: str = Field(..., description="Short code quoted when contacting the business")
    status: int = Field(...)
    start_time: datetime = Field(...)
    end_time: datetime = Field(...)
