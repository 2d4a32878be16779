from __future__ import annotations

from datetime import time
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import EntityRead


class WorkingHoursItem(BaseModel):
    """Working window for one weekday (0=Monday ... 6=Sunday)."""
    day_of_week: int = Field(..., ge=0, le=6, description="0=Monday ... 6=Sunday")
    start_time: time = Field(..., description="Start of the working day")
    end_time: time = Field(..., description="End of the working day")
    is_working_day: bool = Field(True, description="False marks a day off")

    class Config:
        from_attributes = True


class EmployeeServiceRef(BaseModel):
    """Service offered by an employee."""
    id: UUID = Field(..., description="Service id")
    name: str = Field(..., description="Service name")
    duration_minutes: int = Field(...)
    price: Decimal = Field(...)

    class Config:
        from_attributes = True


class EmployeeRead(EntityRead):
    """Employee read model including services and working hours."""
    user_id: Optional[UUID] = Field(None, description="Linked user account")
    first_name: str = Field(...)
    last_name: str = Field(...)
    full_name: str = Field(...)
    email: Optional[str] = Field(None)
    phone_number: Optional[str] = Field(None)
    title: Optional[str] = Field(None)
    is_active: bool = Field(...)
    services: List[EmployeeServiceRef] = Field(default_factory=list)
    working_hours: List[WorkingHoursItem] = Field(default_factory=list)
