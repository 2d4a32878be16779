from __future__ import annotations

from datetime import datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class TenantWorkingHoursItem(BaseModel):
    """Opening hours of a business for one weekday (0=Monday ... 6=Sunday)."""
    day_of_week: int = Field(..., ge=0, le=6)
    open_time: time = Field(...)
    close_time: time = Field(...)
    is_active: bool = Field(True)

    class Config:
        from_attributes = True


class TenantRead(BaseModel):
    """Tenant (business) read model."""
    id: UUID = Field(..., description="Tenant id")
    name: str = Field(...)
    subdomain: str = Field(..., description="Lowercase subdomain, unique")
    logo_url: Optional[str] = Field(None)
    primary_color: str = Field(...)
    is_active: bool = Field(...)
    address: Optional[str] = Field(None)
    city: Optional[str] = Field(None)
    state: Optional[str] = Field(None)
    zip_code: Optional[str] = Field(None)
    working_hours: List[TenantWorkingHoursItem] = Field(default_factory=list)
    created_at: datetime = Field(...)
    updated_at: Optional[datetime] = Field(None)

    class Config:
        from_attributes = True


class PublicBusinessInfo(BaseModel):
    """What the public booking page shows about a business."""
    name: str = Field(...)
    subdomain: str = Field(...)
    logo_url: Optional[str] = Field(None)
    primary_color: str = Field(...)
    address: Optional[str] = Field(None)
    city: Optional[str] = Field(None)
    state: Optional[str] = Field(None)
    zip_code: Optional[str] = Field(None)
    working_hours: List[TenantWorkingHoursItem] = Field(default_factory=list)
    allow_online_booking: bool = Field(True)

    class Config:
        from_attributes = True
