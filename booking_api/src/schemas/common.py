from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class EntityRead(BaseModel):
    """Identity and audit fields shared by tenant-owned read models."""
    id: UUID = Field(..., description="Unique identifier")
    tenant_id: UUID = Field(..., description="Owning tenant")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp (UTC)")

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    """Standard message response."""
    message: str = Field(..., description="Human readable message")
    details: Optional[dict] = Field(default=None, description="Optional extra data")


class TenantEcho(BaseModel):
    """Model to echo tenant context."""
    tenant_id: Optional[UUID] = Field(None, description="Tenant resolved for this request")
    user_id: Optional[UUID] = Field(None, description="Authenticated user, if any")
    roles: list[str] = Field(default_factory=list, description="Roles of the authenticated user")
