from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class UserRead(BaseModel):
    """User read model."""
    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    first_name: Optional[str] = Field(None)
    last_name: Optional[str] = Field(None)
    full_name: Optional[str] = Field(None)
    role: str = Field(..., description="Admin | Employee | Customer")
    roles: List[str] = Field(default_factory=list, description="Role names assigned to the user")
    tenant_id: Optional[UUID] = Field(None, description="Business the user belongs to")
    is_active: bool = Field(..., description="Active flag")
    is_superadmin: bool = Field(False, description="Platform operator flag")
    last_login_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(..., description="Created timestamp")

    class Config:
        from_attributes = True


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Opaque refresh token")
    expires_at: datetime = Field(..., description="Access token expiry (UTC)")
    user: UserRead = Field(..., description="Authenticated user")
