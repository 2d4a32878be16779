from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import Field

from .common import EntityRead


class CustomerRead(EntityRead):
    """Customer read model."""
    user_id: Optional[UUID] = Field(None, description="Linked user account")
    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")
    full_name: str = Field(..., description="First and last name")
    email: str = Field(..., description="Contact email")
    phone_number: Optional[str] = Field(None)
    street: Optional[str] = Field(None)
    city: Optional[str] = Field(None)
    state: Optional[str] = Field(None)
    zip_code: Optional[str] = Field(None)
    country: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
