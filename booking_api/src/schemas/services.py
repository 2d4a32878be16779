from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import Field

from .common import EntityRead


class ServiceRead(EntityRead):
    """Bookable service read model."""
    name: str = Field(..., description="Service name, unique per tenant")
    description: Optional[str] = Field(None)
    price: Decimal = Field(..., description="Price in the tenant currency")
    duration_minutes: int = Field(..., description="Length of one booking")
    is_active: bool = Field(..., description="Offered for booking")
    color: str = Field(..., description="Calendar color (hex)")
