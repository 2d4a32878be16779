from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RetentionStats(BaseModel):
    """Soft-deleted data currently held, and how much is past retention."""
    total_records: int = Field(0, description="Customers, employees, services and appointments")
    deleted_records: int = Field(0)
    archivable_records: int = Field(0, description="Deleted longer ago than the retention period")
    deleted_percentage: float = Field(0.0)
    estimated_storage_mb: float = Field(0.0, description="Rough size of deleted rows (2 KB each)")
    retention_days: int = Field(...)
    cutoff: datetime = Field(..., description="Rows deleted before this instant are archivable")


class PurgeSummary(BaseModel):
    """Rows removed by a purge run."""
    tenant_id: Optional[UUID] = Field(None, description="Empty for a global purge")
    retention_days: int = Field(...)
    cutoff: datetime = Field(...)
    customers: int = Field(0)
    employees: int = Field(0)
    services: int = Field(0)
    appointments: int = Field(0)

    @property
    def total(self) -> int:
        return self.customers + self.employees + self.services + self.appointments
