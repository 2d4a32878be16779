"""Administrative data retention requests (platform SuperAdmin only, enforced by the routes)."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import Field

from src.application.mediator import RequestHandler
from src.application.requests import Command, Query
from src.application.results import Result
from src.schemas.admin import PurgeSummary, RetentionStats
from src.services.data_retention import DataRetentionService


class GetRetentionStats(Query):
    retention_days: Optional[int] = Field(None, ge=0, description="Defaults to DATA_RETENTION_DAYS")


class PurgeDeletedData(Command):
    retention_days: Optional[int] = Field(None, ge=0, description="Defaults to DATA_RETENTION_DAYS")


class PurgeTenantData(Command):
    tenant_id: UUID
    retention_days: Optional[int] = Field(None, ge=0, description="Defaults to DATA_RETENTION_DAYS")


class GetRetentionStatsHandler(RequestHandler):
    async def handle(self, request: GetRetentionStats) -> Result[RetentionStats]:
        stats = await DataRetentionService(self.session, self.settings).get_stats(request.retention_days)
        return Result[RetentionStats].success(stats)


class PurgeDeletedDataHandler(RequestHandler):
    async def handle(self, request: PurgeDeletedData) -> Result[PurgeSummary]:
        summary = await DataRetentionService(self.session, self.settings).purge(request.retention_days)
        return Result[PurgeSummary].success(
            summary,
            message=f"Successfully purged deleted records older than {summary.retention_days} days",
        )


class PurgeTenantDataHandler(RequestHandler):
    async def handle(self, request: PurgeTenantData) -> Result[PurgeSummary]:
        summary = await DataRetentionService(self.session, self.settings).purge(
            request.retention_days, tenant_id=request.tenant_id
        )
        return Result[PurgeSummary].success(
            summary,
            message=(
                f"Successfully purged deleted records for tenant {request.tenant_id} "
                f"older than {summary.retention_days} days"
            ),
        )


HANDLERS = {
    GetRetentionStats: GetRetentionStatsHandler,
    PurgeDeletedData: PurgeDeletedDataHandler,
    PurgeTenantData: PurgeTenantDataHandler,
}
