from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from src.api.responses import envelope
from src.application.features.admin import GetRetentionStats, PurgeDeletedData, PurgeTenantData
from src.application.mediator import Mediator
from src.application.results import Result
from src.core.context import RequestContext
from src.core.deps import get_mediator, require_roles
from src.db.models.security import SUPER_ADMIN_ROLE
from src.schemas.admin import PurgeSummary, RetentionStats

router = APIRouter(prefix="/admin", tags=["Admin"])

_platform = require_roles(SUPER_ADMIN_ROLE)


# PUBLIC_INTERFACE
@router.get(
    "/data-retention/stats",
    response_model=Result[RetentionStats],
    summary="Data retention statistics",
    description="Counts of total, soft-deleted and purgeable rows across all tenants.",
)
async def retention_stats(
    retention_days: Optional[int] = Query(None),
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetRetentionStats(retention_days=retention_days), ctx))


# PUBLIC_INTERFACE
@router.post(
    "/data-retention/purge",
    response_model=Result[PurgeSummary],
    summary="Purge old deleted records",
    description="Hard-delete soft-deleted rows older than the retention period, for every tenant.",
)
async def purge(
    retention_days: Optional[int] = Query(None),
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(PurgeDeletedData(retention_days=retention_days), ctx))


# PUBLIC_INTERFACE
@router.post(
    "/data-retention/purge-tenant/{tenant_id}",
    response_model=Result[PurgeSummary],
    summary="Purge old deleted records of one tenant",
)
async def purge_tenant(
    tenant_id: UUID = Path(...),
    retention_days: Optional[int] = Query(None),
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    request = PurgeTenantData(tenant_id=tenant_id, retention_days=retention_days)
    return envelope(await mediator.send(request, ctx))
