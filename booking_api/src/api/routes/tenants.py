from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from src.api.responses import envelope
from src.application.features.tenants import (
    BusinessCreated,
    CreateBusiness,
    CreateTenant,
    DeleteTenant,
    GetTenantDetail,
    GetTenantsList,
    UpdateTenant,
)
from src.application.mediator import Mediator
from src.application.results import PaginatedList, Result
from src.core.context import RequestContext
from src.core.deps import get_current_context, get_mediator, require_roles
from src.db.models.security import SUPER_ADMIN_ROLE
from src.schemas.tenants import TenantRead

router = APIRouter(prefix="/tenants", tags=["Tenants"])

_platform = require_roles(SUPER_ADMIN_ROLE)


# PUBLIC_INTERFACE
@router.post(
    "/business",
    response_model=Result[BusinessCreated],
    status_code=status.HTTP_201_CREATED,
    summary="Create my business",
    description=(
        "Self-service signup: the caller creates a business with its working hours, joins it "
        "as Admin and receives new tokens carrying the tenant."
    ),
)
async def create_business(
    payload: CreateBusiness,
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    request = payload.model_copy(update={"owner_id": ctx.user_id})
    return envelope(await mediator.send(request, ctx), status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Result[PaginatedList[TenantRead]],
    summary="List tenants",
    description="Requires the platform SuperAdmin role.",
)
async def list_tenants(
    page_number: int = Query(1),
    page_size: int = Query(10),
    search_term: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    sort_by: Optional[str] = Query(None, description="name | subdomain | createdat"),
    sort_ascending: bool = Query(True),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetTenantsList(
        page_number=page_number,
        page_size=page_size,
        search_term=search_term,
        is_active=is_active,
        sort_by=sort_by,
        sort_ascending=sort_ascending,
        bypass_cache=bypass_cache,
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get("/{tenant_id}", response_model=Result[TenantRead], summary="Get tenant")
async def get_tenant(
    tenant_id: UUID = Path(...),
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetTenantDetail(id=tenant_id), ctx))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Result[TenantRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create tenant",
)
async def create_tenant(
    payload: CreateTenant,
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(payload, ctx), status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.put("/{tenant_id}", response_model=Result[TenantRead], summary="Update tenant")
async def update_tenant(
    payload: UpdateTenant,
    tenant_id: UUID = Path(...),
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    request = payload.model_copy(update={"id": tenant_id})
    return envelope(await mediator.send(request, ctx))


# PUBLIC_INTERFACE
@router.delete("/{tenant_id}", response_model=Result[None], summary="Delete tenant")
async def delete_tenant(
    tenant_id: UUID = Path(...),
    ctx: RequestContext = Depends(_platform),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(DeleteTenant(id=tenant_id), ctx))
