from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from src.api.responses import envelope
from src.application.features.employees import GetEmployeesByService
from src.application.features.services import (
    CreateService,
    DeleteService,
    GetServiceDetail,
    GetServicesList,
    UpdateService,
)
from src.application.mediator import Mediator
from src.application.results import PaginatedList, Result
from src.core.context import RequestContext
from src.core.deps import get_current_context, get_mediator, require_roles
from src.db.models.security import UserRole
from src.schemas.employees import EmployeeRead
from src.schemas.services import ServiceRead

router = APIRouter(prefix="/services", tags=["Services"])

_manage = require_roles(UserRole.ADMIN.value, UserRole.EMPLOYEE.value)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Result[PaginatedList[ServiceRead]],
    summary="List services",
)
async def list_services(
    page_number: int = Query(1),
    page_size: int = Query(10),
    search_term: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    max_price: Optional[Decimal] = Query(None),
    sort_by: Optional[str] = Query(None, description="name | price | duration | createdat"),
    sort_ascending: bool = Query(True),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetServicesList(
        page_number=page_number,
        page_size=page_size,
        search_term=search_term,
        is_active=is_active,
        max_price=max_price,
        sort_by=sort_by,
        sort_ascending=sort_ascending,
        bypass_cache=bypass_cache,
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get("/{service_id}", response_model=Result[ServiceRead], summary="Get service")
async def get_service(
    service_id: UUID = Path(...),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetServiceDetail(id=service_id), ctx))


# PUBLIC_INTERFACE
@router.get(
    "/{service_id}/employees",
    response_model=Result[List[EmployeeRead]],
    summary="Employees offering a service",
)
async def get_service_employees(
    service_id: UUID = Path(...),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetEmployeesByService(service_id=service_id), ctx))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Result[ServiceRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create service",
    description="Requires the Admin or Employee role.",
)
async def create_service(
    payload: CreateService,
    ctx: RequestContext = Depends(_manage),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(payload, ctx), status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.put("/{service_id}", response_model=Result[ServiceRead], summary="Update service")
async def update_service(
    payload: UpdateService,
    service_id: UUID = Path(...),
    ctx: RequestContext = Depends(_manage),
    mediator: Mediator = Depends(get_mediator),
):
    request = payload.model_copy(update={"id": service_id})
    return envelope(await mediator.send(request, ctx))


# PUBLIC_INTERFACE
@router.delete(
    "/{service_id}",
    response_model=Result[None],
    summary="Delete service",
    description="Soft delete; the service is detached from every employee.",
)
async def delete_service(
    service_id: UUID = Path(...),
    ctx: RequestContext = Depends(_manage),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(DeleteService(id=service_id), ctx))
