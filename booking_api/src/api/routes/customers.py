from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from src.api.responses import envelope
from src.application.features.customers import (
    CreateCustomer,
    DeleteCustomer,
    GetCustomerDetail,
    GetCustomersList,
    UpdateCustomer,
)
from src.application.mediator import Mediator
from src.application.results import PaginatedList, Result
from src.core.context import RequestContext
from src.core.deps import get_current_context, get_mediator, require_roles
from src.db.models.security import UserRole
from src.schemas.customers import CustomerRead

router = APIRouter(prefix="/customers", tags=["Customers"])

_staff = require_roles(UserRole.ADMIN.value, UserRole.EMPLOYEE.value)
_admin = require_roles(UserRole.ADMIN.value)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Result[PaginatedList[CustomerRead]],
    summary="List customers",
    description="Paged customer list of the caller's business with an optional search term.",
)
async def list_customers(
    page_number: int = Query(1),
    page_size: int = Query(10),
    search_term: Optional[str] = Query(None, description="Matches name, email or phone"),
    sort_by: Optional[str] = Query(None, description="firstname | lastname | email | createdat"),
    sort_ascending: bool = Query(True),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(_staff),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetCustomersList(
        page_number=page_number,
        page_size=page_size,
        search_term=search_term,
        sort_by=sort_by,
        sort_ascending=sort_ascending,
        bypass_cache=bypass_cache,
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get(
    "/{customer_id}",
    response_model=Result[CustomerRead],
    summary="Get customer",
)
async def get_customer(
    customer_id: UUID = Path(...),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetCustomerDetail(id=customer_id), ctx))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Result[CustomerRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
)
async def create_customer(
    payload: CreateCustomer,
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(payload, ctx), status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.put(
    "/{customer_id}",
    response_model=Result[CustomerRead],
    summary="Update customer",
)
async def update_customer(
    payload: UpdateCustomer,
    customer_id: UUID = Path(...),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    request = payload.model_copy(update={"id": customer_id})
    return envelope(await mediator.send(request, ctx))


# PUBLIC_INTERFACE
@router.delete(
    "/{customer_id}",
    response_model=Result[None],
    summary="Delete customer",
    description="Soft delete. Refused while the customer has upcoming appointments.",
)
async def delete_customer(
    customer_id: UUID = Path(...),
    ctx: RequestContext = Depends(_admin),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(DeleteCustomer(id=customer_id), ctx))
