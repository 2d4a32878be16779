"""
Public booking page endpoints, addressed by the business subdomain.

No authentication is required; the tenant is taken from the subdomain in the
path and every request runs in that tenant's context.
"""

from __future__ import annotations

from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope
from src.application.features.appointments import CreateGuestAppointment, GetAvailableTimeSlots
from src.application.features.employees import GetEmployeesByService
from src.application.features.services import GetServicesList
from src.application.features.tenants import GetTenantBySubdomain
from src.application.mediator import Mediator
from src.application.results import PaginatedList, Result
from src.core.context import RequestContext
from src.core.deps import get_mediator, get_request_context
from src.core.errors import NotFoundError
from src.db.session import get_async_session
from src.repositories.tenants import TenantRepository
from src.schemas.appointments import GuestBookingConfirmation, TimeSlot
from src.schemas.employees import EmployeeRead
from src.schemas.services import ServiceRead
from src.schemas.tenants import PublicBusinessInfo

router = APIRouter(prefix="/public/booking/{subdomain}", tags=["Public Booking"])


async def get_business_context(
    subdomain: str = Path(..., description="Business subdomain"),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_async_session),
) -> RequestContext:
    """Bind the request to the active business owning `subdomain`."""
    tenant = await TenantRepository(session).get_by_subdomain(subdomain.strip().lower())
    if tenant is None or not tenant.is_active:
        raise NotFoundError("Tenant", subdomain)
    return ctx.for_tenant(tenant.id)


# PUBLIC_INTERFACE
@router.get("", response_model=Result[PublicBusinessInfo], summary="Business page")
async def business_info(
    subdomain: str = Path(...),
    ctx: RequestContext = Depends(get_request_context),
    mediator: Mediator = Depends(get_mediator),
):
    """Name, branding, address and opening hours of a business."""
    return envelope(await mediator.send(GetTenantBySubdomain(subdomain=subdomain.strip().lower()), ctx))


# PUBLIC_INTERFACE
@router.get("/services", response_model=Result[PaginatedList[ServiceRead]], summary="Bookable services")
async def services(
    ctx: RequestContext = Depends(get_business_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetServicesList(is_active=True, page_size=100)
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get(
    "/services/{service_id}/employees",
    response_model=Result[List[EmployeeRead]],
    summary="Employees offering a service",
)
async def service_employees(
    service_id: UUID = Path(...),
    ctx: RequestContext = Depends(get_business_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetEmployeesByService(service_id=service_id), ctx))


# PUBLIC_INTERFACE
@router.get("/available-slots", response_model=Result[List[TimeSlot]], summary="Available time slots")
async def available_slots(
    employee_id: UUID = Query(...),
    service_id: UUID = Query(...),
    day: date = Query(..., alias="date"),
    ctx: RequestContext = Depends(get_business_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetAvailableTimeSlots(employee_id=employee_id, service_id=service_id, day=day)
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.post(
    "/appointments",
    response_model=Result[GuestBookingConfirmation],
    status_code=status.HTTP_201_CREATED,
    summary="Book as guest",
    description="Guest booking request; limited per email and day.",
)
async def book_as_guest(
    payload: CreateGuestAppointment,
    ctx: RequestContext = Depends(get_business_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(payload, ctx), status.HTTP_201_CREATED)
