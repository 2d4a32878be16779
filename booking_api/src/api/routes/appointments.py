from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, status

from src.api.responses import envelope
from src.application.features.appointments import (
    CancelAppointment,
    ConfirmAppointment,
    CreateAppointment,
    DeleteAppointment,
    GetAppointmentDetail,
    GetAppointmentsList,
    GetAvailableTimeSlots,
    GetCustomerAppointments,
    RejectAppointment,
    UpdateAppointment,
)
from src.application.mediator import Mediator
from src.application.results import PaginatedList, Result
from src.core.context import RequestContext
from src.core.deps import get_current_context, get_mediator, require_roles
from src.db.models.security import UserRole
from src.schemas.appointments import AppointmentRead, TimeSlot

router = APIRouter(prefix="/appointments", tags=["Appointments"])

_staff = require_roles(UserRole.ADMIN.value, UserRole.EMPLOYEE.value)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Result[PaginatedList[AppointmentRead]],
    summary="List appointments",
    description="Paged appointments with date range, employee, customer, service and status filters.",
)
async def list_appointments(
    page_number: int = Query(1),
    page_size: int = Query(10),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    employee_id: Optional[UUID] = Query(None),
    customer_id: Optional[UUID] = Query(None),
    service_id: Optional[UUID] = Query(None),
    status_filter: Optional[int] = Query(None, alias="status"),
    sort_by: Optional[str] = Query(None, description="starttime | status | createdat"),
    sort_ascending: bool = Query(True),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetAppointmentsList(
        page_number=page_number,
        page_size=page_size,
        start_date=start_date,
        end_date=end_date,
        employee_id=employee_id,
        customer_id=customer_id,
        service_id=service_id,
        status=status_filter,
        sort_by=sort_by,
        sort_ascending=sort_ascending,
        bypass_cache=bypass_cache,
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get(
    "/available-slots",
    response_model=Result[List[TimeSlot]],
    summary="Available time slots",
    description="Slots of one employee for one service on a given day.",
)
async def available_slots(
    employee_id: UUID = Query(...),
    service_id: UUID = Query(...),
    day: date = Query(..., alias="date"),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetAvailableTimeSlots(employee_id=employee_id, service_id=service_id, day=day)
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get(
    "/customer/{customer_id}",
    response_model=Result[List[AppointmentRead]],
    summary="Customer appointments",
)
async def customer_appointments(
    customer_id: UUID = Path(...),
    future_only: bool = Query(False),
    past_only: bool = Query(False),
    sort_ascending: bool = Query(False),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetCustomerAppointments(
        customer_id=customer_id,
        future_only=future_only,
        past_only=past_only,
        sort_ascending=sort_ascending,
        bypass_cache=bypass_cache,
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get("/{appointment_id}", response_model=Result[AppointmentRead], summary="Get appointment")
async def get_appointment(
    appointment_id: UUID = Path(...),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetAppointmentDetail(id=appointment_id), ctx))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Result[AppointmentRead],
    status_code=status.HTTP_201_CREATED,
    summary="Book appointment",
    description="The end time follows from the service duration; the slot must be free.",
)
async def create_appointment(
    payload: CreateAppointment,
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(payload, ctx), status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.put("/{appointment_id}", response_model=Result[AppointmentRead], summary="Update appointment")
async def update_appointment(
    payload: UpdateAppointment,
    appointment_id: UUID = Path(...),
    ctx: RequestContext = Depends(_staff),
    mediator: Mediator = Depends(get_mediator),
):
    request = payload.model_copy(update={"id": appointment_id})
    return envelope(await mediator.send(request, ctx))


# PUBLIC_INTERFACE
@router.post("/{appointment_id}/cancel", response_model=Result[AppointmentRead], summary="Cancel appointment")
async def cancel_appointment(
    appointment_id: UUID = Path(...),
    reason: Optional[str] = Body(None, embed=True),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(CancelAppointment(id=appointment_id, reason=reason), ctx))


# PUBLIC_INTERFACE
@router.post("/{appointment_id}/confirm", response_model=Result[AppointmentRead], summary="Confirm appointment")
async def confirm_appointment(
    appointment_id: UUID = Path(...),
    ctx: RequestContext = Depends(_staff),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(ConfirmAppointment(id=appointment_id), ctx))


# PUBLIC_INTERFACE
@router.post("/{appointment_id}/reject", response_model=Result[AppointmentRead], summary="Reject appointment")
async def reject_appointment(
    appointment_id: UUID = Path(...),
    reason: Optional[str] = Body(None, embed=True),
    ctx: RequestContext = Depends(_staff),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(RejectAppointment(id=appointment_id, reason=reason), ctx))


# PUBLIC_INTERFACE
@router.delete("/{appointment_id}", response_model=Result[None], summary="Delete appointment")
async def delete_appointment(
    appointment_id: UUID = Path(...),
    ctx: RequestContext = Depends(_staff),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(DeleteAppointment(id=appointment_id), ctx))
