from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from src.api.responses import envelope
from src.application.features.appointments import GetEmployeeAppointments
from src.application.features.employees import (
    CreateEmployee,
    DeleteEmployee,
    GetEmployeeDetail,
    GetEmployeesList,
    UpdateEmployee,
)
from src.application.mediator import Mediator
from src.application.results import PaginatedList, Result
from src.core.context import RequestContext
from src.core.deps import get_current_context, get_mediator, require_roles
from src.db.models.security import UserRole
from src.schemas.appointments import AppointmentRead
from src.schemas.employees import EmployeeRead

router = APIRouter(prefix="/employees", tags=["Employees"])

_admin = require_roles(UserRole.ADMIN.value)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Result[PaginatedList[EmployeeRead]],
    summary="List employees",
)
async def list_employees(
    page_number: int = Query(1),
    page_size: int = Query(10),
    search_term: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    service_id: Optional[UUID] = Query(None),
    sort_by: Optional[str] = Query(None, description="firstname | lastname | email | title | createdat"),
    sort_ascending: bool = Query(True),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetEmployeesList(
        page_number=page_number,
        page_size=page_size,
        search_term=search_term,
        is_active=is_active,
        service_id=service_id,
        sort_by=sort_by,
        sort_ascending=sort_ascending,
        bypass_cache=bypass_cache,
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.get("/{employee_id}", response_model=Result[EmployeeRead], summary="Get employee")
async def get_employee(
    employee_id: UUID = Path(...),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetEmployeeDetail(id=employee_id), ctx))


# PUBLIC_INTERFACE
@router.get(
    "/{employee_id}/appointments",
    response_model=Result[list[AppointmentRead]],
    summary="Employee calendar",
    description="Appointments of one employee between two days (inclusive).",
)
async def get_employee_appointments(
    employee_id: UUID = Path(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    status_filter: Optional[int] = Query(None, alias="status"),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetEmployeeAppointments(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        status=status_filter,
        bypass_cache=bypass_cache,
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Result[EmployeeRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create employee",
    description="Requires the Admin role.",
)
async def create_employee(
    payload: CreateEmployee,
    ctx: RequestContext = Depends(_admin),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(payload, ctx), status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.put("/{employee_id}", response_model=Result[EmployeeRead], summary="Update employee")
async def update_employee(
    payload: UpdateEmployee,
    employee_id: UUID = Path(...),
    ctx: RequestContext = Depends(_admin),
    mediator: Mediator = Depends(get_mediator),
):
    request = payload.model_copy(update={"id": employee_id})
    return envelope(await mediator.send(request, ctx))


# PUBLIC_INTERFACE
@router.delete(
    "/{employee_id}",
    response_model=Result[None],
    summary="Delete employee",
    description="Soft delete. Refused while the employee has future appointments.",
)
async def delete_employee(
    employee_id: UUID = Path(...),
    ctx: RequestContext = Depends(_admin),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(DeleteEmployee(id=employee_id), ctx))
