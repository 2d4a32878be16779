"""Employee use cases: staff, the services they perform and their working hours."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field

from src.application.mediator import RequestHandler
from src.application.requests import (
    Cacheable,
    CacheInvalidating,
    Command,
    PagedQuery,
    Query,
    RequiredText,
    TenantScoped,
    key_part,
)
from src.application.results import PaginatedList, Result
from src.application.validation import Failure, Rules
from src.db.models.employee import Employee, EmployeeWorkingHours
from src.repositories.appointments import AppointmentRepository
from src.repositories.employees import EmployeeRepository
from src.repositories.services import ServiceRepository
from src.schemas.employees import EmployeeRead, WorkingHoursItem

WRITE_PATTERN = "employees_list|service_employees"
CACHE_DURATION = timedelta(minutes=30)


def detail_key(employee_id: Optional[UUID]) -> str:
    return f"employee_detail_{employee_id}"


class EmployeeFields(Command):
    first_name: RequiredText = Field(..., max_length=100, description="First name")
    last_name: RequiredText = Field(..., max_length=100, description="Last name")
    email: Optional[EmailStr] = Field(None, description="Work email, unique per tenant")
    phone_number: Optional[str] = Field(None, max_length=20)
    title: Optional[str] = Field(None, max_length=100, description="Job title")
    is_active: bool = Field(True)
    user_id: Optional[UUID] = Field(None, description="Link to a registered user")
    service_ids: List[UUID] = Field(default_factory=list, description="Services the employee performs")
    working_hours: List[WorkingHoursItem] = Field(default_factory=list)


class CreateEmployee(EmployeeFields, TenantScoped, CacheInvalidating):
    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return WRITE_PATTERN


class UpdateEmployee(EmployeeFields, TenantScoped, CacheInvalidating):
    id: Optional[UUID] = Field(None, description="Employee id (taken from the URL)")

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return WRITE_PATTERN


class DeleteEmployee(Command, TenantScoped, CacheInvalidating):
    id: UUID

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return WRITE_PATTERN


class GetEmployeeDetail(Query, TenantScoped, Cacheable):
    id: UUID

    cache_expiration = CACHE_DURATION
    result_type = Result[EmployeeRead]

    @property
    def cache_key(self) -> str:
        return detail_key(self.id)


class GetEmployeesList(PagedQuery, TenantScoped, Cacheable):
    search_term: Optional[str] = Field(None, description="Matches name, email or title")
    is_active: Optional[bool] = Field(None)
    service_id: Optional[UUID] = Field(None, description="Only employees offering this service")

    cache_expiration = CACHE_DURATION
    result_type = Result[PaginatedList[EmployeeRead]]

    @property
    def cache_key(self) -> str:
        return (
            f"employees_list_p{self.page_number}_s{self.page_size}_q{key_part(self.search_term)}"
            f"_ia{key_part(self.is_active)}_sid{key_part(self.service_id)}"
            f"_sb{key_part(self.sort_by)}_sa{key_part(self.sort_ascending)}"
        )


class GetEmployeesByService(Query, TenantScoped, Cacheable):
    service_id: UUID

    cache_expiration = CACHE_DURATION
    result_type = Result[List[EmployeeRead]]

    @property
    def cache_key(self) -> str:
        return f"service_employees_{self.service_id}"


def validate_working_hours(request: EmployeeFields) -> List[Failure]:
    rules = Rules()
    days = [wh.day_of_week for wh in request.working_hours]
    rules.check(len(days) == len(set(days)), "working_hours", "Each weekday may appear only once.")
    for wh in request.working_hours:
        if wh.is_working_day:
            rules.check(
                wh.start_time < wh.end_time,
                "working_hours",
                f"Start time must be before end time (day {wh.day_of_week}).",
            )
    return rules.failures


def validate_has_id(request: UpdateEmployee) -> List[Failure]:
    return Rules().required("id", request.id, "Employee id is required.").failures


class _EmployeeWriter(RequestHandler):
    """Shared field mapping for create and update."""

    async def _apply(self, employee: Employee, request: EmployeeFields) -> Optional[str]:
        """Copy fields onto the entity; returns an error message when a service is unknown."""
        wanted = set(request.service_ids)
        services = await ServiceRepository(self.session).get_many(request.tenant_id, wanted)
        if len(services) != len(wanted):
            return "One or more services were not found"

        employee.first_name = request.first_name.strip()
        employee.last_name = request.last_name.strip()
        employee.email = request.email
        employee.phone_number = request.phone_number
        employee.title = request.title
        employee.is_active = request.is_active
        if request.user_id is not None:
            employee.user_id = request.user_id
        employee.services = services
        employee.working_hours = [
            EmployeeWorkingHours(
                tenant_id=request.tenant_id,
                day_of_week=wh.day_of_week,
                start_time=wh.start_time,
                end_time=wh.end_time,
                is_working_day=wh.is_working_day,
            )
            for wh in request.working_hours
        ]
        return None


class CreateEmployeeHandler(_EmployeeWriter):
    async def handle(self, request: CreateEmployee) -> Result[EmployeeRead]:
        repo = EmployeeRepository(self.session)
        if request.email and not await repo.is_email_unique(request.tenant_id, request.email):
            return Result[EmployeeRead].failure("Email is already in use.")

        employee = Employee(tenant_id=request.tenant_id, services=[], working_hours=[])
        error = await self._apply(employee, request)
        if error:
            return Result[EmployeeRead].failure(error)
        await repo.add(employee)
        await repo.commit()
        return Result[EmployeeRead].success(
            EmployeeRead.model_validate(employee), message="Employee created successfully"
        )


class UpdateEmployeeHandler(_EmployeeWriter):
    async def handle(self, request: UpdateEmployee) -> Result[EmployeeRead]:
        repo = EmployeeRepository(self.session)
        employee = self.load_owned(await repo.get_by_id(request.id), "Employee", request.id, request.tenant_id)
        if request.email and not await repo.is_email_unique(
            request.tenant_id, request.email, exclude_id=employee.id
        ):
            return Result[EmployeeRead].failure("Email is already in use.")

        error = await self._apply(employee, request)
        if error:
            return Result[EmployeeRead].failure(error)
        await repo.commit()
        return Result[EmployeeRead].success(
            EmployeeRead.model_validate(employee), message="Employee updated successfully"
        )


class DeleteEmployeeHandler(RequestHandler):
    async def handle(self, request: DeleteEmployee) -> Result[None]:
        repo = EmployeeRepository(self.session)
        employee = self.load_owned(await repo.get_by_id(request.id), "Employee", request.id, request.tenant_id)
        if await AppointmentRepository(self.session).has_future_appointments(employee_id=employee.id):
            return Result[None].failure(
                "Cannot delete employee with future appointments. "
                "Please reassign or delete the appointments first."
            )
        employee.soft_delete()
        await repo.commit()
        return Result[None].success(message="Employee deleted successfully")


class GetEmployeeDetailHandler(RequestHandler):
    async def handle(self, request: GetEmployeeDetail) -> Result[EmployeeRead]:
        repo = EmployeeRepository(self.session)
        employee = self.load_owned(await repo.get_by_id(request.id), "Employee", request.id, request.tenant_id)
        return Result[EmployeeRead].success(EmployeeRead.model_validate(employee))


class GetEmployeesListHandler(RequestHandler):
    async def handle(self, request: GetEmployeesList) -> Result[PaginatedList[EmployeeRead]]:
        repo = EmployeeRepository(self.session)
        items, total = await repo.list_employees(
            request.tenant_id,
            search=request.search_term,
            is_active=request.is_active,
            service_id=request.service_id,
            sort_by=request.sort_by,
            sort_ascending=request.sort_ascending,
            page=request.page_number,
            page_size=request.page_size,
        )
        page = PaginatedList[EmployeeRead].create(
            [EmployeeRead.model_validate(e) for e in items], total, request.page_number, request.page_size
        )
        return Result[PaginatedList[EmployeeRead]].success(page)


class GetEmployeesByServiceHandler(RequestHandler):
    async def handle(self, request: GetEmployeesByService) -> Result[List[EmployeeRead]]:
        service = await ServiceRepository(self.session).get_by_id(request.service_id)
        self.load_owned(service, "Service", request.service_id, request.tenant_id)
        employees = await EmployeeRepository(self.session).list_by_service(
            request.tenant_id, request.service_id
        )
        return Result[List[EmployeeRead]].success([EmployeeRead.model_validate(e) for e in employees])


HANDLERS = {
    CreateEmployee: CreateEmployeeHandler,
    UpdateEmployee: UpdateEmployeeHandler,
    DeleteEmployee: DeleteEmployeeHandler,
    GetEmployeeDetail: GetEmployeeDetailHandler,
    GetEmployeesList: GetEmployeesListHandler,
    GetEmployeesByService: GetEmployeesByServiceHandler,
}

VALIDATORS = {
    CreateEmployee: [validate_working_hours],
    UpdateEmployee: [validate_has_id, validate_working_hours],
}
