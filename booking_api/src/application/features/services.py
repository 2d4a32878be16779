"""Bookable service use cases."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from src.application.mediator import RequestHandler
from src.application.requests import (
    Cacheable,
    CacheInvalidating,
    Command,
    HexColor,
    PagedQuery,
    Query,
    RequiredText,
    TenantScoped,
    key_part,
)
from src.application.results import PaginatedList, Result
from src.application.validation import Failure, Rules
from src.db.models.service import Service
from src.repositories.appointments import AppointmentRepository
from src.repositories.employees import EmployeeRepository
from src.repositories.services import ServiceRepository
from src.schemas.services import ServiceRead

LIST_PATTERN = "services_list"
# Service name and linkage also appear on cached employee and appointment reads.
WRITE_PATTERN = "|".join(
    (
        "services_list",
        "service_employees",
        "employees_list",
        "employee_detail",
        "appointments_list",
        "appointment_detail",
        "employee_appointments",
        "customer_appointments",
    )
)


def detail_key(service_id: Optional[UUID]) -> str:
    return f"service_detail_{service_id}"


class ServiceFields(Command):
    name: RequiredText = Field(..., max_length=100, description="Service name, unique per tenant")
    description: Optional[str] = Field(None, max_length=500)
    price: Decimal = Field(Decimal("0"), ge=0, description="Price, zero or more")
    duration_minutes: int = Field(60, ge=1, le=480, description="Length of one booking (1-480)")
    is_active: bool = Field(True)
    color: HexColor = Field("#3498db", description="Calendar color as #RGB or #RRGGBB")


class CreateService(ServiceFields, TenantScoped, CacheInvalidating):
    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class UpdateService(ServiceFields, TenantScoped, CacheInvalidating):
    id: Optional[UUID] = Field(None, description="Service id (taken from the URL)")

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return WRITE_PATTERN


class DeleteService(Command, TenantScoped, CacheInvalidating):
    id: UUID

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return WRITE_PATTERN


class GetServiceDetail(Query, TenantScoped, Cacheable):
    id: UUID

    cache_expiration = timedelta(hours=1)
    result_type = Result[ServiceRead]

    @property
    def cache_key(self) -> str:
        return detail_key(self.id)


class GetServicesList(PagedQuery, TenantScoped, Cacheable):
    search_term: Optional[str] = Field(None, description="Matches name or description")
    is_active: Optional[bool] = Field(None)
    max_price: Optional[Decimal] = Field(None)

    cache_expiration = timedelta(hours=1)
    result_type = Result[PaginatedList[ServiceRead]]

    @property
    def cache_key(self) -> str:
        return (
            f"services_list_p{self.page_number}_s{self.page_size}_q{key_part(self.search_term)}"
            f"_ia{key_part(self.is_active)}_mp{key_part(self.max_price)}"
            f"_sb{key_part(self.sort_by)}_sa{key_part(self.sort_ascending)}"
        )


def validate_has_id(request: UpdateService) -> List[Failure]:
    return Rules().required("id", request.id, "Service id is required.").failures


def _apply(service: Service, request: ServiceFields) -> None:
    service.name = request.name.strip()
    service.description = request.description
    service.price = request.price
    service.duration_minutes = request.duration_minutes
    service.is_active = request.is_active
    service.color = request.color


def _duplicate(name: str) -> str:
    return f"A service with the name '{name}' already exists."


class CreateServiceHandler(RequestHandler):
    async def handle(self, request: CreateService) -> Result[ServiceRead]:
        repo = ServiceRepository(self.session)
        if not await repo.is_name_unique(request.tenant_id, request.name.strip()):
            return Result[ServiceRead].failure(_duplicate(request.name))

        service = Service(tenant_id=request.tenant_id)
        _apply(service, request)
        await repo.add(service)
        await repo.commit()
        return Result[ServiceRead].success(
            ServiceRead.model_validate(service), message="Service created successfully"
        )


class UpdateServiceHandler(RequestHandler):
    async def handle(self, request: UpdateService) -> Result[ServiceRead]:
        repo = ServiceRepository(self.session)
        service = self.load_owned(await repo.get_by_id(request.id), "Service", request.id, request.tenant_id)
        if not await repo.is_name_unique(request.tenant_id, request.name.strip(), exclude_id=service.id):
            return Result[ServiceRead].failure(_duplicate(request.name))

        _apply(service, request)
        await repo.commit()
        return Result[ServiceRead].success(
            ServiceRead.model_validate(service), message="Service updated successfully"
        )


class DeleteServiceHandler(RequestHandler):
    async def handle(self, request: DeleteService) -> Result[None]:
        repo = ServiceRepository(self.session)
        service = self.load_owned(await repo.get_by_id(request.id), "Service", request.id, request.tenant_id)
        if await AppointmentRepository(self.session).has_future_appointments(service_id=service.id):
            return Result[None].failure(
                "Cannot delete service with future appointments. "
                "Please reschedule or delete the appointments first."
            )
        await EmployeeRepository(self.session).detach_service(service.id)
        service.soft_delete()
        await repo.commit()
        return Result[None].success(message="Service deleted successfully")


class GetServiceDetailHandler(RequestHandler):
    async def handle(self, request: GetServiceDetail) -> Result[ServiceRead]:
        repo = ServiceRepository(self.session)
        service = self.load_owned(await repo.get_by_id(request.id), "Service", request.id, request.tenant_id)
        return Result[ServiceRead].success(ServiceRead.model_validate(service))


class GetServicesListHandler(RequestHandler):
    async def handle(self, request: GetServicesList) -> Result[PaginatedList[ServiceRead]]:
        repo = ServiceRepository(self.session)
        items, total = await repo.list_services(
            request.tenant_id,
            search=request.search_term,
            is_active=request.is_active,
            max_price=request.max_price,
            sort_by=request.sort_by,
            sort_ascending=request.sort_ascending,
            page=request.page_number,
            page_size=request.page_size,
        )
        page = PaginatedList[ServiceRead].create(
            [ServiceRead.model_validate(s) for s in items], total, request.page_number, request.page_size
        )
        return Result[PaginatedList[ServiceRead]].success(page)


HANDLERS = {
    CreateService: CreateServiceHandler,
    UpdateService: UpdateServiceHandler,
    DeleteService: DeleteServiceHandler,
    GetServiceDetail: GetServiceDetailHandler,
    GetServicesList: GetServicesListHandler,
}

VALIDATORS = {
    UpdateService: [validate_has_id],
}
