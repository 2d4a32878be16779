"""
Tenant (business) use cases.

Tenants are not tenant-scoped requests: administration is restricted to the
platform SuperAdmin role at the HTTP layer and cached under the global namespace.
Business owners reach their own tenant only through CreateBusiness.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StringConstraints

from src.application.features.auth import issue_tokens
from src.application.features.settings import default_settings, load_booking_settings
from src.application.mediator import RequestHandler
from src.application.requests import (
    Cacheable,
    CacheInvalidating,
    Command,
    HexColor,
    PagedQuery,
    Query,
    RequiredText,
    key_part,
)
from src.application.results import PaginatedList, Result
from src.application.validation import Failure, Rules
from src.core.errors import NotFoundError, UnauthenticatedError
from src.db.models.security import UserRole
from src.db.models.tenant import Tenant, TenantWorkingHours
from src.repositories.security import UserRepository
from src.repositories.tenants import TenantRepository
from src.schemas.auth import TokenPair
from src.schemas.tenants import PublicBusinessInfo, TenantRead, TenantWorkingHoursItem

LIST_PATTERN = "tenants_list"
CACHE_DURATION = timedelta(hours=2)

# Lowercase letters, digits and single hyphens; normalized to lower case.
Subdomain = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        to_lower=True,
        min_length=1,
        max_length=63,
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
    ),
]


def detail_key(tenant_id: Optional[UUID]) -> str:
    return f"tenant_detail_{tenant_id}"


class TenantFields(Command):
    name: RequiredText = Field(..., max_length=100, description="Business name")
    subdomain: Subdomain = Field(..., description="Lowercase letters, digits and single hyphens")
    logo_url: Optional[str] = Field(None)
    primary_color: HexColor = Field("#3498db")
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    working_hours: List[TenantWorkingHoursItem] = Field(default_factory=list)


class CreateTenant(TenantFields, CacheInvalidating):
    is_active: bool = Field(True)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class CreateBusiness(TenantFields, CacheInvalidating):
    """Self-service signup: the caller creates a business and becomes its Admin."""
    owner_id: Optional[UUID] = Field(None, description="Set by the server from the caller")

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class UpdateTenant(TenantFields, CacheInvalidating):
    id: Optional[UUID] = Field(None, description="Tenant id (taken from the URL)")
    is_active: bool = Field(True)

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class DeleteTenant(Command, CacheInvalidating):
    id: UUID

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class GetTenantDetail(Query, Cacheable):
    id: UUID

    cache_expiration = CACHE_DURATION
    result_type = Result[TenantRead]

    @property
    def cache_key(self) -> str:
        return detail_key(self.id)


class GetTenantsList(PagedQuery, Cacheable):
    search_term: Optional[str] = Field(None, description="Matches name or subdomain")
    is_active: Optional[bool] = Field(None)

    cache_expiration = CACHE_DURATION
    result_type = Result[PaginatedList[TenantRead]]

    @property
    def cache_key(self) -> str:
        return (
            f"tenants_list_p{self.page_number}_s{self.page_size}_q{key_part(self.search_term)}"
            f"_ia{key_part(self.is_active)}_sb{key_part(self.sort_by)}_sa{key_part(self.sort_ascending)}"
        )


class GetTenantBySubdomain(Query):
    subdomain: str


class BusinessCreated(BaseModel):
    """New business plus tokens that carry the new tenant claim."""
    tenant: TenantRead
    tokens: TokenPair


def validate_working_hours(request: TenantFields) -> List[Failure]:
    rules = Rules()
    days = [wh.day_of_week for wh in request.working_hours]
    rules.check(len(days) == len(set(days)), "working_hours", "Each weekday may appear only once.")
    for wh in request.working_hours:
        if wh.is_active:
            rules.check(
                wh.open_time < wh.close_time,
                "working_hours",
                f"Opening time must be before closing time (day {wh.day_of_week}).",
            )
    return rules.failures


def validate_has_id(request: UpdateTenant) -> List[Failure]:
    return Rules().required("id", request.id, "Tenant id is required.").failures


def _duplicate(subdomain: str) -> str:
    return f"A tenant with the subdomain '{subdomain}' already exists."


def _apply(tenant: Tenant, request: TenantFields) -> None:
    tenant.name = request.name.strip()
    tenant.subdomain = request.subdomain.strip().lower()
    tenant.logo_url = request.logo_url
    tenant.primary_color = request.primary_color
    tenant.address = request.address
    tenant.city = request.city
    tenant.state = request.state
    tenant.zip_code = request.zip_code
    tenant.working_hours = [
        TenantWorkingHours(
            tenant_id=tenant.id,
            day_of_week=wh.day_of_week,
            open_time=wh.open_time,
            close_time=wh.close_time,
            is_active=wh.is_active,
        )
        for wh in request.working_hours
    ]


class _TenantWriter(RequestHandler):
    async def _create(self, request: TenantFields, is_active: bool = True) -> Optional[Tenant]:
        """Stage a new tenant with its default settings; None when the subdomain is taken."""
        repo = TenantRepository(self.session)
        if not await repo.is_subdomain_unique(request.subdomain.strip().lower()):
            return None
        tenant_id = uuid.uuid4()
        tenant = Tenant(id=tenant_id, tenant_id=tenant_id, is_active=is_active, working_hours=[])
        _apply(tenant, request)
        await repo.add(tenant)
        await repo.flush()
        for setting in default_settings():
            setting.tenant_id = tenant_id
            await repo.add(setting)
        return tenant


class CreateTenantHandler(_TenantWriter):
    async def handle(self, request: CreateTenant) -> Result[TenantRead]:
        tenant = await self._create(request, request.is_active)
        if tenant is None:
            return Result[TenantRead].failure(_duplicate(request.subdomain.strip().lower()))
        await self.session.commit()
        return Result[TenantRead].success(TenantRead.model_validate(tenant), message="Tenant created successfully")


class CreateBusinessHandler(_TenantWriter):
    async def handle(self, request: CreateBusiness) -> Result[BusinessCreated]:
        if request.owner_id is None:
            raise UnauthenticatedError()
        user = await UserRepository(self.session).get_user_by_id(request.owner_id)
        if user is None:
            raise NotFoundError("User", request.owner_id)
        if user.tenant_id is not None:
            return Result[BusinessCreated].failure("You already belong to a business.")

        tenant = await self._create(request)
        if tenant is None:
            return Result[BusinessCreated].failure(_duplicate(request.subdomain.strip().lower()))
        user.tenant_id = tenant.id
        user.role = UserRole.ADMIN.value
        tokens = issue_tokens(user, self.settings)
        await self.session.commit()
        return Result[BusinessCreated].success(
            BusinessCreated(tenant=TenantRead.model_validate(tenant), tokens=tokens),
            message="Business created successfully",
        )


class UpdateTenantHandler(RequestHandler):
    async def handle(self, request: UpdateTenant) -> Result[TenantRead]:
        repo = TenantRepository(self.session)
        tenant = self.ensure_found(await repo.get_by_id(request.id), "Tenant", request.id)
        subdomain = request.subdomain.strip().lower()
        if not await repo.is_subdomain_unique(subdomain, exclude_id=tenant.id):
            return Result[TenantRead].failure(_duplicate(subdomain))
        _apply(tenant, request)
        tenant.is_active = request.is_active
        await repo.commit()
        return Result[TenantRead].success(TenantRead.model_validate(tenant), message="Tenant updated successfully")


class DeleteTenantHandler(RequestHandler):
    async def handle(self, request: DeleteTenant) -> Result[None]:
        repo = TenantRepository(self.session)
        tenant = self.ensure_found(await repo.get_by_id(request.id), "Tenant", request.id)
        tenant.soft_delete()
        await repo.commit()
        return Result[None].success(message="Tenant deleted successfully")


class GetTenantDetailHandler(RequestHandler):
    async def handle(self, request: GetTenantDetail) -> Result[TenantRead]:
        tenant = self.ensure_found(await TenantRepository(self.session).get_by_id(request.id), "Tenant", request.id)
        return Result[TenantRead].success(TenantRead.model_validate(tenant))


class GetTenantsListHandler(RequestHandler):
    async def handle(self, request: GetTenantsList) -> Result[PaginatedList[TenantRead]]:
        items, total = await TenantRepository(self.session).list_tenants(
            search=request.search_term,
            is_active=request.is_active,
            sort_by=request.sort_by,
            sort_ascending=request.sort_ascending,
            page=request.page_number,
            page_size=request.page_size,
        )
        page = PaginatedList[TenantRead].create(
            [TenantRead.model_validate(t) for t in items], total, request.page_number, request.page_size
        )
        return Result[PaginatedList[TenantRead]].success(page)


class GetTenantBySubdomainHandler(RequestHandler):
    """Public business page; inactive businesses are reported as missing."""

    async def handle(self, request: GetTenantBySubdomain) -> Result[PublicBusinessInfo]:
        tenant = await TenantRepository(self.session).get_by_subdomain(request.subdomain)
        if tenant is None or not tenant.is_active:
            raise NotFoundError("Tenant", request.subdomain)
        booking = await load_booking_settings(self.session, tenant.id)
        info = PublicBusinessInfo.model_validate(tenant).model_copy(
            update={"allow_online_booking": booking.allow_online_booking}
        )
        return Result[PublicBusinessInfo].success(info)


HANDLERS = {
    CreateTenant: CreateTenantHandler,
    CreateBusiness: CreateBusinessHandler,
    UpdateTenant: UpdateTenantHandler,
    DeleteTenant: DeleteTenantHandler,
    GetTenantDetail: GetTenantDetailHandler,
    GetTenantsList: GetTenantsListHandler,
    GetTenantBySubdomain: GetTenantBySubdomainHandler,
}

VALIDATORS = {
    CreateTenant: [validate_working_hours],
    CreateBusiness: [validate_working_hours],
    UpdateTenant: [validate_has_id, validate_working_hours],
}
