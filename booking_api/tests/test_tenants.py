import uuid
from datetime import time

import pytest

from src.application.features.settings import GetSettings
from src.application.features.tenants import (
    CreateBusiness,
    CreateTenant,
    DeleteTenant,
    GetTenantBySubdomain,
    GetTenantDetail,
    GetTenantsList,
    UpdateTenant,
)
from src.core.context import RequestContext
from src.core.errors import NotFoundError, ValidationError
from src.core.security import decode_token, get_password_hash
from src.db.models import User, UserRole
from src.schemas.tenants import TenantWorkingHoursItem


def _week():
    return [TenantWorkingHoursItem(day_of_week=d, open_time=time(8), close_time=time(20)) for d in range(6)]


async def test_create_tenant_with_default_settings(mediator, anonymous_ctx):
    result = await mediator.send(CreateTenant(name="Nova Nails", subdomain="Nova-Nails", working_hours=_week()), anonymous_ctx)

    assert result.succeeded
    tenant = result.data
    assert tenant.subdomain == "nova-nails"
    assert len(tenant.working_hours) == 6

    groups = await mediator.send(GetSettings(), RequestContext(tenant_id=tenant.id))
    assert {g.category for g in groups.data} == {"Booking", "Business", "Notifications"}


async def test_subdomain_is_unique(mediator, anonymous_ctx, tenant):
    result = await mediator.send(CreateTenant(name="Copy", subdomain="acme"), anonymous_ctx)

    assert result.errors == ["A tenant with the subdomain 'acme' already exists."]


async def test_subdomain_format_is_validated(mediator, anonymous_ctx):
    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(
            CreateTenant.model_construct(name="Bad", subdomain="bad_name--x", primary_color="red"), anonymous_ctx
        )

    assert set(exc_info.value.failures) == {"subdomain", "primary_color"}


async def test_update_and_delete_tenant(mediator, anonymous_ctx, tenant):
    updated = await mediator.send(
        UpdateTenant(id=tenant.id, name="Acme Beauty", subdomain="acme", city="Shelbyville", is_active=True),
        anonymous_ctx,
    )
    assert updated.data.name == "Acme Beauty"

    detail = await mediator.send(GetTenantDetail(id=tenant.id), anonymous_ctx)
    assert detail.data.city == "Shelbyville"

    await mediator.send(DeleteTenant(id=tenant.id), anonymous_ctx)
    with pytest.raises(NotFoundError):
        await mediator.send(GetTenantDetail(id=tenant.id), anonymous_ctx)


async def test_tenant_list_search(mediator, anonymous_ctx, tenant, other_tenant):
    result = await mediator.send(GetTenantsList(search_term="glob"), anonymous_ctx)

    assert [t.subdomain for t in result.data.items] == ["globex"]


async def test_public_lookup_hides_inactive_business(mediator, anonymous_ctx, tenant):
    info = await mediator.send(GetTenantBySubdomain(subdomain="acme"), anonymous_ctx)
    assert info.data.name == "Acme Salon"
    assert info.data.allow_online_booking is True

    await mediator.send(
        UpdateTenant(id=tenant.id, name="Acme Salon", subdomain="acme", is_active=False), anonymous_ctx
    )
    with pytest.raises(NotFoundError):
        await mediator.send(GetTenantBySubdomain(subdomain="acme"), anonymous_ctx)


async def test_create_business_makes_caller_admin(mediator, session):
    user = User(
        email="founder@example.com",
        first_name="Fay",
        last_name="Founder",
        hashed_password=get_password_hash("Secret123"),
        role=UserRole.CUSTOMER.value,
    )
    session.add(user)
    await session.commit()
    caller = RequestContext(user_id=user.id, roles=("Customer",))

    result = await mediator.send(
        CreateBusiness(name="Fay's Studio", subdomain="fays-studio", owner_id=user.id, working_hours=_week()),
        caller,
    )

    assert result.succeeded
    tenant_id = result.data.tenant.id
    claims = decode_token(result.data.tokens.access_token)
    assert claims["tenant_id"] == str(tenant_id)
    assert claims["roles"] == ["Admin"]
    assert user.tenant_id == tenant_id

    again = await mediator.send(
        CreateBusiness(name="Second", subdomain="second-shop", owner_id=user.id), caller
    )
    assert again.errors == ["You already belong to a business."]


async def test_create_business_for_unknown_user(mediator):
    missing = uuid.uuid4()
    with pytest.raises(NotFoundError):
        await mediator.send(CreateBusiness(name="Ghost", subdomain="ghost", owner_id=missing), RequestContext(user_id=missing))
