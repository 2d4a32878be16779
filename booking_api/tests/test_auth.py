from datetime import timedelta

import pytest

from src.application.features.auth import (
    ChangePassword,
    GetCurrentUser,
    GetUsersList,
    Login,
    RefreshToken,
    Register,
    RevokeRefreshToken,
)
from src.application.features.customers import GetCustomersList
from src.application.features.employees import GetEmployeesList
from src.core.context import RequestContext
from src.core.errors import ValidationError
from src.core.security import decode_token
from src.db.base import utcnow
from src.db.models import User

PASSWORD = "Secret123"


def _register(email="ann@example.com", **overrides):
    fields = dict(
        email=email,
        password=PASSWORD,
        confirm_password=PASSWORD,
        first_name="Ann",
        last_name="Lee",
    )
    fields.update(overrides)
    return Register(**fields)


async def test_register_then_login(mediator, anonymous_ctx):
    registered = await mediator.send(_register(), anonymous_ctx)
    assert registered.succeeded
    assert registered.data.user.role == "Customer"
    assert registered.data.user.tenant_id is None

    login = await mediator.send(Login(email="ann@example.com", password=PASSWORD), anonymous_ctx)

    assert login.message == "Login successful"
    claims = decode_token(login.data.access_token)
    assert claims["sub"] == str(registered.data.user.id)
    assert claims["type"] == "access"
    assert claims["roles"] == ["Customer"]
    assert claims["tenant_id"] is None
    assert login.data.user.last_login_at is not None


async def test_wrong_password_and_unknown_email_look_the_same(mediator, anonymous_ctx):
    await mediator.send(_register(), anonymous_ctx)

    wrong = await mediator.send(Login(email="ann@example.com", password="Nope12345"), anonymous_ctx)
    unknown = await mediator.send(Login(email="who@example.com", password=PASSWORD), anonymous_ctx)

    assert wrong.errors == unknown.errors == ["Invalid email or password"]


async def test_disabled_user_cannot_login(mediator, anonymous_ctx, session):
    registered = (await mediator.send(_register(), anonymous_ctx)).data
    user = await session.get(User, registered.user.id)
    user.is_active = False
    await session.commit()

    result = await mediator.send(Login(email="ann@example.com", password=PASSWORD), anonymous_ctx)

    assert result.errors == ["User account is disabled"]


async def test_password_rules(mediator, anonymous_ctx):
    request = _register().model_copy(update={"password": "short", "confirm_password": "other", "role": "Owner"})

    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(request, anonymous_ctx)

    failures = exc_info.value.failures
    assert "Password must be at least 8 characters" in failures["password"]
    assert "Password must contain at least one uppercase letter" in failures["password"]
    assert "Password must contain at least one digit" in failures["password"]
    assert failures["confirm_password"] == ["Passwords do not match"]
    assert failures["role"] == ["Input should be 'Customer', 'Employee' or 'Admin'"]


async def test_email_is_registered_once(mediator, anonymous_ctx):
    await mediator.send(_register(), anonymous_ctx)

    again = await mediator.send(_register(), anonymous_ctx)

    assert again.errors == ["Email is already registered."]


async def test_register_into_business_creates_customer_profile(mediator, ctx, anonymous_ctx, tenant):
    customer = await mediator.send(_register(tenant_id=tenant.id), anonymous_ctx)

    assert customer.data.user.tenant_id == tenant.id
    assert decode_token(customer.data.access_token)["tenant_id"] == str(tenant.id)
    customers = await mediator.send(GetCustomersList(), ctx)
    assert [c.email for c in customers.data.items] == ["ann@example.com"]
    assert customers.data.items[0].user_id == customer.data.user.id


@pytest.mark.parametrize("role", ["Employee", "Admin"])
async def test_only_customers_can_join_an_existing_business(mediator, ctx, anonymous_ctx, tenant, role):
    result = await mediator.send(_register(email="intruder@example.com", role=role, tenant_id=tenant.id), anonymous_ctx)

    assert not result.succeeded
    assert result.errors == ["Only customers can register with a business"]
    employees = await mediator.send(GetEmployeesList(bypass_cache=True), ctx)
    assert "intruder@example.com" not in [e.email for e in employees.data.items]


async def test_refresh_rotates_the_token(mediator, anonymous_ctx):
    tokens = (await mediator.send(_register(), anonymous_ctx)).data

    refreshed = await mediator.send(RefreshToken(refresh_token=tokens.refresh_token), anonymous_ctx)
    replay = await mediator.send(RefreshToken(refresh_token=tokens.refresh_token), anonymous_ctx)

    assert refreshed.succeeded
    assert refreshed.data.refresh_token != tokens.refresh_token
    assert replay.errors == ["Invalid refresh token"]


async def test_expired_refresh_token(mediator, anonymous_ctx, session):
    tokens = (await mediator.send(_register(), anonymous_ctx)).data
    user = await session.get(User, tokens.user.id)
    user.refresh_token_expiry_time = utcnow() - timedelta(minutes=1)
    await session.commit()

    result = await mediator.send(RefreshToken(refresh_token=tokens.refresh_token), anonymous_ctx)

    assert result.errors == ["Refresh token expired"]


async def test_revoke_invalidates_refresh_token(mediator, anonymous_ctx):
    tokens = (await mediator.send(_register(), anonymous_ctx)).data
    caller = RequestContext(user_id=tokens.user.id)

    revoked = await mediator.send(RevokeRefreshToken(user_id=tokens.user.id), caller)
    result = await mediator.send(RefreshToken(refresh_token=tokens.refresh_token), anonymous_ctx)

    assert revoked.succeeded
    assert result.errors == ["Invalid refresh token"]


async def test_change_password(mediator, anonymous_ctx):
    tokens = (await mediator.send(_register(), anonymous_ctx)).data
    caller = RequestContext(user_id=tokens.user.id)

    wrong = await mediator.send(
        ChangePassword(
            user_id=tokens.user.id,
            current_password="Wrong1234",
            new_password="Better123!",
            confirm_new_password="Better123!",
        ),
        caller,
    )
    changed = await mediator.send(
        ChangePassword(
            user_id=tokens.user.id,
            current_password=PASSWORD,
            new_password="Better123!",
            confirm_new_password="Better123!",
        ),
        caller,
    )
    old_login = await mediator.send(Login(email="ann@example.com", password=PASSWORD), anonymous_ctx)
    new_login = await mediator.send(Login(email="ann@example.com", password="Better123!"), anonymous_ctx)

    assert wrong.errors == ["Current password is incorrect"]
    assert changed.succeeded
    assert not old_login.succeeded
    assert new_login.succeeded


async def test_new_password_needs_a_special_character(mediator, anonymous_ctx):
    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(
            ChangePassword(
                current_password=PASSWORD, new_password="Better123", confirm_new_password="Better123"
            ),
            anonymous_ctx,
        )

    assert exc_info.value.failures["new_password"] == ["Password must contain at least one special character"]


async def test_current_user_and_user_list(mediator, ctx, anonymous_ctx, tenant):
    tokens = (await mediator.send(_register(tenant_id=tenant.id), anonymous_ctx)).data
    await mediator.send(_register(email="solo@example.com"), anonymous_ctx)

    me = await mediator.send(GetCurrentUser(user_id=tokens.user.id), RequestContext(user_id=tokens.user.id))
    users = await mediator.send(GetUsersList(), ctx)

    assert me.data.email == "ann@example.com"
    assert me.data.full_name == "Ann Lee"
    assert [u.email for u in users.data.items] == ["ann@example.com"]
