import uuid
from datetime import timedelta

import pytest

from src.application.features.appointments import CreateAppointment, GetAppointmentsList
from src.application.features.customers import (
    CreateCustomer,
    DeleteCustomer,
    GetCustomerDetail,
    GetCustomersList,
    UpdateCustomer,
)
from src.core.errors import ForbiddenError, NotFoundError, ValidationError
from src.db.base import utcnow
from src.db.models import Appointment, AppointmentStatus, Customer

from conftest import at, next_weekday


def _customer(**overrides):
    fields = dict(first_name="Jane", last_name="Doe", email="jane@example.com", phone_number="555-0100")
    fields.update(overrides)
    return CreateCustomer(**fields)


async def test_create_and_read_back(mediator, ctx):
    created = await mediator.send(_customer(city="Springfield"), ctx)

    assert created.succeeded
    assert created.message == "Customer created successfully"
    detail = await mediator.send(GetCustomerDetail(id=created.data.id), ctx)
    assert detail.data.full_name == "Jane Doe"
    assert detail.data.city == "Springfield"
    assert detail.data.tenant_id == ctx.tenant_id


async def test_email_is_unique_per_tenant(mediator, ctx, other_ctx):
    await mediator.send(_customer(), ctx)

    duplicate = await mediator.send(_customer(first_name="Janet"), ctx)
    elsewhere = await mediator.send(_customer(), other_ctx)

    assert duplicate.errors == ["Email is already in use."]
    assert elsewhere.succeeded


async def test_update_changes_fields(mediator, ctx):
    created = (await mediator.send(_customer(), ctx)).data

    result = await mediator.send(
        UpdateCustomer(id=created.id, first_name="Janet", last_name="Doe", email="janet@example.com"), ctx
    )

    assert result.succeeded
    assert result.data.first_name == "Janet"
    assert result.data.updated_at is not None
    # Detail cache is dropped by the update.
    detail = await mediator.send(GetCustomerDetail(id=created.id), ctx)
    assert detail.data.email == "janet@example.com"


async def test_update_requires_id(mediator, ctx):
    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(UpdateCustomer(first_name="A", last_name="B", email="a@example.com"), ctx)

    assert exc_info.value.failures["id"] == ["Customer id is required."]


async def test_soft_deleted_customer_disappears(mediator, ctx, session):
    created = (await mediator.send(_customer(), ctx)).data
    await mediator.send(_customer(first_name="Keep", email="keep@example.com"), ctx)

    deleted = await mediator.send(DeleteCustomer(id=created.id), ctx)
    listed = await mediator.send(GetCustomersList(), ctx)

    assert deleted.succeeded
    assert [c.first_name for c in listed.data.items] == ["Keep"]
    with pytest.raises(NotFoundError):
        await mediator.send(GetCustomerDetail(id=created.id), ctx)

    row = await session.get(Customer, created.id)
    assert row.is_deleted
    assert row.deleted_by == str(ctx.user_id)
    assert row.deleted_at is not None


async def test_deleted_customer_keeps_appointment_history(mediator, ctx, booking, session):
    start = utcnow() - timedelta(days=30)
    session.add(
        Appointment(
            tenant_id=ctx.tenant_id,
            customer_id=booking.customer.id,
            employee_id=booking.employee.id,
            service_id=booking.service.id,
            start_time=start,
            end_time=start + timedelta(minutes=30),
            status=AppointmentStatus.COMPLETED.value,
        )
    )
    await session.commit()

    deleted = await mediator.send(DeleteCustomer(id=booking.customer.id), ctx)
    history = await mediator.send(GetAppointmentsList(bypass_cache=True), ctx)

    assert deleted.succeeded
    assert [(a.customer_id, a.customer_name) for a in history.data.items] == [(booking.customer.id, "Jane Doe")]
    assert history.data.items[0].service_name == "Haircut"


async def test_customer_with_upcoming_appointment_cannot_be_deleted(mediator, ctx, booking):
    await mediator.send(
        CreateAppointment(
            customer_id=booking.customer.id,
            employee_id=booking.employee.id,
            service_id=booking.service.id,
            start_time=at(next_weekday(0), 10),
        ),
        ctx,
    )

    result = await mediator.send(DeleteCustomer(id=booking.customer.id), ctx)

    assert result.errors == ["Cannot delete customer with upcoming appointments. Please cancel them first."]


async def test_search_matches_name_and_email(mediator, ctx):
    await mediator.send(_customer(), ctx)
    await mediator.send(_customer(first_name="Bob", last_name="Smith", email="bob@example.org"), ctx)

    by_name = await mediator.send(GetCustomersList(search_term="smi"), ctx)
    by_email = await mediator.send(GetCustomersList(search_term="example.com"), ctx)

    assert [c.first_name for c in by_name.data.items] == ["Bob"]
    assert [c.first_name for c in by_email.data.items] == ["Jane"]


async def test_foreign_customer_is_forbidden(mediator, ctx, other_ctx):
    created = (await mediator.send(_customer(), ctx)).data

    with pytest.raises(ForbiddenError):
        await mediator.send(GetCustomerDetail(id=created.id), other_ctx)
    with pytest.raises(ForbiddenError):
        await mediator.send(DeleteCustomer(id=created.id), other_ctx)
    with pytest.raises(NotFoundError):
        await mediator.send(DeleteCustomer(id=uuid.uuid4()), ctx)


async def test_audit_columns_record_the_actor(mediator, ctx, session):
    created = (await mediator.send(_customer(), ctx)).data

    row = await session.get(Customer, created.id)

    assert row.created_by == str(ctx.user_id)
    assert row.created_at is not None
