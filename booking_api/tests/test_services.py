from decimal import Decimal

import pytest

from src.application.behaviors import default_behaviors
from src.application.features.appointments import CreateAppointment, GetAppointmentsList
from src.application.features.employees import GetEmployeeDetail, GetEmployeesList
from src.application.features.services import (
    CreateService,
    DeleteService,
    GetServiceDetail,
    GetServicesList,
    UpdateService,
)
from src.application.mediator import Mediator
from src.core.errors import ForbiddenError, ValidationError
from src.repositories.employees import EmployeeRepository

from conftest import at, next_weekday


async def test_create_service(mediator, ctx):
    result = await mediator.send(
        CreateService(name="Color", description="Full color", price=Decimal("80.50"), duration_minutes=90), ctx
    )

    assert result.succeeded
    assert result.data.price == Decimal("80.50")
    assert result.data.color == "#3498db"


async def test_service_names_are_unique_case_insensitively(mediator, ctx):
    await mediator.send(CreateService(name="Haircut", duration_minutes=30), ctx)

    result = await mediator.send(CreateService(name="HAIRCUT", duration_minutes=45), ctx)

    assert result.errors == ["A service with the name 'HAIRCUT' already exists."]


async def test_service_fields_are_validated(mediator, ctx):
    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(
            CreateService.model_construct(name="", price=Decimal("-1"), duration_minutes=600, color="blue"), ctx
        )

    assert set(exc_info.value.failures) == {"name", "price", "duration_minutes", "color"}


async def test_update_keeps_own_name(mediator, ctx):
    created = (await mediator.send(CreateService(name="Shave", duration_minutes=20), ctx)).data

    result = await mediator.send(
        UpdateService(id=created.id, name="Shave", duration_minutes=25, is_active=False), ctx
    )

    assert result.succeeded
    assert result.data.duration_minutes == 25
    active = await mediator.send(GetServicesList(is_active=True), ctx)
    assert active.data.items == []


async def test_list_filters_by_price(mediator, ctx):
    await mediator.send(CreateService(name="Cheap", price=Decimal("10"), duration_minutes=15), ctx)
    await mediator.send(CreateService(name="Dear", price=Decimal("100"), duration_minutes=15), ctx)

    result = await mediator.send(GetServicesList(max_price=Decimal("50")), ctx)

    assert [s.name for s in result.data.items] == ["Cheap"]


async def test_delete_detaches_service_from_employees(mediator, ctx, booking, session_maker):
    result = await mediator.send(DeleteService(id=booking.service.id), ctx)

    assert result.succeeded
    async with session_maker() as fresh:
        employee = await EmployeeRepository(fresh).get_by_id(booking.employee.id)
        assert employee.services == []
    listed = await mediator.send(GetServicesList(), ctx)
    assert listed.data.items == []


async def test_service_with_future_booking_cannot_be_deleted(mediator, ctx, booking):
    await mediator.send(
        CreateAppointment(
            customer_id=booking.customer.id,
            employee_id=booking.employee.id,
            service_id=booking.service.id,
            start_time=at(next_weekday(0), 9),
        ),
        ctx,
    )

    result = await mediator.send(DeleteService(id=booking.service.id), ctx)

    assert not result.succeeded
    assert result.errors[0].startswith("Cannot delete service with future appointments.")
    employee = await mediator.send(GetEmployeeDetail(id=booking.employee.id), ctx)
    assert [s.id for s in employee.data.services] == [booking.service.id]


async def test_foreign_service_is_forbidden(mediator, ctx, other_ctx):
    created = (await mediator.send(CreateService(name="Massage", duration_minutes=60), ctx)).data

    with pytest.raises(ForbiddenError):
        await mediator.send(GetServiceDetail(id=created.id), other_ctx)


def _next_request(session, cache, registry, settings):
    """A mediator on its own session, sharing the cache like a later request would."""
    return Mediator(session, cache, registry, default_behaviors(registry, cache, settings), settings)


async def test_service_writes_drop_cached_employee_and_appointment_reads(
    mediator, ctx, booking, session_maker, cache, registry, settings
):
    await mediator.send(
        CreateAppointment(
            customer_id=booking.customer.id,
            employee_id=booking.employee.id,
            service_id=booking.service.id,
            start_time=at(next_weekday(0), 9),
        ),
        ctx,
    )
    # Warm the caches.
    await mediator.send(GetEmployeesList(), ctx)
    await mediator.send(GetEmployeeDetail(id=booking.employee.id), ctx)
    await mediator.send(GetAppointmentsList(), ctx)

    renamed = await mediator.send(
        UpdateService(id=booking.service.id, name="Signature Cut", price=Decimal("30"), duration_minutes=30), ctx
    )
    assert renamed.succeeded

    async with session_maker() as fresh:
        later = _next_request(fresh, cache, registry, settings)
        employees = await later.send(GetEmployeesList(), ctx)
        detail = await later.send(GetEmployeeDetail(id=booking.employee.id), ctx)
        appointments = await later.send(GetAppointmentsList(), ctx)

    assert [s.name for s in employees.data.items[0].services] == ["Signature Cut"]
    assert [s.name for s in detail.data.services] == ["Signature Cut"]
    assert [a.service_name for a in appointments.data.items] == ["Signature Cut"]


async def test_deleted_service_disappears_from_cached_employee_list(
    mediator, ctx, booking, session_maker, cache, registry, settings
):
    cached = await mediator.send(GetEmployeesList(), ctx)
    assert [s.id for s in cached.data.items[0].services] == [booking.service.id]

    assert (await mediator.send(DeleteService(id=booking.service.id), ctx)).succeeded

    async with session_maker() as fresh:
        later = _next_request(fresh, cache, registry, settings)
        employees = await later.send(GetEmployeesList(), ctx)
        detail = await later.send(GetEmployeeDetail(id=booking.employee.id), ctx)

    assert employees.data.items[0].services == []
    assert detail.data.services == []
