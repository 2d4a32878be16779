import uuid
from datetime import time

import pytest

from src.application.features.appointments import CreateAppointment
from src.application.features.employees import (
    CreateEmployee,
    DeleteEmployee,
    GetEmployeeDetail,
    GetEmployeesByService,
    GetEmployeesList,
    UpdateEmployee,
)
from src.application.features.services import CreateService
from src.core.errors import ForbiddenError, ValidationError
from src.schemas.employees import WorkingHoursItem

from conftest import at, next_weekday


def _hours(*days, start=time(9), end=time(17)):
    return [WorkingHoursItem(day_of_week=d, start_time=start, end_time=end) for d in days]


async def test_create_employee_with_services_and_hours(mediator, ctx, booking):
    employee = booking.employee

    assert employee.full_name == "Sam Taylor"
    assert [s.name for s in employee.services] == ["Haircut"]
    assert [wh.day_of_week for wh in employee.working_hours] == [0, 1, 2, 3, 4]


async def test_weekday_may_appear_once(mediator, ctx):
    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(CreateEmployee(first_name="A", last_name="B", working_hours=_hours(1, 1)), ctx)

    assert "Each weekday may appear only once." in exc_info.value.failures["working_hours"]


async def test_hours_must_be_ordered(mediator, ctx):
    with pytest.raises(ValidationError):
        await mediator.send(
            CreateEmployee(first_name="A", last_name="B", working_hours=_hours(2, start=time(18), end=time(9))), ctx
        )


async def test_unknown_service_is_refused(mediator, ctx):
    result = await mediator.send(CreateEmployee(first_name="A", last_name="B", service_ids=[uuid.uuid4()]), ctx)

    assert result.errors == ["One or more services were not found"]


async def test_another_tenants_service_cannot_be_assigned(mediator, ctx, other_ctx):
    foreign = (await mediator.send(CreateService(name="Foreign", duration_minutes=30), other_ctx)).data

    result = await mediator.send(CreateEmployee(first_name="A", last_name="B", service_ids=[foreign.id]), ctx)

    assert not result.succeeded


async def test_update_replaces_hours_and_services(mediator, ctx, booking):
    beard = (await mediator.send(CreateService(name="Beard", duration_minutes=15), ctx)).data

    result = await mediator.send(
        UpdateEmployee(
            id=booking.employee.id,
            first_name="Sam",
            last_name="Taylor",
            email="sam@example.com",
            service_ids=[beard.id],
            working_hours=_hours(5, start=time(10), end=time(14)),
        ),
        ctx,
    )

    assert result.succeeded
    assert [s.name for s in result.data.services] == ["Beard"]
    assert [(wh.day_of_week, wh.start_time) for wh in result.data.working_hours] == [(5, time(10))]
    detail = await mediator.send(GetEmployeeDetail(id=booking.employee.id), ctx)
    assert detail.data.working_hours[0].end_time == time(14)


async def test_email_is_unique_per_tenant(mediator, ctx, booking):
    result = await mediator.send(CreateEmployee(first_name="Other", last_name="Sam", email="sam@example.com"), ctx)

    assert result.errors == ["Email is already in use."]


async def test_employees_by_service(mediator, ctx, booking):
    await mediator.send(CreateEmployee(first_name="Idle", last_name="Worker"), ctx)
    await mediator.send(
        CreateEmployee(first_name="Away", last_name="Worker", is_active=False, service_ids=[booking.service.id]),
        ctx,
    )

    result = await mediator.send(GetEmployeesByService(service_id=booking.service.id), ctx)
    filtered = await mediator.send(GetEmployeesList(service_id=booking.service.id), ctx)

    assert [e.id for e in result.data] == [booking.employee.id]
    assert {e.first_name for e in filtered.data.items} == {"Sam", "Away"}


async def test_new_employee_shows_up_in_cached_lists(mediator, ctx, booking):
    before = await mediator.send(GetEmployeesByService(service_id=booking.service.id), ctx)
    await mediator.send(
        CreateEmployee(first_name="Alex", last_name="Able", service_ids=[booking.service.id]), ctx
    )

    after = await mediator.send(GetEmployeesByService(service_id=booking.service.id), ctx)

    assert len(before.data) == 1
    assert len(after.data) == 2


async def test_employee_with_future_booking_cannot_be_deleted(mediator, ctx, booking):
    await mediator.send(
        CreateAppointment(
            customer_id=booking.customer.id,
            employee_id=booking.employee.id,
            service_id=booking.service.id,
            start_time=at(next_weekday(0), 9),
        ),
        ctx,
    )

    result = await mediator.send(DeleteEmployee(id=booking.employee.id), ctx)

    assert not result.succeeded


async def test_delete_and_foreign_access(mediator, ctx, other_ctx):
    created = (await mediator.send(CreateEmployee(first_name="Temp", last_name="Hire"), ctx)).data

    with pytest.raises(ForbiddenError):
        await mediator.send(DeleteEmployee(id=created.id), other_ctx)
    deleted = await mediator.send(DeleteEmployee(id=created.id), ctx)
    listed = await mediator.send(GetEmployeesList(), ctx)

    assert deleted.succeeded
    assert listed.data.items == []
