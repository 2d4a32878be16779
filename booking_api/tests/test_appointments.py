import uuid
from datetime import datetime, timedelta, timezone

import pytest

from src.application.features.appointments import (
    CancelAppointment,
    ConfirmAppointment,
    CreateAppointment,
    CreateGuestAppointment,
    DeleteAppointment,
    GetAppointmentDetail,
    GetAppointmentsList,
    GetAvailableTimeSlots,
    GetCustomerAppointments,
    GetEmployeeAppointments,
    RejectAppointment,
    UpdateAppointment,
)
from src.application.features.customers import CreateCustomer
from src.application.features.employees import CreateEmployee
from src.core.errors import ForbiddenError, NotFoundError, ValidationError
from src.db.models import AppointmentStatus

from conftest import at, next_weekday


def _book(booking, start, **extra):
    return CreateAppointment(
        customer_id=booking.customer.id,
        employee_id=booking.employee.id,
        service_id=booking.service.id,
        start_time=start,
        **extra,
    )


def _guest(booking, start, email="guest@example.com"):
    return CreateGuestAppointment(
        employee_id=booking.employee.id,
        service_id=booking.service.id,
        start_time=start,
        guest_first_name="Gail",
        guest_last_name="Guest",
        guest_email=email,
    )


async def test_create_appointment_derives_end_time(mediator, ctx, booking):
    monday = next_weekday(0)

    result = await mediator.send(_book(booking, at(monday, 10)), ctx)

    assert result.succeeded
    appt = result.data
    assert appt.end_time - appt.start_time == timedelta(minutes=30)
    assert appt.status == AppointmentStatus.SCHEDULED.value
    assert appt.status_name == "Scheduled"
    assert appt.customer_name == "Jane Doe"
    assert appt.employee_name == "Sam Taylor"
    assert appt.service_name == "Haircut"


async def test_overlapping_booking_is_refused_but_back_to_back_is_allowed(mediator, ctx, booking):
    monday = next_weekday(0)
    await mediator.send(_book(booking, at(monday, 10)), ctx)

    overlapping = await mediator.send(_book(booking, at(monday, 10, 15)), ctx)
    adjacent = await mediator.send(_book(booking, at(monday, 10, 30)), ctx)

    assert not overlapping.succeeded
    assert overlapping.errors == ["Selected time slot is not available"]
    assert adjacent.succeeded


async def test_canceled_appointment_frees_the_slot(mediator, ctx, booking):
    monday = next_weekday(0)
    first = (await mediator.send(_book(booking, at(monday, 11)), ctx)).data
    await mediator.send(CancelAppointment(id=first.id, reason="Sick"), ctx)

    again = await mediator.send(_book(booking, at(monday, 11)), ctx)

    assert again.succeeded


async def test_start_time_must_be_in_the_future(mediator, ctx, booking):
    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(_book(booking, datetime.now(timezone.utc) - timedelta(hours=1)), ctx)

    assert exc_info.value.failures["start_time"] == ["Appointment must be in the future"]


async def test_cancel_appends_reason_to_notes(mediator, ctx, booking):
    created = (await mediator.send(_book(booking, at(next_weekday(1), 9), notes="First visit"), ctx)).data

    result = await mediator.send(CancelAppointment(id=created.id, reason="Running late"), ctx)

    assert result.succeeded
    assert result.data.status == AppointmentStatus.CANCELED.value
    assert result.data.notes.startswith("First visit\nCanceled at ")
    assert result.data.notes.endswith(" - Reason: Running late")


async def test_completed_appointment_cannot_be_canceled(mediator, ctx, booking):
    created = (await mediator.send(_book(booking, at(next_weekday(2), 14)), ctx)).data
    for status in (AppointmentStatus.IN_PROGRESS, AppointmentStatus.COMPLETED):
        moved = await mediator.send(UpdateAppointment(id=created.id, status=status.value), ctx)
        assert moved.succeeded

    result = await mediator.send(CancelAppointment(id=created.id), ctx)

    assert not result.succeeded
    assert result.errors == ["This appointment cannot be canceled due to its current status"]
    deleted = await mediator.send(DeleteAppointment(id=created.id), ctx)
    assert deleted.errors == ["Cannot delete a completed appointment"]


async def test_status_transitions_are_enforced(mediator, ctx, booking):
    created = (await mediator.send(_book(booking, at(next_weekday(3), 9)), ctx)).data

    skipped = await mediator.send(
        UpdateAppointment(id=created.id, status=AppointmentStatus.COMPLETED.value), ctx
    )

    assert not skipped.succeeded
    assert skipped.errors == ["Cannot change status from SCHEDULED to COMPLETED"]

    with pytest.raises(ValidationError):
        await mediator.send(UpdateAppointment.model_construct(id=created.id, status=42), ctx)


async def test_update_moves_the_appointment(mediator, ctx, booking):
    monday = next_weekday(0)
    created = (await mediator.send(_book(booking, at(monday, 9)), ctx)).data
    blocker = (await mediator.send(_book(booking, at(monday, 12)), ctx)).data

    clash = await mediator.send(UpdateAppointment(id=created.id, start_time=at(monday, 12)), ctx)
    moved = await mediator.send(UpdateAppointment(id=created.id, start_time=at(monday, 13)), ctx)
    # Re-saving at its own time does not clash with itself.
    same = await mediator.send(UpdateAppointment(id=blocker.id, notes="Bring photo"), ctx)

    assert clash.errors == ["Selected time slot is not available"]
    assert moved.succeeded
    assert moved.data.start_time == at(monday, 13)
    assert same.succeeded and same.data.notes == "Bring photo"


_S = AppointmentStatus


@pytest.mark.parametrize(
    "path",
    [
        [],
        [_S.CONFIRMED],
        [_S.IN_PROGRESS],
        [_S.CONFIRMED, _S.IN_PROGRESS],
    ],
    ids=["scheduled", "confirmed", "in-progress", "confirmed-then-in-progress"],
)
async def test_no_show_is_reachable_from_every_open_status(mediator, ctx, booking, path):
    created = (await mediator.send(_book(booking, at(next_weekday(1), 10)), ctx)).data
    for status in path:
        assert (await mediator.send(UpdateAppointment(id=created.id, status=status.value), ctx)).succeeded

    result = await mediator.send(UpdateAppointment(id=created.id, status=_S.NO_SHOW.value), ctx)

    assert result.succeeded
    assert result.data.status == _S.NO_SHOW.value


async def test_pending_guest_booking_can_be_marked_no_show(mediator, ctx, booking):
    pending = (await mediator.send(_guest(booking, at(next_weekday(1), 11)), ctx)).data
    assert pending.status == _S.PENDING.value

    result = await mediator.send(UpdateAppointment(id=pending.appointment_id, status=_S.NO_SHOW.value), ctx)

    assert result.succeeded
    assert result.data.status == _S.NO_SHOW.value


async def test_no_show_is_final(mediator, ctx, booking):
    created = (await mediator.send(_book(booking, at(next_weekday(1), 12)), ctx)).data
    await mediator.send(UpdateAppointment(id=created.id, status=_S.NO_SHOW.value), ctx)

    reopened = await mediator.send(UpdateAppointment(id=created.id, status=_S.SCHEDULED.value), ctx)

    assert reopened.errors == ["Cannot change status from NO_SHOW to SCHEDULED"]


async def test_update_reassigns_the_customer(mediator, ctx, other_ctx, booking):
    created = (await mediator.send(_book(booking, at(next_weekday(2), 10)), ctx)).data
    other = (
        await mediator.send(CreateCustomer(first_name="Max", last_name="Mustermann", email="max@example.com"), ctx)
    ).data
    foreign = (
        await mediator.send(CreateCustomer(first_name="Far", last_name="Away", email="far@example.com"), other_ctx)
    ).data
    before = await mediator.send(GetCustomerAppointments(customer_id=booking.customer.id), ctx)

    missing = await mediator.send(UpdateAppointment(id=created.id, customer_id=uuid.uuid4()), ctx)
    cross_tenant = await mediator.send(UpdateAppointment(id=created.id, customer_id=foreign.id), ctx)
    moved = await mediator.send(UpdateAppointment(id=created.id, customer_id=other.id), ctx)

    assert missing.errors == ["Customer not found"]
    assert cross_tenant.errors == ["Customer not found"]
    assert moved.succeeded
    assert moved.data.customer_id == other.id
    assert moved.data.customer_name == "Max Mustermann"
    # Both customers' cached calendars are dropped.
    old_calendar = await mediator.send(GetCustomerAppointments(customer_id=booking.customer.id), ctx)
    new_calendar = await mediator.send(GetCustomerAppointments(customer_id=other.id), ctx)
    assert [a.id for a in before.data] == [created.id]
    assert old_calendar.data == []
    assert [a.id for a in new_calendar.data] == [created.id]


async def test_confirm_only_scheduled(mediator, ctx, booking):
    created = (await mediator.send(_book(booking, at(next_weekday(4), 15)), ctx)).data

    confirmed = await mediator.send(ConfirmAppointment(id=created.id), ctx)
    again = await mediator.send(ConfirmAppointment(id=created.id), ctx)

    assert confirmed.data.status == AppointmentStatus.CONFIRMED.value
    assert again.errors == ["Only scheduled appointments can be confirmed"]


async def test_detail_distinguishes_missing_from_foreign(mediator, ctx, other_ctx, booking):
    created = (await mediator.send(_book(booking, at(next_weekday(0), 16)), ctx)).data

    with pytest.raises(ForbiddenError):
        await mediator.send(GetAppointmentDetail(id=created.id), other_ctx)
    with pytest.raises(NotFoundError):
        await mediator.send(GetAppointmentDetail(id=uuid.uuid4()), ctx)
    with pytest.raises(ForbiddenError):
        await mediator.send(CancelAppointment(id=created.id), other_ctx)


async def test_booking_with_another_tenants_employee_fails(mediator, ctx, other_ctx, booking):
    result = await mediator.send(_book(booking, at(next_weekday(0), 10)), other_ctx)

    assert not result.succeeded
    assert result.errors == ["Service not found"]


async def test_list_reflects_new_bookings(mediator, ctx, booking):
    monday = next_weekday(0)
    empty = await mediator.send(GetAppointmentsList(), ctx)
    await mediator.send(_book(booking, at(monday, 9)), ctx)
    await mediator.send(_book(booking, at(monday, 10)), ctx)

    listed = await mediator.send(GetAppointmentsList(sort_by="starttime", sort_ascending=False), ctx)

    assert empty.data.items == []
    assert [a.start_time for a in listed.data.items] == [at(monday, 10), at(monday, 9)]


async def test_employee_and_customer_calendars(mediator, ctx, booking):
    monday = next_weekday(0)
    tuesday = monday + timedelta(days=1)
    await mediator.send(_book(booking, at(monday, 9)), ctx)
    await mediator.send(_book(booking, at(tuesday, 9)), ctx)

    employee_day = await mediator.send(
        GetEmployeeAppointments(employee_id=booking.employee.id, start_date=monday, end_date=monday), ctx
    )
    customer_all = await mediator.send(GetCustomerAppointments(customer_id=booking.customer.id), ctx)
    customer_past = await mediator.send(
        GetCustomerAppointments(customer_id=booking.customer.id, past_only=True), ctx
    )

    assert [a.start_time for a in employee_day.data] == [at(monday, 9)]
    assert [a.start_time for a in customer_all.data] == [at(tuesday, 9), at(monday, 9)]
    assert customer_past.data == []

    # The cached employee calendar is dropped when that employee gets a new booking.
    await mediator.send(_book(booking, at(monday, 11)), ctx)
    refreshed = await mediator.send(
        GetEmployeeAppointments(employee_id=booking.employee.id, start_date=monday, end_date=monday), ctx
    )
    assert len(refreshed.data) == 2


async def test_available_slots_follow_working_hours(mediator, ctx, booking):
    monday = next_weekday(0)
    await mediator.send(_book(booking, at(monday, 10)), ctx)

    result = await mediator.send(
        GetAvailableTimeSlots(employee_id=booking.employee.id, service_id=booking.service.id, day=monday), ctx
    )

    slots = result.data
    assert len(slots) == 16
    assert slots[0].start_time == at(monday, 9)
    assert slots[-1].end_time == at(monday, 17)
    taken = [s.start_time for s in slots if not s.is_available]
    assert taken == [at(monday, 10)]


async def test_no_slots_on_a_day_off(mediator, ctx, booking):
    sunday = next_weekday(6)

    result = await mediator.send(
        GetAvailableTimeSlots(employee_id=booking.employee.id, service_id=booking.service.id, day=sunday), ctx
    )

    assert result.succeeded
    assert result.data == []


async def test_employee_without_hours_gets_default_day(mediator, ctx, booking):
    casual = (
        await mediator.send(CreateEmployee(first_name="Casey", last_name="Flex", service_ids=[booking.service.id]), ctx)
    ).data

    result = await mediator.send(
        GetAvailableTimeSlots(employee_id=casual.id, service_id=booking.service.id, day=next_weekday(6)), ctx
    )

    assert len(result.data) == 16
    assert all(s.is_available for s in result.data)


async def test_guest_booking_is_pending_until_reviewed(mediator, ctx, booking):
    result = await mediator.send(_guest(booking, at(next_weekday(0), 9)), ctx)

    assert result.succeeded
    confirmation = result.data
    assert confirmation.status == AppointmentStatus.PENDING.value
    assert confirmation.confirmation_code == confirmation.appointment_id.hex[:8].upper()

    rejected = await mediator.send(RejectAppointment(id=confirmation.appointment_id, reason="Fully booked"), ctx)
    assert rejected.data.status == AppointmentStatus.REJECTED.value
    assert rejected.data.customer_name == "Gail Guest"


async def test_guest_bookings_are_limited_per_email_and_day(mediator, ctx, booking):
    monday = next_weekday(0)
    for hour in (9, 10, 11):
        assert (await mediator.send(_guest(booking, at(monday, hour)), ctx)).succeeded

    fourth = await mediator.send(_guest(booking, at(monday, 12), email="GUEST@example.com"), ctx)
    other_email = await mediator.send(_guest(booking, at(monday, 13), email="friend@example.com"), ctx)
    next_day = await mediator.send(_guest(booking, at(monday + timedelta(days=1), 9)), ctx)

    assert fourth.errors == ["Too many booking requests for this email today. Please try again tomorrow."]
    assert other_email.succeeded
    assert next_day.succeeded


async def test_guest_booking_requires_contact_details(mediator, ctx, booking):
    request = _guest(booking, at(next_weekday(0), 9)).model_copy(
        update={"guest_first_name": " ", "guest_email": "nope"}
    )

    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(request, ctx)

    assert set(exc_info.value.failures) == {"guest_first_name", "guest_email"}
