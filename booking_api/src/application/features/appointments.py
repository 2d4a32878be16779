"""
Appointment use cases.

Bookings lock the employee row before checking the calendar so two concurrent
bookings for the same employee are serialized by the database. Writes record
which employee and customer calendars they touched; the cache invalidation
behavior then drops exactly those cached listings.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Set
from uuid import UUID

from pydantic import EmailStr, Field, PrivateAttr

from src.application.features.settings import load_booking_settings
from src.application.mediator import RequestHandler
from src.application.requests import (
    Cacheable,
    CacheInvalidating,
    Command,
    PagedQuery,
    Query,
    RequiredText,
    TenantScoped,
    UTCDatetime,
    key_part,
)
from src.application.results import PaginatedList, Result
from src.application.validation import Failure, Rules
from src.db.base import utcnow
from src.db.models.appointment import Appointment, AppointmentStatus
from src.db.models.employee import Employee
from src.repositories.appointments import AppointmentRepository, AppointmentRow
from src.repositories.customers import CustomerRepository
from src.repositories.employees import EmployeeRepository
from src.repositories.services import ServiceRepository
from src.schemas.appointments import AppointmentRead, GuestBookingConfirmation, TimeSlot

logger = logging.getLogger(__name__)

LIST_PATTERN = "appointments_list"
SLOT_NOT_AVAILABLE = "Selected time slot is not available"
SLOT_STEP = timedelta(minutes=30)
DEFAULT_DAY = (time(9, 0), time(17, 0))


def detail_key(appointment_id: Optional[UUID]) -> str:
    return f"appointment_detail_{appointment_id}"


class AppointmentWrite(CacheInvalidating):
    """
    Invalidation for appointment writes.

    Handlers call `touch(appointment)` for every appointment state they read or
    write so the employee and customer listings that show it are dropped.
    """

    _employee_ids: Set[UUID] = PrivateAttr(default_factory=set)
    _customer_ids: Set[UUID] = PrivateAttr(default_factory=set)

    def touch(self, appointment: Appointment) -> None:
        self._employee_ids.add(appointment.employee_id)
        if appointment.customer_id:
            self._customer_ids.add(appointment.customer_id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        parts = [LIST_PATTERN]
        parts += [f"employee_appointments_{e}" for e in sorted(self._employee_ids, key=str)]
        parts += [f"customer_appointments_{c}" for c in sorted(self._customer_ids, key=str)]
        return "|".join(parts)


class CreateAppointment(Command, TenantScoped, AppointmentWrite):
    customer_id: UUID = Field(..., description="Registered customer")
    employee_id: UUID = Field(...)
    service_id: UUID = Field(...)
    start_time: UTCDatetime = Field(..., description="Start (UTC); end follows from the service duration")
    notes: Optional[str] = Field(None, max_length=500)


class CreateGuestAppointment(Command, TenantScoped, AppointmentWrite):
    employee_id: UUID = Field(...)
    service_id: UUID = Field(...)
    start_time: UTCDatetime = Field(...)
    guest_first_name: RequiredText = Field(..., max_length=100, description="Guest first name")
    guest_last_name: RequiredText = Field(..., max_length=100, description="Guest last name")
    guest_email: EmailStr = Field(..., description="Guest email, used for the daily booking limit")
    guest_phone_number: Optional[str] = Field(None, max_length=20)
    customer_message: Optional[str] = Field(None, max_length=1000, description="Message to the business")
    notes: Optional[str] = Field(None, max_length=500)


class _ById(Command, TenantScoped, AppointmentWrite):
    id: Optional[UUID] = Field(None, description="Appointment id (taken from the URL)")

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)


class UpdateAppointment(_ById):
    customer_id: Optional[UUID] = Field(None, description="Reassign to another registered customer")
    employee_id: Optional[UUID] = Field(None)
    service_id: Optional[UUID] = Field(None)
    start_time: Optional[UTCDatetime] = Field(None)
    notes: Optional[str] = Field(None, max_length=500)
    status: Optional[int] = Field(None, ge=0, le=7, description="New status value")


class CancelAppointment(_ById):
    reason: Optional[str] = Field(None, description="Cancellation reason, appended to notes")


class ConfirmAppointment(_ById):
    pass


class RejectAppointment(_ById):
    reason: Optional[str] = Field(None)


class DeleteAppointment(_ById):
    pass


class GetAppointmentDetail(Query, TenantScoped, Cacheable):
    id: UUID

    cache_expiration = timedelta(minutes=10)
    result_type = Result[AppointmentRead]

    @property
    def cache_key(self) -> str:
        return detail_key(self.id)


class GetAppointmentsList(PagedQuery, TenantScoped, Cacheable):
    start_date: Optional[UTCDatetime] = Field(None, description="Start time lower bound (inclusive)")
    end_date: Optional[UTCDatetime] = Field(None, description="Start time upper bound (exclusive)")
    employee_id: Optional[UUID] = Field(None)
    customer_id: Optional[UUID] = Field(None)
    service_id: Optional[UUID] = Field(None)
    status: Optional[int] = Field(None, ge=0, le=7)

    cache_expiration = timedelta(minutes=5)
    result_type = Result[PaginatedList[AppointmentRead]]

    @property
    def cache_key(self) -> str:
        return (
            f"appointments_list_p{self.page_number}_s{self.page_size}"
            f"_sd{key_part(self.start_date)}_ed{key_part(self.end_date)}"
            f"_eid{key_part(self.employee_id)}_cid{key_part(self.customer_id)}"
            f"_sid{key_part(self.service_id)}_st{key_part(self.status)}"
            f"_sb{key_part(self.sort_by)}_sa{key_part(self.sort_ascending)}"
        )


class GetEmployeeAppointments(Query, TenantScoped, Cacheable):
    employee_id: UUID
    start_date: date = Field(..., description="First day (inclusive)")
    end_date: date = Field(..., description="Last day (inclusive)")
    status: Optional[int] = Field(None, ge=0, le=7)

    cache_expiration = timedelta(minutes=5)
    result_type = Result[List[AppointmentRead]]

    @property
    def cache_key(self) -> str:
        return (
            f"employee_appointments_{self.employee_id}_sd{key_part(self.start_date)}"
            f"_ed{key_part(self.end_date)}_st{key_part(self.status)}"
        )


class GetCustomerAppointments(Query, TenantScoped, Cacheable):
    customer_id: UUID
    future_only: bool = Field(False)
    past_only: bool = Field(False)
    sort_ascending: bool = Field(False)

    cache_expiration = timedelta(minutes=5)
    result_type = Result[List[AppointmentRead]]

    @property
    def cache_key(self) -> str:
        return (
            f"customer_appointments_{self.customer_id}_f{key_part(self.future_only)}"
            f"_p{key_part(self.past_only)}_sa{key_part(self.sort_ascending)}"
        )


class GetAvailableTimeSlots(Query, TenantScoped):
    employee_id: UUID
    service_id: UUID
    day: date = Field(..., description="Day to list slots for (UTC)")


_S = AppointmentStatus
_TRANSITIONS = {
    _S.PENDING: {_S.SCHEDULED, _S.CONFIRMED, _S.CANCELED, _S.REJECTED, _S.NO_SHOW},
    _S.SCHEDULED: {_S.CONFIRMED, _S.IN_PROGRESS, _S.CANCELED, _S.NO_SHOW},
    _S.CONFIRMED: {_S.IN_PROGRESS, _S.CANCELED, _S.NO_SHOW},
    _S.IN_PROGRESS: {_S.COMPLETED, _S.NO_SHOW},
}


def _can_move(current: AppointmentStatus, target: int) -> bool:
    return target == current.value or AppointmentStatus(target) in _TRANSITIONS.get(current, set())


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _in_future(rules: Rules, start_time: Optional[datetime]) -> Rules:
    return rules.check(start_time is None or start_time > utcnow(), "start_time", "Appointment must be in the future")


def validate_create(request: CreateAppointment) -> List[Failure]:
    return _in_future(Rules(), request.start_time).failures


def validate_guest(request: CreateGuestAppointment) -> List[Failure]:
    return _in_future(Rules(), request.start_time).failures


def validate_has_id(request: _ById) -> List[Failure]:
    return Rules().required("id", request.id, "Appointment id is required.").failures


def validate_list(request: GetAppointmentsList) -> List[Failure]:
    rules = Rules()
    if request.start_date and request.end_date:
        rules.check(request.start_date <= request.end_date, "end_date", "End date must not be before start date.")
    return rules.failures


def validate_employee_range(request: GetEmployeeAppointments) -> List[Failure]:
    return (
        Rules()
        .check(request.start_date <= request.end_date, "end_date", "End date must not be before start date.")
        .failures
    )


def validate_customer_flags(request: GetCustomerAppointments) -> List[Failure]:
    return (
        Rules()
        .check(
            not (request.future_only and request.past_only),
            "future_only",
            "future_only and past_only cannot both be set.",
        )
        .failures
    )


class _AppointmentHandler(RequestHandler):
    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.appointments = AppointmentRepository(session)

    async def _load_row(self, request: _ById) -> AppointmentRow:
        row = self.ensure_found(await self.appointments.get_row(request.id), "Appointment", request.id)
        self.ensure_tenant(row.appointment, request.tenant_id)
        request.touch(row.appointment)
        return row

    async def _lock_employee(self, employee_id: UUID, tenant_id: UUID) -> Optional[Employee]:
        employee = await EmployeeRepository(self.session).get_by_id(employee_id, for_update=True)
        if employee is None or employee.tenant_id != tenant_id:
            return None
        return employee


class CreateAppointmentHandler(_AppointmentHandler):
    async def handle(self, request: CreateAppointment) -> Result[AppointmentRead]:
        service = await ServiceRepository(self.session).get_by_id(request.service_id)
        if service is None or service.tenant_id != request.tenant_id:
            return Result[AppointmentRead].failure("Service not found")
        employee = await self._lock_employee(request.employee_id, request.tenant_id)
        if employee is None:
            return Result[AppointmentRead].failure("Employee not found")
        customer = await CustomerRepository(self.session).get_by_id(request.customer_id)
        if customer is None or customer.tenant_id != request.tenant_id:
            return Result[AppointmentRead].failure("Customer not found")

        end_time = request.start_time + timedelta(minutes=service.duration_minutes)
        if not await self.appointments.is_time_slot_available(
            request.tenant_id, employee.id, request.start_time, end_time
        ):
            return Result[AppointmentRead].failure(SLOT_NOT_AVAILABLE)

        appointment = Appointment(
            tenant_id=request.tenant_id,
            customer_id=customer.id,
            employee_id=employee.id,
            service_id=service.id,
            start_time=request.start_time,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED.value,
            notes=request.notes,
            is_guest=False,
        )
        await self.appointments.add(appointment)
        await self.appointments.commit()
        request.touch(appointment)

        row = AppointmentRow(appointment, customer.full_name, employee.full_name, service.name)
        return Result[AppointmentRead].success(
            AppointmentRead.from_row(row), message="Appointment created successfully"
        )


class CreateGuestAppointmentHandler(_AppointmentHandler):
    async def handle(self, request: CreateGuestAppointment) -> Result[GuestBookingConfirmation]:
        booking = await load_booking_settings(self.session, request.tenant_id)
        if not booking.allow_online_booking:
            return Result[GuestBookingConfirmation].failure("Online booking is not available for this business.")

        service = await ServiceRepository(self.session).get_by_id(request.service_id)
        if service is None or service.tenant_id != request.tenant_id or not service.is_active:
            return Result[GuestBookingConfirmation].failure("Service not found")
        employee = await self._lock_employee(request.employee_id, request.tenant_id)
        if employee is None or not employee.is_active:
            return Result[GuestBookingConfirmation].failure("Employee not found")

        end_time = request.start_time + timedelta(minutes=service.duration_minutes)
        if not await self.appointments.is_time_slot_available(
            request.tenant_id, employee.id, request.start_time, end_time
        ):
            return Result[GuestBookingConfirmation].failure(SLOT_NOT_AVAILABLE)

        day_start, day_end = _day_bounds(request.start_time.date())
        booked = await self.appointments.count_guest_bookings(
            request.tenant_id, request.guest_email, day_start, day_end
        )
        if booked >= self.settings.GUEST_BOOKINGS_PER_DAY:
            logger.warning("Guest booking limit reached for %s on %s", request.guest_email, day_start.date())
            return Result[GuestBookingConfirmation].failure(
                "Too many booking requests for this email today. Please try again tomorrow."
            )

        status = AppointmentStatus.SCHEDULED if booking.auto_confirm_bookings else AppointmentStatus.PENDING
        appointment = Appointment(
            tenant_id=request.tenant_id,
            customer_id=None,
            employee_id=employee.id,
            service_id=service.id,
            start_time=request.start_time,
            end_time=end_time,
            status=status.value,
            notes=request.notes,
            is_guest=True,
            guest_first_name=request.guest_first_name.strip(),
            guest_last_name=request.guest_last_name.strip(),
            guest_email=request.guest_email.strip(),
            guest_phone_number=request.guest_phone_number,
            customer_message=request.customer_message,
        )
        await self.appointments.add(appointment)
        await self.appointments.commit()
        request.touch(appointment)
        logger.info("Guest appointment %s created for %s", appointment.id, appointment.guest_email)

        confirmation = GuestBookingConfirmation(
            appointment_id=appointment.id,
            confirmation_code=appointment.id.hex[:8].upper(),
            status=appointment.status,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
        )
        return Result[GuestBookingConfirmation].success(
            confirmation, message="Your booking request has been received."
        )


class UpdateAppointmentHandler(_AppointmentHandler):
    async def handle(self, request: UpdateAppointment) -> Result[AppointmentRead]:
        row = await self._load_row(request)
        appointment = row.appointment
        if request.status is not None and not _can_move(appointment.current_status, request.status):
            return Result[AppointmentRead].failure(
                f"Cannot change status from {appointment.current_status.name} "
                f"to {AppointmentStatus(request.status).name}"
            )

        service_id = request.service_id or appointment.service_id
        service = await ServiceRepository(self.session).get_by_id(service_id)
        if service is None or service.tenant_id != request.tenant_id:
            return Result[AppointmentRead].failure("Service not found")
        employee = await self._lock_employee(request.employee_id or appointment.employee_id, request.tenant_id)
        if employee is None:
            return Result[AppointmentRead].failure("Employee not found")
        customer_name = row.customer_name
        if request.customer_id is not None and request.customer_id != appointment.customer_id:
            customer = await CustomerRepository(self.session).get_by_id(request.customer_id)
            if customer is None or customer.tenant_id != request.tenant_id:
                return Result[AppointmentRead].failure("Customer not found")
            customer_name = customer.full_name
        else:
            customer = None

        start_time = request.start_time or appointment.start_time
        end_time = start_time + timedelta(minutes=service.duration_minutes)
        if not await self.appointments.is_time_slot_available(
            request.tenant_id, employee.id, start_time, end_time, exclude_appointment_id=appointment.id
        ):
            return Result[AppointmentRead].failure(SLOT_NOT_AVAILABLE)

        if customer is not None:
            appointment.customer_id = customer.id
            appointment.is_guest = False
        appointment.employee_id = employee.id
        appointment.service_id = service.id
        appointment.start_time = start_time
        appointment.end_time = end_time
        if request.notes is not None:
            appointment.notes = request.notes
        if request.status is not None:
            appointment.status = request.status
        await self.appointments.commit()
        request.touch(appointment)

        updated = AppointmentRow(appointment, customer_name, employee.full_name, service.name)
        return Result[AppointmentRead].success(
            AppointmentRead.from_row(updated), message="Appointment updated successfully"
        )


class CancelAppointmentHandler(_AppointmentHandler):
    async def handle(self, request: CancelAppointment) -> Result[AppointmentRead]:
        row = await self._load_row(request)
        if not row.appointment.can_be_canceled():
            return Result[AppointmentRead].failure(
                "This appointment cannot be canceled due to its current status"
            )
        row.appointment.cancel(request.reason)
        await self.appointments.commit()
        return Result[AppointmentRead].success(
            AppointmentRead.from_row(row), message="Appointment canceled successfully"
        )


class ConfirmAppointmentHandler(_AppointmentHandler):
    async def handle(self, request: ConfirmAppointment) -> Result[AppointmentRead]:
        row = await self._load_row(request)
        if row.appointment.current_status != AppointmentStatus.SCHEDULED:
            return Result[AppointmentRead].failure("Only scheduled appointments can be confirmed")
        row.appointment.confirm()
        await self.appointments.commit()
        return Result[AppointmentRead].success(
            AppointmentRead.from_row(row), message="Appointment confirmed successfully"
        )


class RejectAppointmentHandler(_AppointmentHandler):
    async def handle(self, request: RejectAppointment) -> Result[AppointmentRead]:
        row = await self._load_row(request)
        if row.appointment.current_status != AppointmentStatus.PENDING:
            return Result[AppointmentRead].failure("Only pending appointments can be rejected")
        row.appointment.reject(request.reason)
        await self.appointments.commit()
        return Result[AppointmentRead].success(
            AppointmentRead.from_row(row), message="Appointment rejected"
        )


class DeleteAppointmentHandler(_AppointmentHandler):
    async def handle(self, request: DeleteAppointment) -> Result[None]:
        row = await self._load_row(request)
        if row.appointment.current_status == AppointmentStatus.COMPLETED:
            return Result[None].failure("Cannot delete a completed appointment")
        row.appointment.soft_delete()
        await self.appointments.commit()
        return Result[None].success(message="Appointment deleted successfully")


class GetAppointmentDetailHandler(_AppointmentHandler):
    async def handle(self, request: GetAppointmentDetail) -> Result[AppointmentRead]:
        row = await self.appointments.get_row(request.id)
        self.ensure_found(row, "Appointment", request.id)
        self.ensure_tenant(row.appointment, request.tenant_id)
        return Result[AppointmentRead].success(AppointmentRead.from_row(row))


class GetAppointmentsListHandler(_AppointmentHandler):
    async def handle(self, request: GetAppointmentsList) -> Result[PaginatedList[AppointmentRead]]:
        rows, total = await self.appointments.list_appointments(
            request.tenant_id,
            start_date=request.start_date,
            end_date=request.end_date,
            employee_id=request.employee_id,
            customer_id=request.customer_id,
            service_id=request.service_id,
            status=request.status,
            sort_by=request.sort_by,
            sort_ascending=request.sort_ascending,
            page=request.page_number,
            page_size=request.page_size,
        )
        page = PaginatedList[AppointmentRead].create(
            [AppointmentRead.from_row(r) for r in rows], total, request.page_number, request.page_size
        )
        return Result[PaginatedList[AppointmentRead]].success(page)


class GetEmployeeAppointmentsHandler(_AppointmentHandler):
    async def handle(self, request: GetEmployeeAppointments) -> Result[List[AppointmentRead]]:
        employee = await EmployeeRepository(self.session).get_by_id(request.employee_id)
        self.load_owned(employee, "Employee", request.employee_id, request.tenant_id)
        start, _ = _day_bounds(request.start_date)
        _, end = _day_bounds(request.end_date)
        rows = await self.appointments.list_for_employee(
            request.tenant_id, request.employee_id, start, end, status=request.status
        )
        return Result[List[AppointmentRead]].success([AppointmentRead.from_row(r) for r in rows])


class GetCustomerAppointmentsHandler(_AppointmentHandler):
    async def handle(self, request: GetCustomerAppointments) -> Result[List[AppointmentRead]]:
        customer = await CustomerRepository(self.session).get_by_id(request.customer_id)
        self.load_owned(customer, "Customer", request.customer_id, request.tenant_id)
        rows = await self.appointments.list_for_customer(
            request.tenant_id,
            request.customer_id,
            future_only=request.future_only,
            past_only=request.past_only,
            sort_ascending=request.sort_ascending,
        )
        return Result[List[AppointmentRead]].success([AppointmentRead.from_row(r) for r in rows])


class GetAvailableTimeSlotsHandler(_AppointmentHandler):
    """
    Candidate slots for one employee, service and day.

    Slots start every 30 minutes inside the employee's working hours for that
    weekday (09:00-17:00 when the employee has no hours configured at all) and
    last as long as the service.
    """

    async def handle(self, request: GetAvailableTimeSlots) -> Result[List[TimeSlot]]:
        service = await ServiceRepository(self.session).get_by_id(request.service_id)
        if service is None or service.tenant_id != request.tenant_id:
            return Result[List[TimeSlot]].failure("Service not found")
        employee = await EmployeeRepository(self.session).get_by_id(request.employee_id)
        if employee is None or employee.tenant_id != request.tenant_id:
            return Result[List[TimeSlot]].failure("Employee not found")

        window = self._working_window(employee, request.day)
        if window is None:
            return Result[List[TimeSlot]].success([])
        open_at, close_at = window
        busy = await self.appointments.list_busy_ranges(request.tenant_id, employee.id, open_at, close_at)

        duration = timedelta(minutes=service.duration_minutes)
        now = utcnow()
        slots: List[TimeSlot] = []
        start = open_at
        while start + duration <= close_at:
            end = start + duration
            free = all(not (b_start < end and b_end > start) for b_start, b_end in busy)
            slots.append(TimeSlot(start_time=start, end_time=end, is_available=free and start > now))
            start += SLOT_STEP
        return Result[List[TimeSlot]].success(slots)

    @staticmethod
    def _working_window(employee: Employee, day: date) -> Optional[tuple[datetime, datetime]]:
        if employee.working_hours:
            hours = employee.hours_for(day.weekday())
            if hours is None:
                return None
            opens, closes = hours.start_time, hours.end_time
        else:
            opens, closes = DEFAULT_DAY
        return (
            datetime.combine(day, opens, tzinfo=timezone.utc),
            datetime.combine(day, closes, tzinfo=timezone.utc),
        )


HANDLERS = {
    CreateAppointment: CreateAppointmentHandler,
    CreateGuestAppointment: CreateGuestAppointmentHandler,
    UpdateAppointment: UpdateAppointmentHandler,
    CancelAppointment: CancelAppointmentHandler,
    ConfirmAppointment: ConfirmAppointmentHandler,
    RejectAppointment: RejectAppointmentHandler,
    DeleteAppointment: DeleteAppointmentHandler,
    GetAppointmentDetail: GetAppointmentDetailHandler,
    GetAppointmentsList: GetAppointmentsListHandler,
    GetEmployeeAppointments: GetEmployeeAppointmentsHandler,
    GetCustomerAppointments: GetCustomerAppointmentsHandler,
    GetAvailableTimeSlots: GetAvailableTimeSlotsHandler,
}

VALIDATORS = {
    CreateAppointment: [validate_create],
    CreateGuestAppointment: [validate_guest],
    UpdateAppointment: [validate_has_id],
    CancelAppointment: [validate_has_id],
    ConfirmAppointment: [validate_has_id],
    RejectAppointment: [validate_has_id],
    DeleteAppointment: [validate_has_id],
    GetAppointmentsList: [validate_list],
    GetEmployeeAppointments: [validate_employee_range],
    GetCustomerAppointments: [validate_customer_flags],
}
