from __future__ import annotations

from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple
from uuid import UUID

from sqlalchemy import Select, func, select

from src.db.base import utcnow
from src.db.models.appointment import Appointment, AppointmentStatus, RELEASED_STATUSES
from src.db.models.customer import Customer
from src.db.models.employee import Employee
from src.db.models.service import Service
from .base import BaseRepository

_RELEASED = [s.value for s in RELEASED_STATUSES]


class AppointmentRow(NamedTuple):
    """Appointment with the display names of the rows it references."""
    appointment: Appointment
    customer_name: Optional[str]
    employee_name: Optional[str]
    service_name: Optional[str]


class AppointmentRepository(BaseRepository):
    """
    Repository for appointments.

    Listing queries join customers, employees and services including
    soft-deleted ones, so historical appointments keep their display names.
    """

    async def get_by_id(self, appointment_id: UUID) -> Optional[Appointment]:
        return await self.get(Appointment, appointment_id)

    async def get_row(self, appointment_id: UUID) -> Optional[AppointmentRow]:
        stmt = self._enriched().where(Appointment.id == appointment_id)
        row = (await self.execute(stmt)).first()
        return AppointmentRow(*row) if row else None

    async def is_time_slot_available(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> bool:
        """
        True when the employee has no live appointment overlapping [start_time, end_time).

        Two ranges overlap iff existing.start < new.end and existing.end > new.start,
        so back-to-back bookings are allowed.
        """
        stmt = select(func.count(Appointment.id)).where(
            Appointment.tenant_id == tenant_id,
            Appointment.employee_id == employee_id,
            Appointment.status.not_in(_RELEASED),
            Appointment.start_time < end_time,
            Appointment.end_time > start_time,
        )
        if exclude_appointment_id is not None:
            stmt = stmt.where(Appointment.id != exclude_appointment_id)
        result = await self.execute(stmt)
        return int(result.scalar_one()) == 0

    async def list_busy_ranges(
        self, tenant_id: UUID, employee_id: UUID, start: datetime, end: datetime
    ) -> List[Tuple[datetime, datetime]]:
        stmt = (
            select(Appointment.start_time, Appointment.end_time)
            .where(
                Appointment.tenant_id == tenant_id,
                Appointment.employee_id == employee_id,
                Appointment.status.not_in(_RELEASED),
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
            .order_by(Appointment.start_time)
        )
        result = await self.execute(stmt)
        return [(r.start_time, r.end_time) for r in result]

    async def has_future_appointments(
        self,
        *,
        employee_id: Optional[UUID] = None,
        service_id: Optional[UUID] = None,
        customer_id: Optional[UUID] = None,
    ) -> bool:
        stmt = select(func.count(Appointment.id)).where(
            Appointment.start_time > utcnow(),
            Appointment.status.not_in(_RELEASED + [AppointmentStatus.COMPLETED.value]),
        )
        if employee_id is not None:
            stmt = stmt.where(Appointment.employee_id == employee_id)
        if service_id is not None:
            stmt = stmt.where(Appointment.service_id == service_id)
        if customer_id is not None:
            stmt = stmt.where(Appointment.customer_id == customer_id)
        result = await self.execute(stmt)
        return int(result.scalar_one()) > 0

    async def count_guest_bookings(
        self, tenant_id: UUID, email: str, day_start: datetime, day_end: datetime
    ) -> int:
        """Guest bookings made with `email` that start in [day_start, day_end)."""
        stmt = select(func.count(Appointment.id)).where(
            Appointment.tenant_id == tenant_id,
            Appointment.is_guest == True,  # noqa: E712
            func.lower(Appointment.guest_email) == email.lower(),
            Appointment.start_time >= day_start,
            Appointment.start_time < day_end,
        )
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def list_appointments(
        self,
        tenant_id: UUID,
        *,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        employee_id: Optional[UUID] = None,
        customer_id: Optional[UUID] = None,
        service_id: Optional[UUID] = None,
        status: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_ascending: bool = True,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[AppointmentRow], int]:
        conditions = [Appointment.tenant_id == tenant_id]
        if start_date is not None:
            conditions.append(Appointment.start_time >= start_date)
        if end_date is not None:
            conditions.append(Appointment.start_time < end_date)
        if employee_id is not None:
            conditions.append(Appointment.employee_id == employee_id)
        if customer_id is not None:
            conditions.append(Appointment.customer_id == customer_id)
        if service_id is not None:
            conditions.append(Appointment.service_id == service_id)
        if status is not None:
            conditions.append(Appointment.status == status)

        count_stmt = select(func.count(Appointment.id)).where(*conditions)
        total = int((await self.execute(count_stmt)).scalar_one())

        stmt = self.apply_sort(
            self._enriched().where(*conditions),
            sort_by,
            sort_ascending,
            {
                "starttime": Appointment.start_time,
                "status": Appointment.status,
                "createdat": Appointment.created_at,
            },
            default="starttime",
            tiebreakers=(Appointment.id,),
        )
        page = max(page, 1)
        rows = await self.execute(stmt.offset((page - 1) * page_size).limit(page_size))
        return [AppointmentRow(*r) for r in rows], total

    async def list_for_employee(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        start_date: datetime,
        end_date: datetime,
        status: Optional[int] = None,
    ) -> List[AppointmentRow]:
        stmt = self._enriched().where(
            Appointment.tenant_id == tenant_id,
            Appointment.employee_id == employee_id,
            Appointment.start_time >= start_date,
            Appointment.start_time < end_date,
        )
        if status is not None:
            stmt = stmt.where(Appointment.status == status)
        rows = await self.execute(stmt.order_by(Appointment.start_time, Appointment.id))
        return [AppointmentRow(*r) for r in rows]

    async def list_for_customer(
        self,
        tenant_id: UUID,
        customer_id: UUID,
        *,
        future_only: bool = False,
        past_only: bool = False,
        sort_ascending: bool = False,
    ) -> List[AppointmentRow]:
        now = utcnow()
        stmt = self._enriched().where(
            Appointment.tenant_id == tenant_id,
            Appointment.customer_id == customer_id,
        )
        if future_only:
            stmt = stmt.where(Appointment.start_time >= now)
        if past_only:
            stmt = stmt.where(Appointment.start_time < now)
        order = Appointment.start_time.asc() if sort_ascending else Appointment.start_time.desc()
        rows = await self.execute(stmt.order_by(order, Appointment.id))
        return [AppointmentRow(*r) for r in rows]

    @staticmethod
    def _enriched() -> Select:
        customer_name = (Customer.first_name + " " + Customer.last_name).label("customer_name")
        employee_name = (Employee.first_name + " " + Employee.last_name).label("employee_name")
        return (
            select(Appointment, customer_name, employee_name, Service.name.label("service_name"))
            .outerjoin(Customer, Customer.id == Appointment.customer_id)
            .outerjoin(Employee, Employee.id == Appointment.employee_id)
            .outerjoin(Service, Service.id == Appointment.service_id)
            .where(Appointment.is_deleted == False)  # noqa: E712
            .execution_options(include_deleted=True)
        )
