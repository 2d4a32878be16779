"""
Data retention: hard-delete soft-deleted rows once they are older than the
retention period, and report how much deleted data is being held.

Usage:
  python -m src.services.data_retention stats
  python -m src.services.data_retention purge [--days 365] [--tenant <uuid>]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, or_, select

from src.core.logging import configure_logging
from src.db.base import utcnow
from src.db.models.appointment import Appointment
from src.db.models.customer import Customer
from src.db.models.employee import Employee, employee_services
from src.db.models.service import Service
from src.db.session import acting_as, get_session_maker
from src.schemas.admin import PurgeSummary, RetentionStats
from src.services.base import BaseService

logger = logging.getLogger(__name__)

# Rough on-disk size of one deleted row, used for the storage estimate.
ROW_SIZE_KB = 2

_PURGEABLE = (Customer, Employee, Service, Appointment)


class DataRetentionService(BaseService):
    """
    Purges soft-deleted customers, employees, services and appointments.

    Appointments of purged customers go with them. Employees and services that
    are still referenced by an appointment are kept so history stays intact.
    """

    def cutoff(self, retention_days: Optional[int] = None) -> datetime:
        days = self.settings.DATA_RETENTION_DAYS if retention_days is None else retention_days
        return utcnow() - timedelta(days=days)

    async def _count(self, model: Any, *criteria: Any) -> int:
        stmt = (
            select(func.count())
            .select_from(model)
            .where(*criteria)
            .execution_options(include_deleted=True)
        )
        return int((await self.session.execute(stmt)).scalar_one())

    async def _expired_ids(self, model: Any, cutoff: datetime, tenant_id: Optional[UUID]) -> List[UUID]:
        stmt = (
            select(model.id)
            .where(model.is_deleted.is_(True), model.deleted_at < cutoff)
            .execution_options(include_deleted=True)
        )
        if tenant_id is not None:
            stmt = stmt.where(model.tenant_id == tenant_id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def _referenced(self, column: Any, ids: Sequence[UUID]) -> set:
        if not ids:
            return set()
        stmt = select(column).where(column.in_(ids)).distinct().execution_options(include_deleted=True)
        return set((await self.session.execute(stmt)).scalars().all())

    async def _delete(self, model: Any, ids: Sequence[UUID]) -> int:
        if not ids:
            return 0
        await self.session.execute(delete(model).where(model.id.in_(ids)))
        return len(ids)

    # PUBLIC_INTERFACE
    async def get_stats(self, retention_days: Optional[int] = None) -> RetentionStats:
        """Totals across all tenants, including soft-deleted rows."""
        days = self.settings.DATA_RETENTION_DAYS if retention_days is None else retention_days
        cutoff = self.cutoff(days)
        total = deleted = archivable = 0
        for model in _PURGEABLE:
            total += await self._count(model)
            deleted += await self._count(model, model.is_deleted.is_(True))
            archivable += await self._count(model, model.is_deleted.is_(True), model.deleted_at < cutoff)
        return RetentionStats(
            total_records=total,
            deleted_records=deleted,
            archivable_records=archivable,
            deleted_percentage=round(deleted / total * 100, 2) if total else 0.0,
            estimated_storage_mb=round(deleted * ROW_SIZE_KB / 1024, 3),
            retention_days=days,
            cutoff=cutoff,
        )

    # PUBLIC_INTERFACE
    async def purge(self, retention_days: Optional[int] = None, tenant_id: Optional[UUID] = None) -> PurgeSummary:
        """
        Hard-delete expired soft-deleted rows, globally or for one tenant, and commit.

        Returns:
            PurgeSummary with the number of rows removed per table.
        """
        days = self.settings.DATA_RETENTION_DAYS if retention_days is None else retention_days
        cutoff = self.cutoff(days)
        logger.info("Purging deleted records older than %s (tenant=%s)", cutoff.isoformat(), tenant_id or "all")

        customer_ids = await self._expired_ids(Customer, cutoff, tenant_id)
        appointment_ids = set(await self._expired_ids(Appointment, cutoff, tenant_id))
        if customer_ids:
            stmt = (
                select(Appointment.id)
                .where(Appointment.customer_id.in_(customer_ids))
                .execution_options(include_deleted=True)
            )
            appointment_ids.update((await self.session.execute(stmt)).scalars().all())
        appointments = await self._delete(Appointment, list(appointment_ids))
        customers = await self._delete(Customer, customer_ids)

        employee_ids = await self._expired_ids(Employee, cutoff, tenant_id)
        busy = await self._referenced(Appointment.employee_id, employee_ids)
        employee_ids = [i for i in employee_ids if i not in busy]

        service_ids = await self._expired_ids(Service, cutoff, tenant_id)
        busy = await self._referenced(Appointment.service_id, service_ids)
        service_ids = [i for i in service_ids if i not in busy]

        if employee_ids or service_ids:
            await self.session.execute(
                delete(employee_services).where(
                    or_(
                        employee_services.c.employee_id.in_(employee_ids),
                        employee_services.c.service_id.in_(service_ids),
                    )
                )
            )
        employees = await self._delete(Employee, employee_ids)
        services = await self._delete(Service, service_ids)

        await self.session.commit()
        summary = PurgeSummary(
            tenant_id=tenant_id,
            retention_days=days,
            cutoff=cutoff,
            customers=customers,
            employees=employees,
            services=services,
            appointments=appointments,
        )
        logger.info(
            "Purge completed: %s customers, %s employees, %s services, %s appointments",
            customers,
            employees,
            services,
            appointments,
        )
        return summary


async def _run(args: argparse.Namespace) -> None:
    async with get_session_maker()() as session:
        async with acting_as(session, "retention"):
            svc = DataRetentionService(session)
            if args.command == "stats":
                result = await svc.get_stats(args.days)
            else:
                result = await svc.purge(args.days, args.tenant)
            print(result.model_dump_json(indent=2))


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> None:
    """Command line entry point for retention reports and purges."""
    parser = argparse.ArgumentParser(prog="python -m src.services.data_retention")
    parser.add_argument("command", choices=["stats", "purge"])
    parser.add_argument("--days", type=int, default=None, help="Retention period in days")
    parser.add_argument("--tenant", type=UUID, default=None, help="Only purge this tenant")
    args = parser.parse_args(argv)

    configure_logging()
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
