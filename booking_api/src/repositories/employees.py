from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, or_, select

from src.db.models.employee import Employee, employee_services
from .base import BaseRepository


class EmployeeRepository(BaseRepository):
    """Repository for employees, their services and working hours."""

    async def get_by_id(self, employee_id: UUID, *, for_update: bool = False) -> Optional[Employee]:
        return await self.get(Employee, employee_id, for_update=for_update)

    async def is_email_unique(
        self, tenant_id: UUID, email: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        stmt = select(func.count(Employee.id)).where(
            Employee.tenant_id == tenant_id,
            func.lower(Employee.email) == email.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Employee.id != exclude_id)
        result = await self.execute(stmt)
        return int(result.scalar_one()) == 0

    async def list_employees(
        self,
        tenant_id: UUID,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        service_id: Optional[UUID] = None,
        sort_by: Optional[str] = None,
        sort_ascending: bool = True,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Employee], int]:
        stmt = select(Employee).where(Employee.tenant_id == tenant_id)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Employee.first_name.ilike(like),
                    Employee.last_name.ilike(like),
                    Employee.email.ilike(like),
                    Employee.title.ilike(like),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Employee.is_active == is_active)
        if service_id is not None:
            stmt = stmt.where(
                Employee.id.in_(
                    select(employee_services.c.employee_id).where(
                        employee_services.c.service_id == service_id
                    )
                )
            )
        stmt = self.apply_sort(
            stmt,
            sort_by,
            sort_ascending,
            {
                "firstname": Employee.first_name,
                "lastname": Employee.last_name,
                "email": Employee.email,
                "title": Employee.title,
                "createdat": Employee.created_at,
            },
            default="lastname",
            tiebreakers=(Employee.id,),
        )
        return await self.paginate(stmt, page, page_size)

    async def list_by_service(self, tenant_id: UUID, service_id: UUID) -> List[Employee]:
        stmt = (
            select(Employee)
            .join(employee_services, employee_services.c.employee_id == Employee.id)
            .where(
                Employee.tenant_id == tenant_id,
                Employee.is_active == True,  # noqa: E712
                employee_services.c.service_id == service_id,
            )
            .order_by(Employee.last_name, Employee.first_name)
        )
        result = await self.scalars(stmt)
        return list(result)

    async def detach_service(self, service_id: UUID) -> None:
        """Remove a service from every employee that offers it."""
        stmt = delete(employee_services).where(employee_services.c.service_id == service_id)
        await self.execute(stmt)
