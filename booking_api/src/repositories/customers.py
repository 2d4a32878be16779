from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select

from src.db.models.customer import Customer
from .base import BaseRepository


class CustomerRepository(BaseRepository):
    """Repository for customers of a business."""

    async def get_by_id(self, customer_id: UUID) -> Optional[Customer]:
        return await self.get(Customer, customer_id)

    async def get_by_user_id(self, tenant_id: UUID, user_id: UUID) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.tenant_id == tenant_id, Customer.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def is_email_unique(
        self, tenant_id: UUID, email: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        stmt = select(func.count(Customer.id)).where(
            Customer.tenant_id == tenant_id,
            func.lower(Customer.email) == email.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Customer.id != exclude_id)
        result = await self.execute(stmt)
        return int(result.scalar_one()) == 0

    async def list_customers(
        self,
        tenant_id: UUID,
        *,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_ascending: bool = True,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Customer], int]:
        stmt = select(Customer).where(Customer.tenant_id == tenant_id)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Customer.first_name.ilike(like),
                    Customer.last_name.ilike(like),
                    Customer.email.ilike(like),
                    Customer.phone_number.ilike(like),
                )
            )
        stmt = self.apply_sort(
            stmt,
            sort_by,
            sort_ascending,
            {
                "firstname": Customer.first_name,
                "lastname": Customer.last_name,
                "email": Customer.email,
                "createdat": Customer.created_at,
            },
            default="lastname",
            tiebreakers=(Customer.id,),
        )
        return await self.paginate(stmt, page, page_size)
