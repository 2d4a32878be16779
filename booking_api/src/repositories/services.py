from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select

from src.db.models.service import Service
from .base import BaseRepository


class ServiceRepository(BaseRepository):
    """Repository for bookable services."""

    async def get_by_id(self, service_id: UUID) -> Optional[Service]:
        return await self.get(Service, service_id)

    async def get_many(self, tenant_id: UUID, service_ids: Iterable[UUID]) -> List[Service]:
        ids = list(service_ids)
        if not ids:
            return []
        stmt = select(Service).where(Service.tenant_id == tenant_id, Service.id.in_(ids))
        result = await self.scalars(stmt)
        return list(result)

    async def is_name_unique(
        self, tenant_id: UUID, name: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        stmt = select(func.count(Service.id)).where(
            Service.tenant_id == tenant_id,
            func.lower(Service.name) == name.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Service.id != exclude_id)
        result = await self.execute(stmt)
        return int(result.scalar_one()) == 0

    async def list_services(
        self,
        tenant_id: UUID,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        max_price: Optional[Decimal] = None,
        sort_by: Optional[str] = None,
        sort_ascending: bool = True,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Service], int]:
        stmt = select(Service).where(Service.tenant_id == tenant_id)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(Service.name.ilike(like), Service.description.ilike(like)))
        if is_active is not None:
            stmt = stmt.where(Service.is_active == is_active)
        if max_price is not None:
            stmt = stmt.where(Service.price <= max_price)
        stmt = self.apply_sort(
            stmt,
            sort_by,
            sort_ascending,
            {
                "name": Service.name,
                "price": Service.price,
                "duration": Service.duration_minutes,
                "createdat": Service.created_at,
            },
            default="name",
            tiebreakers=(Service.id,),
        )
        return await self.paginate(stmt, page, page_size)
