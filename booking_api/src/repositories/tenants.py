from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select

from src.db.models.tenant import Tenant
from .base import BaseRepository


class TenantRepository(BaseRepository):
    """Repository for businesses (tenants). Tenants are not tenant-scoped themselves."""

    async def get_by_id(self, tenant_id: UUID) -> Optional[Tenant]:
        return await self.get(Tenant, tenant_id)

    async def get_by_subdomain(self, subdomain: str) -> Optional[Tenant]:
        stmt = select(Tenant).where(func.lower(Tenant.subdomain) == subdomain.lower())
        return await self.scalar_one_or_none(stmt)

    async def is_subdomain_unique(self, subdomain: str, exclude_id: Optional[UUID] = None) -> bool:
        # Deleted tenants still hold their subdomain (unique index).
        stmt = (
            select(func.count(Tenant.id))
            .where(func.lower(Tenant.subdomain) == subdomain.lower())
            .execution_options(include_deleted=True)
        )
        if exclude_id is not None:
            stmt = stmt.where(Tenant.id != exclude_id)
        result = await self.execute(stmt)
        return int(result.scalar_one()) == 0

    async def list_tenants(
        self,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        sort_by: Optional[str] = None,
        sort_ascending: bool = True,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Tenant], int]:
        stmt = select(Tenant)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(Tenant.name.ilike(like), Tenant.subdomain.ilike(like)))
        if is_active is not None:
            stmt = stmt.where(Tenant.is_active == is_active)
        stmt = self.apply_sort(
            stmt,
            sort_by,
            sort_ascending,
            {
                "name": Tenant.name,
                "subdomain": Tenant.subdomain,
                "createdat": Tenant.created_at,
            },
            default="name",
            tiebreakers=(Tenant.id,),
        )
        return await self.paginate(stmt, page, page_size)
