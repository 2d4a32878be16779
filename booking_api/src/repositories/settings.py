from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.setting import Setting
from .base import BaseRepository


class SettingsRepository(BaseRepository):
    """Repository for tenant settings (key/value rows grouped by category)."""

    async def get_by_key(self, tenant_id: UUID, key: str) -> Optional[Setting]:
        stmt = select(Setting).where(Setting.tenant_id == tenant_id, Setting.key == key)
        return await self.scalar_one_or_none(stmt)

    async def list_settings(
        self,
        tenant_id: UUID,
        *,
        category: Optional[str] = None,
        is_active: Optional[bool] = None,
        include_system: bool = True,
    ) -> List[Setting]:
        stmt = select(Setting).where(Setting.tenant_id == tenant_id)
        if category:
            stmt = stmt.where(Setting.category == category)
        if is_active is not None:
            stmt = stmt.where(Setting.is_active == is_active)
        if not include_system:
            stmt = stmt.where(Setting.is_system_setting == False)  # noqa: E712
        stmt = stmt.order_by(Setting.category, Setting.display_order, Setting.key)
        result = await self.scalars(stmt)
        return list(result)

    async def get_settings_dictionary(self, tenant_id: UUID, category: str) -> Dict[str, str]:
        """Active settings of one category as {key: value}."""
        rows = await self.list_settings(tenant_id, category=category, is_active=True)
        return {s.key: s.value for s in rows}
