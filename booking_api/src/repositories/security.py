from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select

from src.db.models.security import User
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Repository for user identities and their refresh tokens."""

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.get(User, user_id)

    async def get_user_by_refresh_token(self, token: str) -> Optional[User]:
        stmt = select(User).where(User.refresh_token == token)
        return await self.scalar_one_or_none(stmt)

    async def list_users(
        self,
        tenant_id: UUID,
        *,
        search: Optional[str] = None,
        role: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[User], int]:
        stmt = select(User).where(User.tenant_id == tenant_id)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(
                or_(User.email.ilike(like), User.first_name.ilike(like), User.last_name.ilike(like))
            )
        if role:
            stmt = stmt.where(User.role == role)
        stmt = stmt.order_by(User.created_at.desc(), User.id)
        return await self.paginate(stmt, page, page_size)
