from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

from sqlalchemy import Executable, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Note:
      Repositories do not commit on every call. Handlers stage changes through
      them and commit once per command (unit of work).
      List queries take the tenant id explicitly; lookups by primary key do not,
      so callers can tell "missing" apart from "belongs to another tenant".
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def flush(self) -> None:
        """Flush pending changes so generated values are available."""
        await self.session.flush()

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)

    async def get(self, model: Type[T], entity_id: UUID, *, for_update: bool = False) -> Optional[T]:
        """Load one entity by primary key (soft-deleted rows excluded)."""
        stmt = select(model).where(model.id == entity_id)  # type: ignore[attr-defined]
        if for_update:
            stmt = stmt.with_for_update()
        return await self.scalar_one_or_none(stmt)

    async def paginate(self, stmt: Select, page: int, page_size: int) -> Tuple[list, int]:
        """Return one page of `stmt` results plus the total row count."""
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = int((await self.execute(count_stmt)).scalar_one())
        page = max(page, 1)
        result = await self.scalars(stmt.offset((page - 1) * page_size).limit(page_size))
        return list(result), total

    @staticmethod
    def apply_sort(
        stmt: Select,
        sort_by: Optional[str],
        ascending: bool,
        columns: Mapping[str, Any],
        default: str,
        tiebreakers: Sequence[Any] = (),
    ) -> Select:
        """Order `stmt` by a whitelisted column name (case-insensitive)."""
        column = columns.get((sort_by or "").lower(), columns[default])
        return stmt.order_by(column.asc() if ascending else column.desc(), *tiebreakers)
