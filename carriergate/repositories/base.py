"""Generic async repository: row lookup, filtered pages, inserts and compare-and-set updates."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carriergate.db.base import Base
from carriergate.domain.mixins import utcnow

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Never commits; the caller's unit of work owns the transaction. Rows are never deleted."""

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, entity_id: Any, *, for_update: bool = False) -> ModelT | None:
        """Fetch one row fresh from the store.

        ``for_update`` takes a row lock on stores that have one. SQLite has
        none; its transactions already hold the write lock from BEGIN.
        """
        q = select(self.model).where(self.model.id == entity_id)
        if for_update:
            q = q.with_for_update()
        result = await self._session.execute(q.execution_options(populate_existing=True))
        return result.scalars().first()

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order: str = "desc",
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """One page of rows plus the total matching count. ``None`` filter values are ignored."""
        criteria = [
            getattr(self.model, name) == value
            for name, value in (filters or {}).items()
            if value is not None
        ]
        base = select(self.model).where(*criteria)

        total = (
            await self._session.execute(select(func.count()).select_from(base.subquery()))
        ).scalar_one()

        sort_col = getattr(self.model, order_by)
        page = (
            base.order_by(sort_col.asc() if order == "asc" else sort_col.desc(), self.model.id)
            .offset(offset)
            .limit(limit)
        )
        items = (await self._session.execute(page)).scalars().all()
        return list(items), total

    async def create(self, **values: Any) -> ModelT:
        instance = self.model(**values)
        self._session.add(instance)
        # Flush now so a unique-key race surfaces as IntegrityError inside the caller's retry
        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    async def update_where(self, entity_id: Any, conditions: list, **values: Any) -> bool:
        """UPDATE ... WHERE id = :id AND <conditions>; True when a row matched.

        Every state transition goes through here. False means the row changed
        after the caller read it.
        """
        if hasattr(self.model, "updated_at"):
            values.setdefault("updated_at", utcnow())
        result = await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
