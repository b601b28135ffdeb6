"""Typed persistence for sync: create, update, find-by-id, find-many.

The sync services never reach for a global session; they receive an
``EntityStore`` bound to the request's ``AsyncSession``.
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from siteguard.core.exceptions import EntityNotFound, VersionConflict
from siteguard.database import Base
from siteguard.models.base import as_utc

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class EntityStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    def savepoint(self) -> AsyncSessionTransaction:
        """Open a SAVEPOINT; leaving the block with an exception rolls back only its work."""
        return self.db.begin_nested()

    async def create(self, model: type[ModelT], **values: Any) -> ModelT:
        obj = model(id=uuid.uuid4(), **values)
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def get(self, model: type[ModelT], entity_id: uuid.UUID) -> ModelT | None:
        # populate_existing: a rolled-back savepoint may have left the cached row expired
        return await self.db.get(model, entity_id, populate_existing=True)

    async def get_or_raise(self, model: type[ModelT], entity_id: uuid.UUID) -> ModelT:
        obj = await self.get(model, entity_id)
        if obj is None:
            raise EntityNotFound(model.__name__, entity_id)
        return obj

    async def update(
        self,
        model: type[ModelT],
        entity_id: uuid.UUID,
        values: dict[str, Any],
        *,
        increment_version: bool = False,
        expected_version: int | None = None,
    ) -> ModelT:
        """Apply ``values`` to one row.

        With ``increment_version`` the counter is bumped in SQL
        (``version = version + 1``) so concurrent writers never lose a step.
        ``expected_version`` turns the write into a compare-and-set.
        """
        obj = await self.get_or_raise(model, entity_id)

        if expected_version is not None and obj.version != expected_version:
            raise VersionConflict(model.__name__, entity_id, expected_version, obj.version)

        for field, value in values.items():
            setattr(obj, field, value)
        if increment_version:
            obj.version = model.version + 1

        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def find_many(
        self,
        model: type[ModelT],
        *,
        updated_after: datetime | None = None,
        **filters: Any,
    ) -> list[ModelT]:
        """Rows matching equality ``filters``, optionally updated strictly after a watermark."""
        query = select(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        if updated_after is not None:
            query = query.where(model.updated_at > as_utc(updated_after))
        query = query.order_by(model.updated_at.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_in(
        self,
        model: type[ModelT],
        field: str,
        values: Iterable[Any],
        **filters: Any,
    ) -> list[ModelT]:
        values = list(values)
        if not values:
            return []
        query = select(model).where(getattr(model, field).in_(values))
        for name, value in filters.items():
            query = query.where(getattr(model, name) == value)
        result = await self.db.execute(query)
        return list(result.scalars().all())
