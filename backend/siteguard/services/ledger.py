"""Operation ledger: replay protection and acknowledgment tracking."""

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from siteguard.models.base import utcnow
from siteguard.models.enums import SyncOperationStatus
from siteguard.models.sync import SyncOperation
from siteguard.schemas.sync import Acknowledgment, QueueStat

logger = logging.getLogger(__name__)


class OperationLedger:
    """Remembers accepted operations per ``(client_id, user_id, op_id)``.

    A retried push (e.g. after a client timeout that succeeded server-side)
    gets the stored result back instead of creating a duplicate record.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def lookup(self, client_id: str, op_id: str, user_id: uuid.UUID) -> dict | None:
        result = await self.db.execute(
            select(SyncOperation.result).where(
                SyncOperation.client_id == client_id,
                SyncOperation.op_id == op_id,
                SyncOperation.user_id == user_id,
            )
        )
        cached = result.scalar_one_or_none()
        if cached is not None:
            logger.info("Found cached result for client %s op %s", client_id, op_id)
        return cached

    async def record(
        self,
        *,
        client_id: str,
        op_id: str,
        user_id: uuid.UUID,
        entity: str,
        op_type: str,
        server_id: str | None,
        result: dict,
    ) -> None:
        try:
            async with self.db.begin_nested():
                self.db.add(SyncOperation(
                    id=uuid.uuid4(),
                    client_id=client_id,
                    op_id=op_id,
                    user_id=user_id,
                    entity=entity,
                    op_type=op_type,
                    server_id=server_id,
                    status=SyncOperationStatus.ACCEPTED,
                    result=result,
                ))
                await self.db.flush()
        except IntegrityError:
            logger.warning("Operation %s from client %s already recorded", op_id, client_id)

    async def acknowledge(self, user_id: uuid.UUID, acknowledgments: Iterable[Acknowledgment]) -> int:
        """Mark the caller's accepted operations as acknowledged; returns rows marked."""
        marked = 0
        now = utcnow()
        for ack in acknowledgments:
            query = select(SyncOperation).where(
                SyncOperation.user_id == user_id,
                SyncOperation.op_id == ack.op_id,
                SyncOperation.status == SyncOperationStatus.ACCEPTED,
            )
            if ack.server_id:
                query = query.where(SyncOperation.server_id == ack.server_id)
            rows = (await self.db.execute(query)).scalars().all()
            for row in rows:
                row.status = SyncOperationStatus.ACKNOWLEDGED
                row.acknowledged_at = now
                marked += 1
        await self.db.flush()
        return marked

    async def queue_stats(self, user_id: uuid.UUID) -> list[QueueStat]:
        result = await self.db.execute(
            select(SyncOperation.status, func.count())
            .where(SyncOperation.user_id == user_id)
            .group_by(SyncOperation.status)
            .order_by(SyncOperation.status)
        )
        return [
            QueueStat(status=status.value, count=count)
            for status, count in result.all()
        ]
