"""Offline sync service: push, pull, acknowledge, and status for field clients."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from siteguard.config import settings
from siteguard.models.base import as_utc, utcnow
from siteguard.models.enums import EntityKind, SyncResultStatus
from siteguard.models.site import Incident, Inspection, Site, ToolboxTalk
from siteguard.schemas.site import AttachmentRead, IncidentRead, InspectionRead, SiteRead, ToolboxTalkRead
from siteguard.schemas.sync import Acknowledgment, SyncOperationIn, SyncResult
from siteguard.services.appliers import format_validation_error, get_applier
from siteguard.services.attachments import AttachmentService
from siteguard.services.audit import AuditService
from siteguard.services.entity_store import EntityStore
from siteguard.services.ledger import OperationLedger
from siteguard.services.notification import NotificationService

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Pull feed sections: response key, model, read schema, owner column (None = global)
_PULL_SECTIONS = (
    ("inspections", EntityKind.INSPECTION, Inspection, InspectionRead, "created_by_id"),
    ("incidents", EntityKind.INCIDENT, Incident, IncidentRead, "reported_by_id"),
    ("toolboxTalks", EntityKind.TOOLBOX_TALK, ToolboxTalk, ToolboxTalkRead, "created_by_id"),
    ("sites", EntityKind.SITE, Site, SiteRead, None),
)


class SyncService:
    """Reconciles batches of offline operations against server state.

    Operations are applied one at a time, in the order the client sent them,
    each inside its own SAVEPOINT: a failing op is rolled back and reported
    without touching the ops before or after it. There is no batch-wide
    transaction, so a push may partially succeed. Ids produced by earlier ops
    in the same batch are not resolved server-side; attachment metadata must
    travel with the op that creates its parent record.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        notifications: NotificationService | None = None,
        audit: AuditService | None = None,
        ledger: OperationLedger | None = None,
        attachments: AttachmentService | None = None,
        deduplicate: bool | None = None,
    ):
        self.store = store
        self.notifications = notifications
        self.audit = audit or AuditService(store.db)
        self.ledger = ledger or OperationLedger(store.db)
        self.attachments = attachments or AttachmentService(store)
        self.deduplicate = settings.SYNC_DEDUPLICATE_OPS if deduplicate is None else deduplicate

    @classmethod
    def for_session(cls, db: AsyncSession, **kwargs) -> "SyncService":
        return cls(EntityStore(db), notifications=NotificationService(db), **kwargs)

    # --- Push ---

    async def push(
        self,
        client_id: str,
        user_id: uuid.UUID,
        ops: list[dict[str, Any]],
    ) -> list[SyncResult]:
        """Apply a batch of client operations; one result per op, in input order."""
        if not client_id:
            raise ValueError("clientId is required")
        if not isinstance(ops, list):
            raise ValueError("ops must be an array")

        results = [await self._process_op(client_id, user_id, raw) for raw in ops]

        await self.audit.record_sync_batch(
            user_id=user_id,
            client_id=client_id,
            operation_count=len(ops),
            results_count=len(results),
        )

        accepted = sum(1 for r in results if r.status == SyncResultStatus.ACCEPTED)
        logger.info(
            "Sync push from client %s: %d accepted, %d failed",
            client_id,
            accepted,
            len(results) - accepted,
        )
        return results

    async def _process_op(self, client_id: str, user_id: uuid.UUID, raw: dict[str, Any]) -> SyncResult:
        try:
            op = SyncOperationIn.model_validate(raw)
        except ValidationError as exc:
            return SyncResult(
                op_id=raw.get("opId"),
                status=SyncResultStatus.ERROR,
                error=f"Invalid operation: {format_validation_error(exc)}",
            )

        if self.deduplicate and op.op_id:
            cached = await self._cached_result(client_id, op.op_id, user_id)
            if cached is not None:
                return cached

        try:
            async with self.store.savepoint():
                applier = get_applier(op.entity, self.store, self.notifications)
                applied = await applier.apply(op.op_type, op.payload, op.local_id, user_id)
        except Exception as exc:
            logger.warning(
                "Failed to apply op %s (%s %s): %s",
                op.op_id,
                op.op_type.value,
                op.entity,
                exc,
            )
            return SyncResult(op_id=op.op_id, status=SyncResultStatus.ERROR, error=str(exc))

        result = SyncResult(
            op_id=applied.op_id or op.op_id,
            status=SyncResultStatus.ACCEPTED,
            server_id=applied.server_id,
            version=applied.version,
            server_timestamp=applied.server_timestamp,
        )

        if op.attachments_meta:
            result.attachments = await self.attachments.reconcile(
                op.attachments_meta,
                op.entity,
                uuid.UUID(applied.server_id),
                user_id,
            )

        if op.op_id:
            try:
                await self.ledger.record(
                    client_id=client_id,
                    op_id=op.op_id,
                    user_id=user_id,
                    entity=op.entity,
                    op_type=op.op_type.value,
                    server_id=applied.server_id,
                    result=result.to_wire(),
                )
            except SQLAlchemyError as exc:
                # The op itself is applied; only replay protection is lost
                logger.warning("Could not record op %s from client %s in ledger: %s", op.op_id, client_id, exc)
        return result

    async def _cached_result(self, client_id: str, op_id: str, user_id: uuid.UUID) -> SyncResult | None:
        """Stored result of an earlier identical op; a ledger fault means apply it again."""
        try:
            async with self.store.savepoint():
                cached = await self.ledger.lookup(client_id, op_id, user_id)
        except SQLAlchemyError as exc:
            logger.warning("Ledger lookup failed for op %s from client %s: %s", op_id, client_id, exc)
            return None
        return SyncResult.model_validate(cached) if cached is not None else None

    # --- Pull ---

    async def pull(self, user_id: uuid.UUID, since: datetime | None = None) -> dict[str, Any]:
        """Everything the user can see that changed strictly after ``since``.

        The returned ``timestamp`` is the next watermark. It is taken before
        the queries run, so a row written while the feed is being built is
        sent again next time rather than skipped.
        """
        watermark = as_utc(since) if since is not None else EPOCH
        timestamp = utcnow()

        changes: dict[str, Any] = {}
        for key, kind, model, schema, owner_field in _PULL_SECTIONS:
            filters = {owner_field: user_id} if owner_field else {}
            rows = await self.store.find_many(model, updated_after=watermark, **filters)
            changes[key] = await self._serialize(kind, schema, rows)

        changes["timestamp"] = timestamp.isoformat()
        logger.info(
            "Sync pull for user %s since %s: %s",
            user_id,
            watermark.isoformat(),
            {k: len(v) for k, v in changes.items() if isinstance(v, list)},
        )
        return changes

    async def _serialize(self, kind: EntityKind, schema, rows: list) -> list[dict]:
        if kind == EntityKind.SITE:
            return [schema.model_validate(r).model_dump(mode="json", by_alias=True) for r in rows]

        linked = await self.attachments.linked_to(kind.value, [r.id for r in rows])
        items = []
        for row in rows:
            read = schema.model_validate(row)
            read.attachments = [AttachmentRead.model_validate(a) for a in linked.get(row.id, [])]
            items.append(read.model_dump(mode="json", by_alias=True))
        return items

    # --- Ack & status ---

    async def acknowledge(self, user_id: uuid.UUID, acknowledgments: list[Acknowledgment]) -> dict[str, Any]:
        marked = await self.ledger.acknowledge(user_id, acknowledgments)
        logger.info(
            "User %s acknowledged %d operations (%d matched)",
            user_id,
            len(acknowledgments),
            marked,
        )
        return {"message": "Acknowledgments received", "count": len(acknowledgments)}

    async def get_sync_status(self, user_id: uuid.UUID) -> dict[str, Any]:
        health = "healthy"
        queue_stats: list[dict] = []
        try:
            async with self.store.savepoint():
                await self.store.db.execute(text("SELECT 1"))
                queue_stats = [s.to_wire() for s in await self.ledger.queue_stats(user_id)]
        except SQLAlchemyError:
            logger.exception("Sync status check failed for user %s", user_id)
            health = "degraded"

        return {
            "serverTime": utcnow().isoformat(),
            "queueStats": queue_stats,
            "health": health,
        }
