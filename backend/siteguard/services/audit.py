"""Audit logging service.

Provides a consistent interface for appending audit entries. Sync batches
are audited through ``record_sync_batch``, which never lets a failed append
escape into the push response.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from siteguard.models.enums import AuditAction
from siteguard.models.user import AuditLog

logger = logging.getLogger(__name__)

SYNC_AUDIT_ENTITY = "SyncQueue"


class AuditService:
    """Service for creating structured audit log entries."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def log(
        self,
        *,
        user_id: uuid.UUID | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None = None,
        old_values: dict | None = None,
        new_values: dict | None = None,
    ) -> AuditLog:
        """Create an audit log entry.

        Args:
            user_id: The user who performed the action (None for system actions).
            action: The type of action (CREATE, UPDATE, DELETE, SYNC).
            entity_type: The type of entity affected (e.g. "Incident", "SyncQueue").
            entity_id: Identifier of the affected entity; a client id for sync batches.
            old_values: Previous values before mutation (for UPDATE/DELETE).
            new_values: New values after mutation, or a summary payload.
        """
        entry = AuditLog(
            id=uuid.uuid4(),
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
        )
        self.db.add(entry)
        await self.db.flush()

        logger.info(
            "AUDIT: user=%s action=%s entity=%s/%s",
            user_id,
            action.value,
            entity_type,
            entity_id,
        )
        return entry

    async def record_sync_batch(
        self,
        *,
        user_id: uuid.UUID,
        client_id: str,
        operation_count: int,
        results_count: int,
    ) -> AuditLog | None:
        """Append the one audit row a push batch produces. Best effort."""
        try:
            async with self.db.begin_nested():
                return await self.log(
                    user_id=user_id,
                    action=AuditAction.SYNC,
                    entity_type=SYNC_AUDIT_ENTITY,
                    entity_id=client_id,
                    new_values={
                        "operationCount": operation_count,
                        "resultsCount": results_count,
                    },
                )
        except Exception:
            logger.exception("Failed to write sync audit entry for client %s", client_id)
            return None
