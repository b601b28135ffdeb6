"""Attachment reconciliation: placeholder records for files not yet uploaded.

Clients capture photos offline and send only metadata with the operation that
creates or updates the parent record. Each metadata entry becomes an
``Attachment`` row with ``uploaded=False`` and a synthetic ``pending/`` path;
the client then uploads the bytes out-of-band to the returned ``uploadUrl``.
"""

import logging
import time
import uuid
from collections import defaultdict
from pathlib import PurePosixPath
from typing import Any

from pydantic import ValidationError

from siteguard.config import settings
from siteguard.core.exceptions import AttachmentReconciliationError
from siteguard.models.attachment import Attachment
from siteguard.schemas.sync import AttachmentMeta, AttachmentResult
from siteguard.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

RECONCILE_ERROR = "Failed to create attachment metadata"


def pending_storage_path(filename: str) -> str:
    """``pending/<epoch-ms>_<nonce>_<basename>``, unique even within one millisecond."""
    basename = PurePosixPath(filename.replace("\\", "/")).name or "file"
    return f"pending/{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}_{basename}"


def upload_url(attachment_id: uuid.UUID) -> str:
    return f"{settings.ATTACHMENT_UPLOAD_PATH}/{attachment_id}"


class AttachmentService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def reconcile(
        self,
        attachments_meta: list[Any],
        entity_kind: str,
        server_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> list[AttachmentResult]:
        """Create one placeholder per entry; a bad entry never affects its siblings."""
        results: list[AttachmentResult] = []
        for raw in attachments_meta:
            local_id = raw.get("localAttachmentId") if isinstance(raw, dict) else None
            try:
                meta = AttachmentMeta.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Rejected attachment metadata %s: %s", local_id, exc.errors()[:1])
                results.append(AttachmentResult(local_attachment_id=local_id, error=RECONCILE_ERROR))
                continue

            try:
                attachment = await self._create_placeholder(meta, entity_kind, server_id, user_id)
            except Exception:
                logger.exception(
                    "Error creating attachment metadata %s for %s %s",
                    meta.local_attachment_id,
                    entity_kind,
                    server_id,
                )
                results.append(AttachmentResult(
                    local_attachment_id=meta.local_attachment_id,
                    error=RECONCILE_ERROR,
                ))
                continue

            results.append(AttachmentResult(
                local_attachment_id=meta.local_attachment_id,
                attachment_id=attachment.id,
                upload_url=upload_url(attachment.id),
            ))
        return results

    async def _create_placeholder(
        self,
        meta: AttachmentMeta,
        entity_kind: str,
        server_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Attachment:
        async with self.store.savepoint():
            return await self.store.create(
                Attachment,
                filename=meta.filename,
                mime_type=meta.mime_type or settings.ATTACHMENT_DEFAULT_MIME_TYPE,
                size=meta.size or 0,
                storage_path=pending_storage_path(meta.filename),
                uploaded=False,
                created_by_id=user_id,
                linked_entity=entity_kind,
                linked_id=server_id,
            )

    async def complete_upload(
        self,
        attachment_id: uuid.UUID,
        *,
        storage_path: str,
        checksum: str | None,
    ) -> Attachment:
        """Flip a placeholder to uploaded. Uploaded attachments are immutable."""
        attachment = await self.store.get_or_raise(Attachment, attachment_id)
        if attachment.uploaded:
            raise AttachmentReconciliationError(f"Attachment {attachment_id} is already uploaded")
        updated = await self.store.update(
            Attachment,
            attachment_id,
            {"storage_path": storage_path, "checksum": checksum, "uploaded": True},
        )
        logger.info("Attachment %s uploaded to %s", attachment_id, storage_path)
        return updated

    async def linked_to(self, entity_kind: str, ids: list[uuid.UUID]) -> dict[uuid.UUID, list[Attachment]]:
        rows = await self.store.find_in(Attachment, "linked_id", ids, linked_entity=entity_kind)
        grouped: dict[uuid.UUID, list[Attachment]] = defaultdict(list)
        for row in rows:
            grouped[row.linked_id].append(row)
        return grouped
