"""Attachment upload completion for placeholders created during sync."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from siteguard.core.deps import get_current_user
from siteguard.database import get_db
from siteguard.models.attachment import Attachment
from siteguard.models.user import User
from siteguard.schemas import CamelModel
from siteguard.schemas.site import AttachmentRead
from siteguard.services.attachments import AttachmentService
from siteguard.services.entity_store import EntityStore

router = APIRouter(prefix="/attachments", tags=["attachments"])


class UploadComplete(CamelModel):
    storage_path: str = Field(min_length=1, max_length=1000)
    checksum: str | None = Field(default=None, max_length=128)


@router.post("/upload/{attachment_id}", response_model=dict)
async def complete_upload(
    attachment_id: uuid.UUID,
    data: UploadComplete,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Record where the bytes of a placeholder attachment were stored."""
    store = EntityStore(db)
    attachment = await store.get_or_raise(Attachment, attachment_id)
    if attachment.created_by_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only upload attachments you created.",
        )

    svc = AttachmentService(store)
    attachment = await svc.complete_upload(
        attachment_id,
        storage_path=data.storage_path,
        checksum=data.checksum,
    )
    return {
        "attachment": AttachmentRead.model_validate(attachment).model_dump(mode="json", by_alias=True),
        "message": "File uploaded successfully",
    }
