"""Attachment model: file metadata linked to a versioned record."""

import uuid

from sqlalchemy import BigInteger, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from siteguard.models.base import BaseModel


class Attachment(BaseModel):
    __tablename__ = "attachment"

    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(200), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, default=0, server_default="0")
    storage_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    uploaded: Mapped[bool] = mapped_column(default=False, server_default="false")
    checksum: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("user.id"), nullable=False
    )
    linked_entity: Mapped[str] = mapped_column(String(50), nullable=False)
    linked_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    __table_args__ = (
        Index("ix_attachment_linked", "linked_entity", "linked_id"),
    )
