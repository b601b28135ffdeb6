"""Ledger of operations applied on behalf of offline clients."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from siteguard.models.base import Base, UUIDPrimaryKeyMixin, utcnow
from siteguard.models.enums import SyncOperationStatus


class SyncOperation(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "sync_operation"

    client_id: Mapped[str] = mapped_column(String(255), nullable=False)
    op_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("user.id"), nullable=False
    )
    entity: Mapped[str] = mapped_column(String(50), nullable=False)
    op_type: Mapped[str] = mapped_column(String(20), nullable=False)
    server_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[SyncOperationStatus] = mapped_column(
        nullable=False, default=SyncOperationStatus.ACCEPTED
    )
    # Stored SyncResult, replayed verbatim for retried operations
    result: Mapped[dict] = mapped_column(JSON, nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("client_id", "user_id", "op_id", name="uq_sync_operation_client_user_op"),
        Index("ix_sync_operation_user_status", "user_id", "status"),
    )
