"""Notification and reminder models."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from siteguard.models.base import Base, BaseModel, UUIDPrimaryKeyMixin, utcnow
from siteguard.models.enums import NotificationPriority, NotificationType, ReminderType


class Notification(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "notification"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("user.id"), nullable=False
    )
    notification_type: Mapped[NotificationType] = mapped_column(nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[NotificationPriority] = mapped_column(
        nullable=False, default=NotificationPriority.NORMAL
    )
    # JSON text
    data: Mapped[str | None] = mapped_column(Text, nullable=True)
    related_entity: Mapped[str | None] = mapped_column(String(50), nullable=True)
    related_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    is_read: Mapped[bool] = mapped_column(default=False, server_default="false")
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_notification_user", "user_id"),
        Index("ix_notification_type", "notification_type"),
        Index("ix_notification_read", "is_read"),
    )


class Reminder(BaseModel):
    __tablename__ = "reminder"

    reminder_type: Mapped[ReminderType] = mapped_column(nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("user.id"), nullable=True
    )
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_reminder_scheduled", "scheduled_at"),
        Index("ix_reminder_assigned", "assigned_to"),
    )
