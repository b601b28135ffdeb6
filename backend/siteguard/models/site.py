"""Site and the jobsite records clients capture offline."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from siteguard.models.base import BaseModel, VersionedModel
from siteguard.models.enums import InspectionStatus, ToolboxTalkStatus


class Site(BaseModel):
    __tablename__ = "site"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    # JSON text
    meta: Mapped[str] = mapped_column(Text, default="{}", server_default="{}")

    __table_args__ = (
        Index("ix_site_updated_at", "updated_at"),
    )


class Inspection(VersionedModel):
    __tablename__ = "inspection"

    site_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("site.id"), nullable=False
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("user.id"), nullable=False
    )
    # JSON text
    checklist: Mapped[str] = mapped_column(Text, default="{}", server_default="{}")
    status: Mapped[str] = mapped_column(
        String(30), default=InspectionStatus.DRAFT.value, server_default=InspectionStatus.DRAFT.value
    )

    __table_args__ = (
        Index("ix_inspection_owner_updated", "created_by_id", "updated_at"),
        Index("ix_inspection_site_id", "site_id"),
    )


class Incident(VersionedModel):
    __tablename__ = "incident"

    site_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("site.id"), nullable=False
    )
    reported_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("user.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON text
    location: Mapped[str] = mapped_column(Text, default="{}", server_default="{}")

    __table_args__ = (
        Index("ix_incident_owner_updated", "reported_by_id", "updated_at"),
        Index("ix_incident_site_id", "site_id"),
    )


class ToolboxTalk(VersionedModel):
    __tablename__ = "toolbox_talk"

    site_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("site.id"), nullable=False
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("user.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    agenda: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON text
    attendees: Mapped[str] = mapped_column(Text, default="[]", server_default="[]")
    status: Mapped[str] = mapped_column(
        String(30), default=ToolboxTalkStatus.SCHEDULED.value, server_default=ToolboxTalkStatus.SCHEDULED.value
    )
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_toolbox_talk_owner_updated", "created_by_id", "updated_at"),
        Index("ix_toolbox_talk_site_id", "site_id"),
    )
