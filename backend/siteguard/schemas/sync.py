"""Pydantic schemas for offline sync endpoints and operation payloads."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from siteguard.config import settings
from siteguard.models.enums import InspectionStatus, OpType, SyncResultStatus, ToolboxTalkStatus
from siteguard.schemas import CamelModel


# --- Request envelopes ---

class SyncPushRequest(CamelModel):
    client_id: str = Field(min_length=1, max_length=255)
    # Ops are parsed one at a time so a malformed op fails alone
    ops: list[dict[str, Any]] = Field(max_length=settings.SYNC_MAX_BATCH_SIZE)


class Acknowledgment(CamelModel):
    op_id: str = Field(min_length=1, max_length=255)
    server_id: str | None = None


class SyncAckRequest(CamelModel):
    acknowledgments: list[Acknowledgment]


# --- Operations ---

class SyncOperationIn(CamelModel):
    op_id: str | None = Field(default=None, max_length=255, description="Client-generated unique ID for this operation")
    op_type: OpType
    entity: str = Field(description="Entity kind: Inspection, Incident, ToolboxTalk or Site")
    payload: dict[str, Any] = Field(default_factory=dict)
    local_id: str | None = Field(default=None, description="Client-side id of the record before sync")
    timestamp: datetime | None = Field(default=None, description="When the operation was recorded on the client")
    attachments_meta: list[Any] | None = None


class AttachmentMeta(CamelModel):
    local_attachment_id: str | None = None
    filename: str = Field(min_length=1, max_length=400)
    mime_type: str | None = Field(default=None, max_length=200)
    size: int | None = Field(default=None, ge=0)


# --- Payload variants, one pair per entity kind ---

class PayloadBase(CamelModel):
    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID | None = None
    op_id: str | None = None
    expected_version: int | None = Field(default=None, ge=1)


class InspectionFields(PayloadBase):
    site_id: uuid.UUID | None = None
    status: InspectionStatus | None = None
    checklist: dict[str, Any] | list[Any] | None = None


class InspectionCreate(InspectionFields):
    site_id: uuid.UUID


class InspectionUpdate(InspectionFields):
    id: uuid.UUID


class IncidentFields(PayloadBase):
    site_id: uuid.UUID | None = None
    type: str | None = Field(default=None, min_length=1, max_length=100)
    severity: int | None = Field(default=None, ge=1, le=5)
    description: str | None = None
    location: dict[str, Any] | list[Any] | None = None


class IncidentCreate(IncidentFields):
    site_id: uuid.UUID
    type: str = Field(min_length=1, max_length=100)
    severity: int = Field(ge=1, le=5)


class IncidentUpdate(IncidentFields):
    id: uuid.UUID


class ToolboxTalkFields(PayloadBase):
    site_id: uuid.UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=200)
    agenda: str | None = None
    attendees: list[Any] | None = None
    status: ToolboxTalkStatus | None = None
    # Raw client value (ISO string or epoch ms); parsed leniently by the applier
    scheduled_at: Any = None
    completed_at: datetime | None = None


class ToolboxTalkCreate(ToolboxTalkFields):
    site_id: uuid.UUID
    title: str = Field(min_length=1, max_length=200)


class ToolboxTalkUpdate(ToolboxTalkFields):
    id: uuid.UUID


class SiteFields(PayloadBase):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    address: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    meta: dict[str, Any] | None = None


class SiteCreate(SiteFields):
    name: str = Field(min_length=1, max_length=200)


class SiteUpdate(SiteFields):
    id: uuid.UUID


# --- Results ---

class AttachmentResult(CamelModel):
    local_attachment_id: str | None = None
    attachment_id: uuid.UUID | None = None
    upload_url: str | None = None
    error: str | None = None


class SyncResult(CamelModel):
    op_id: str | None = None
    status: SyncResultStatus
    server_id: str | None = None
    version: int | None = None
    server_timestamp: datetime | None = None
    error: str | None = None
    attachments: list[AttachmentResult] | None = None


class AppliedOperation(CamelModel):
    """What an applier hands back to the coordinator for one op."""

    op_id: str | None = None
    server_id: str
    version: int | None = None
    server_timestamp: datetime


class QueueStat(CamelModel):
    status: str
    count: int
