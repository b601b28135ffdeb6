"""Read schemas for sites, jobsite records, and attachments."""

import json
import uuid
from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, ConfigDict, Field, field_validator

from siteguard.models.base import as_utc
from siteguard.schemas import CamelModel

UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def _load_json_text(value: Any, default: Any) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return default
    return value


class ReadModel(CamelModel):
    model_config = ConfigDict(from_attributes=True)


class AttachmentRead(ReadModel):
    id: uuid.UUID
    filename: str
    mime_type: str
    size: int
    storage_path: str
    uploaded: bool
    checksum: str | None = None
    created_by_id: uuid.UUID
    linked_entity: str
    linked_id: uuid.UUID
    created_at: UtcDatetime
    updated_at: UtcDatetime


class SiteRead(ReadModel):
    id: uuid.UUID
    name: str
    address: str | None = None
    lat: float | None = None
    lng: float | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @field_validator("meta", mode="before")
    @classmethod
    def _parse_meta(cls, v: Any) -> Any:
        return _load_json_text(v, {})


class InspectionRead(ReadModel):
    id: uuid.UUID
    site_id: uuid.UUID
    created_by_id: uuid.UUID
    checklist: dict[str, Any] | list[Any] = Field(default_factory=dict)
    status: str
    version: int
    created_at: UtcDatetime
    updated_at: UtcDatetime
    attachments: list[AttachmentRead] = Field(default_factory=list)

    @field_validator("checklist", mode="before")
    @classmethod
    def _parse_checklist(cls, v: Any) -> Any:
        return _load_json_text(v, {})


class IncidentRead(ReadModel):
    id: uuid.UUID
    site_id: uuid.UUID
    reported_by_id: uuid.UUID
    type: str
    severity: int
    description: str | None = None
    location: dict[str, Any] | list[Any] = Field(default_factory=dict)
    version: int
    created_at: UtcDatetime
    updated_at: UtcDatetime
    attachments: list[AttachmentRead] = Field(default_factory=list)

    @field_validator("location", mode="before")
    @classmethod
    def _parse_location(cls, v: Any) -> Any:
        return _load_json_text(v, {})


class ToolboxTalkRead(ReadModel):
    id: uuid.UUID
    site_id: uuid.UUID
    created_by_id: uuid.UUID
    title: str
    agenda: str | None = None
    attendees: list[Any] = Field(default_factory=list)
    status: str
    scheduled_at: UtcDatetime | None = None
    completed_at: UtcDatetime | None = None
    version: int
    created_at: UtcDatetime
    updated_at: UtcDatetime
    attachments: list[AttachmentRead] = Field(default_factory=list)

    @field_validator("attendees", mode="before")
    @classmethod
    def _parse_attendees(cls, v: Any) -> Any:
        return _load_json_text(v, [])
