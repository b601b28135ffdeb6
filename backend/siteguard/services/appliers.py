"""Per-entity appliers: validate one client operation and write it to the store.

Each applier owns the payload schemas for its entity kind, the owner column
that records who created the row, and the free-form fields that are kept as
JSON text. Only ``create`` and ``update`` are supported; deletes are not
synced.
"""

import enum
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from siteguard.core.exceptions import PayloadValidationError, UnsupportedOperation
from siteguard.models.base import as_utc
from siteguard.models.enums import EntityKind, OpType, ReminderType
from siteguard.models.notification import Reminder
from siteguard.models.site import Incident, Inspection, Site, ToolboxTalk
from siteguard.schemas.sync import (
    AppliedOperation,
    IncidentCreate,
    IncidentUpdate,
    InspectionCreate,
    InspectionUpdate,
    SiteCreate,
    SiteUpdate,
    ToolboxTalkCreate,
    ToolboxTalkUpdate,
)
from siteguard.services.entity_store import EntityStore
from siteguard.services.notification import NotificationService

logger = logging.getLogger(__name__)

# Keys that steer the sync itself and are never written to a column
_CONTROL_FIELDS = {"id", "op_id", "expected_version"}


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_client_datetime(raw: Any) -> datetime | None:
    """Parse a client timestamp, tolerating ones truncated before the seconds.

    ``2025-10-27T11:59:00Z`` parses directly; a value that does not parse is
    retried with ``:00`` and a UTC offset appended. Numbers are epoch
    milliseconds. Anything else, or anything still invalid, yields ``None``.
    Naive results are taken as UTC.
    """
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        try:
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Invalid client epoch timestamp %r, ignoring", raw)
            return None
    if not raw or not isinstance(raw, str):
        return None
    try:
        value = datetime.fromisoformat(raw)
    except ValueError:
        try:
            value = datetime.fromisoformat(f"{raw}:00+00:00")
        except ValueError:
            logger.warning("Invalid client datetime %r, ignoring", raw)
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class EntityApplier:
    entity: ClassVar[EntityKind]
    model: ClassVar[type]
    create_schema: ClassVar[type[BaseModel]]
    update_schema: ClassVar[type[BaseModel]]
    owner_field: ClassVar[str | None] = None
    json_fields: ClassVar[dict[str, Any]] = {}
    versioned: ClassVar[bool] = True

    def __init__(self, store: EntityStore, notifications: NotificationService | None = None):
        self.store = store
        self.notifications = notifications

    async def apply(
        self,
        op_type: OpType,
        payload: dict[str, Any],
        local_id: str | None,
        user_id: uuid.UUID,
    ) -> AppliedOperation:
        if op_type == OpType.CREATE:
            data = self._validate(self.create_schema, payload)
            record = await self.create(data, user_id)
        elif op_type == OpType.UPDATE:
            data = self._validate(self.update_schema, payload)
            record = await self.update(data, user_id)
        else:
            raise UnsupportedOperation(f"Unsupported operation type: {op_type.value}")

        return AppliedOperation(
            op_id=payload.get("opId") or local_id,
            server_id=str(record.id),
            version=record.version if self.versioned else None,
            server_timestamp=as_utc(record.updated_at),
        )

    def _validate(self, schema: type[BaseModel], payload: dict[str, Any]) -> BaseModel:
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            raise PayloadValidationError(
                f"Invalid {self.entity.value} payload: {format_validation_error(exc)}"
            ) from exc

    def to_columns(self, data: BaseModel, *, partial: bool) -> dict[str, Any]:
        """Flatten a validated payload into column values.

        For updates (``partial``) only fields the client actually sent are
        written; explicit nulls clear a column.
        """
        raw = data.model_dump(exclude_unset=partial, exclude_none=not partial)
        values: dict[str, Any] = {}
        for field, value in raw.items():
            if field in _CONTROL_FIELDS:
                continue
            if field in self.json_fields:
                value = json.dumps(value if value is not None else self.json_fields[field])
            elif isinstance(value, enum.Enum):
                value = value.value
            values[field] = value
        return values

    async def _require_site(self, site_id: uuid.UUID) -> Site:
        return await self.store.get_or_raise(Site, site_id)

    async def create(self, data: BaseModel, user_id: uuid.UUID):
        values = self.to_columns(data, partial=False)
        for field, default in self.json_fields.items():
            values.setdefault(field, json.dumps(default))
        if self.owner_field:
            values[self.owner_field] = user_id

        site = await self._require_site(values["site_id"]) if "site_id" in values else None
        record = await self.store.create(self.model, **values)
        logger.info("Synced create %s %s for user %s", self.entity.value, record.id, user_id)

        await self.after_create(record, site, user_id)
        return record

    async def update(self, data: BaseModel, user_id: uuid.UUID):
        values = self.to_columns(data, partial=True)
        if values.get("site_id") is not None:
            await self._require_site(values["site_id"])
        record = await self.store.update(
            self.model,
            data.id,
            values,
            increment_version=self.versioned,
            expected_version=data.expected_version if self.versioned else None,
        )
        logger.info(
            "Synced update %s %s by user %s (version %s)",
            self.entity.value,
            record.id,
            user_id,
            getattr(record, "version", "-"),
        )
        return record

    async def after_create(self, record, site: Site | None, user_id: uuid.UUID) -> None:
        """Notify the creator. Notification failures never fail the operation."""
        if self.notifications is None:
            return
        try:
            async with self.store.savepoint():
                await self.notifications.record_created(
                    self.entity, record.id, user_id, site.name if site else None,
                )
                await self.extra_notifications(record, site)
        except Exception:
            logger.exception("Failed to notify for %s %s", self.entity.value, record.id)

    async def extra_notifications(self, record, site: Site | None) -> None:
        return None


class InspectionApplier(EntityApplier):
    entity = EntityKind.INSPECTION
    model = Inspection
    create_schema = InspectionCreate
    update_schema = InspectionUpdate
    owner_field = "created_by_id"
    json_fields = {"checklist": {}}


class IncidentApplier(EntityApplier):
    entity = EntityKind.INCIDENT
    model = Incident
    create_schema = IncidentCreate
    update_schema = IncidentUpdate
    owner_field = "reported_by_id"
    json_fields = {"location": {}}

    async def extra_notifications(self, record, site: Site | None) -> None:
        await self.notifications.high_severity_incident(
            record.id, record.severity, record.site_id, site.name if site else "unknown site",
        )


class ToolboxTalkApplier(EntityApplier):
    entity = EntityKind.TOOLBOX_TALK
    model = ToolboxTalk
    create_schema = ToolboxTalkCreate
    update_schema = ToolboxTalkUpdate
    owner_field = "created_by_id"
    json_fields = {"attendees": []}

    def to_columns(self, data: BaseModel, *, partial: bool) -> dict[str, Any]:
        values = super().to_columns(data, partial=partial)
        if "scheduled_at" in values:
            scheduled_at = parse_client_datetime(values.pop("scheduled_at"))
            # An unparseable schedule is dropped, not rejected
            if scheduled_at is not None:
                values["scheduled_at"] = scheduled_at
        return values

    async def create(self, data: BaseModel, user_id: uuid.UUID):
        talk = await super().create(data, user_id)
        if talk.scheduled_at is not None:
            await self.store.create(
                Reminder,
                reminder_type=ReminderType.TOOLBOX_TALK,
                entity_type=self.entity.value,
                entity_id=talk.id,
                scheduled_at=talk.scheduled_at,
                assigned_to=user_id,
            )
        return talk


class SiteApplier(EntityApplier):
    entity = EntityKind.SITE
    model = Site
    create_schema = SiteCreate
    update_schema = SiteUpdate
    json_fields = {"meta": {}}
    versioned = False


APPLIERS: dict[str, type[EntityApplier]] = {
    applier.entity.value: applier
    for applier in (InspectionApplier, IncidentApplier, ToolboxTalkApplier, SiteApplier)
}


def get_applier(
    entity: str,
    store: EntityStore,
    notifications: NotificationService | None = None,
) -> EntityApplier:
    try:
        applier_cls = APPLIERS[entity]
    except KeyError:
        raise UnsupportedOperation(f"Unknown entity type: {entity}") from None
    return applier_cls(store, notifications)
