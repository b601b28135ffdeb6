"""Notification sink: in-app notifications raised as a side effect of sync."""

import json
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from siteguard.config import settings
from siteguard.models.enums import EntityKind, NotificationPriority, NotificationType, UserRole
from siteguard.models.notification import Notification
from siteguard.models.user import User

logger = logging.getLogger(__name__)

_CREATED_TYPES = {
    EntityKind.INSPECTION: NotificationType.INSPECTION_CREATED,
    EntityKind.INCIDENT: NotificationType.INCIDENT_CREATED,
    EntityKind.TOOLBOX_TALK: NotificationType.TOOLBOX_TALK_CREATED,
    EntityKind.SITE: NotificationType.SITE_CREATED,
}

_CREATED_TITLES = {
    EntityKind.INSPECTION: "Inspection Created Successfully",
    EntityKind.INCIDENT: "Incident Reported Successfully",
    EntityKind.TOOLBOX_TALK: "Toolbox Talk Scheduled Successfully",
    EntityKind.SITE: "Site Created Successfully",
}

ALERT_ROLES = (UserRole.ADMIN, UserRole.SAFETY_MANAGER)


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_notification(
        self,
        *,
        user_id: uuid.UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict | None = None,
        related_entity: str | None = None,
        related_id: uuid.UUID | None = None,
    ) -> Notification:
        """Create a single in-app notification."""
        notification = Notification(
            id=uuid.uuid4(),
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            priority=priority,
            data=json.dumps(data, default=str) if data is not None else None,
            related_entity=related_entity,
            related_id=related_id,
        )
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def notify_roles(
        self,
        roles: tuple[UserRole, ...],
        **kwargs,
    ) -> list[Notification]:
        """Fan a notification out to every active user holding one of ``roles``."""
        result = await self.db.execute(
            select(User.id).where(
                User.role.in_(roles),
                User.is_active == True,  # noqa: E712
            )
        )
        return [
            await self.create_notification(user_id=user_id, **kwargs)
            for user_id in result.scalars().all()
        ]

    async def record_created(
        self,
        kind: EntityKind,
        record_id: uuid.UUID,
        actor_id: uuid.UUID,
        site_name: str | None = None,
    ) -> None:
        """Confirm a synced create to the user who made it."""
        where = f" at {site_name}" if site_name else ""
        await self.create_notification(
            user_id=actor_id,
            notification_type=_CREATED_TYPES[kind],
            title=_CREATED_TITLES[kind],
            message=f"Your {kind.value} record{where} has been synced",
            data={"recordId": record_id},
            related_entity=kind.value,
            related_id=record_id,
        )

    async def high_severity_incident(
        self,
        incident_id: uuid.UUID,
        severity: int,
        site_id: uuid.UUID,
        site_name: str,
    ) -> list[Notification]:
        if severity < settings.HIGH_SEVERITY_THRESHOLD:
            return []
        sent = await self.notify_roles(
            ALERT_ROLES,
            notification_type=NotificationType.SAFETY_ALERT,
            title="High Severity Incident Reported",
            message=f"Incident of severity {severity} reported at {site_name}",
            priority=NotificationPriority.HIGH,
            data={"incidentId": incident_id, "siteId": site_id, "severity": severity},
            related_entity=EntityKind.INCIDENT.value,
            related_id=incident_id,
        )
        logger.info("Safety alert for incident %s sent to %d users", incident_id, len(sent))
        return sent
