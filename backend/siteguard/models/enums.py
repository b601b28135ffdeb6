"""All enum types for the SiteGuard data model."""

import enum


# --- User Enums ---

class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    SAFETY_MANAGER = "SAFETY_MANAGER"
    SUPERVISOR = "SUPERVISOR"
    WORKER = "WORKER"


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SYNC = "SYNC"


# --- Record Enums ---

class InspectionStatus(str, enum.Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ToolboxTalkStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# --- Sync Enums ---

class EntityKind(str, enum.Enum):
    INSPECTION = "Inspection"
    INCIDENT = "Incident"
    TOOLBOX_TALK = "ToolboxTalk"
    SITE = "Site"


class OpType(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncResultStatus(str, enum.Enum):
    ACCEPTED = "accepted"
    ERROR = "error"


class SyncOperationStatus(str, enum.Enum):
    ACCEPTED = "accepted"
    ACKNOWLEDGED = "acknowledged"


# --- Notification Enums ---

class NotificationType(str, enum.Enum):
    SAFETY_ALERT = "safety_alert"
    INSPECTION_CREATED = "inspection_created"
    INCIDENT_CREATED = "incident_created"
    TOOLBOX_TALK_CREATED = "toolbox_talk_created"
    SITE_CREATED = "site_created"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class ReminderType(str, enum.Enum):
    INSPECTION = "inspection"
    TOOLBOX_TALK = "toolbox_talk"
