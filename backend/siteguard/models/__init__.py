"""All SiteGuard database models.

Import all models here so Alembic and SQLAlchemy can discover them.
"""

from siteguard.models.base import Base, BaseModel, VersionedModel  # noqa: F401

# User & Audit
from siteguard.models.user import AuditLog, User  # noqa: F401

# Sites and jobsite records
from siteguard.models.site import Incident, Inspection, Site, ToolboxTalk  # noqa: F401

# Attachments
from siteguard.models.attachment import Attachment  # noqa: F401

# Notifications
from siteguard.models.notification import Notification, Reminder  # noqa: F401

# Offline sync
from siteguard.models.sync import SyncOperation  # noqa: F401
