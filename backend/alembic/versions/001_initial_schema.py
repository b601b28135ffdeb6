"""Initial schema - users, sites, jobsite records, attachments, sync ledger.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # --- User & Audit ---

    op.create_table(
        "user",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("api_key", sa.String(128), unique=True, nullable=True),
        sa.Column("key_enabled", sa.Boolean, server_default="false"),
        sa.Column("is_active", sa.Boolean, server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_user_email", "user", ["email"])
    op.create_index("ix_user_role", "user", ["role"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(255), nullable=True),
        sa.Column("old_values", sa.JSON, nullable=True),
        sa.Column("new_values", sa.JSON, nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_user_id", "audit_log", ["user_id"])
    op.create_index("ix_audit_log_timestamp", "audit_log", ["timestamp"])

    # --- Sites & Records ---

    op.create_table(
        "site",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("lat", sa.Float, nullable=True),
        sa.Column("lng", sa.Float, nullable=True),
        sa.Column("meta", sa.Text, server_default="{}"),
        *_timestamps(),
    )
    op.create_index("ix_site_updated_at", "site", ["updated_at"])

    op.create_table(
        "inspection",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("site_id", sa.Uuid(), sa.ForeignKey("site.id"), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("checklist", sa.Text, server_default="{}"),
        sa.Column("status", sa.String(30), server_default="draft"),
        sa.Column("version", sa.Integer, server_default="1", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_inspection_owner_updated", "inspection", ["created_by_id", "updated_at"])
    op.create_index("ix_inspection_site_id", "inspection", ["site_id"])

    op.create_table(
        "incident",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("site_id", sa.Uuid(), sa.ForeignKey("site.id"), nullable=False),
        sa.Column("reported_by_id", sa.Uuid(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("severity", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("location", sa.Text, server_default="{}"),
        sa.Column("version", sa.Integer, server_default="1", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_incident_owner_updated", "incident", ["reported_by_id", "updated_at"])
    op.create_index("ix_incident_site_id", "incident", ["site_id"])

    op.create_table(
        "toolbox_talk",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("site_id", sa.Uuid(), sa.ForeignKey("site.id"), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("agenda", sa.Text, nullable=True),
        sa.Column("attendees", sa.Text, server_default="[]"),
        sa.Column("status", sa.String(30), server_default="scheduled"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, server_default="1", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_toolbox_talk_owner_updated", "toolbox_talk", ["created_by_id", "updated_at"])
    op.create_index("ix_toolbox_talk_site_id", "toolbox_talk", ["site_id"])

    # --- Attachments ---

    op.create_table(
        "attachment",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("filename", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(200), nullable=False),
        sa.Column("size", sa.BigInteger, server_default="0"),
        sa.Column("storage_path", sa.String(1000), nullable=False),
        sa.Column("uploaded", sa.Boolean, server_default="false"),
        sa.Column("checksum", sa.String(128), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("linked_entity", sa.String(50), nullable=False),
        sa.Column("linked_id", sa.Uuid(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_attachment_linked", "attachment", ["linked_entity", "linked_id"])

    # --- Notifications & Reminders ---

    op.create_table(
        "notification",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("notification_type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("priority", sa.String(30), nullable=False),
        sa.Column("data", sa.Text, nullable=True),
        sa.Column("related_entity", sa.String(50), nullable=True),
        sa.Column("related_id", sa.Uuid(), nullable=True),
        sa.Column("is_read", sa.Boolean, server_default="false"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notification_user", "notification", ["user_id"])
    op.create_index("ix_notification_type", "notification", ["notification_type"])
    op.create_index("ix_notification_read", "notification", ["is_read"])

    op.create_table(
        "reminder",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("reminder_type", sa.String(30), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assigned_to", sa.Uuid(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_reminder_scheduled", "reminder", ["scheduled_at"])
    op.create_index("ix_reminder_assigned", "reminder", ["assigned_to"])

    # --- Offline Sync Ledger ---

    op.create_table(
        "sync_operation",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.String(255), nullable=False),
        sa.Column("op_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("entity", sa.String(50), nullable=False),
        sa.Column("op_type", sa.String(20), nullable=False),
        sa.Column("server_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("result", sa.JSON, nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("client_id", "user_id", "op_id", name="uq_sync_operation_client_user_op"),
    )
    op.create_index("ix_sync_operation_user_status", "sync_operation", ["user_id", "status"])


def downgrade() -> None:
    op.drop_table("sync_operation")
    op.drop_table("reminder")
    op.drop_table("notification")
    op.drop_table("attachment")
    op.drop_table("toolbox_talk")
    op.drop_table("incident")
    op.drop_table("inspection")
    op.drop_table("site")
    op.drop_table("audit_log")
    op.drop_table("user")
