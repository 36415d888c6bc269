"""initial schema: users, notes, moderation workflow, notifications

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False, unique=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default=sa.text("'user'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),

        sa.Column("college_name", sa.String(length=128), nullable=True),
        sa.Column("course", sa.String(length=128), nullable=True),
        sa.Column("semester", sa.Integer(), nullable=True),
        sa.Column("student_type", sa.String(length=8), nullable=True),

        sa.Column("total_uploads", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("approved_uploads", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("rejected_uploads", sa.Integer(), nullable=False, server_default=sa.text("0")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "notes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False, server_default=sa.text("''")),

        sa.Column("college", sa.String(length=16), nullable=False),
        sa.Column("course", sa.String(length=128), nullable=False),
        sa.Column("subcourse", sa.String(length=128), nullable=False, server_default=sa.text("''")),
        sa.Column("semester", sa.String(length=2), nullable=False),
        sa.Column("subject", sa.String(length=128), nullable=False),
        sa.Column("program_level", sa.String(length=2), nullable=False, server_default=sa.text("''")),
        sa.Column("upload_type", sa.String(length=32), nullable=False),

        sa.Column("professor", sa.String(length=128), nullable=False, server_default=sa.text("''")),
        sa.Column("year", sa.String(length=16), nullable=False, server_default=sa.text("''")),
        sa.Column("tags", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),

        sa.Column("file_original_name", sa.String(length=255), nullable=False),
        sa.Column("file_key", sa.String(length=1024), nullable=False, unique=True),
        sa.Column("file_bucket", sa.String(length=255), nullable=False),
        sa.Column("file_mime_type", sa.String(length=128), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("file_uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),

        sa.Column(
            "uploaded_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),

        sa.Column("approved_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=1000), nullable=True),

        sa.Column("download_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("search_keywords", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),

        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_notes_status"),
        sa.CheckConstraint("download_count >= 0", name="ck_notes_download_count"),
    )
    op.create_index("ix_notes_browse", "notes", ["college", "course", "semester", "subject"])
    op.create_index("ix_notes_status", "notes", ["status"])
    op.create_index("ix_notes_uploaded_by", "notes", ["uploaded_by"])

    op.create_table(
        "note_moderation_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "note_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("notes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reason", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("note_id", "seq", name="uq_note_event_seq"),
    )

    op.create_table(
        "delete_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("note_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("note_title", sa.String(length=200), nullable=False, server_default=sa.text("''")),
        sa.Column("requester_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("decided_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decision_reason", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    # at most one pending request per note
    op.create_index(
        "uq_delete_request_pending_note",
        "delete_requests",
        ["note_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index("ix_delete_requests_status_created", "delete_requests", ["status", "created_at"])

    op.create_table(
        "moderator_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=False),
        sa.Column("experience", sa.String(length=500), nullable=False),
        sa.Column("additional_info", sa.String(length=1000), nullable=True),
        sa.Column("college", sa.String(length=128), nullable=False),
        sa.Column("course", sa.String(length=128), nullable=False),
        sa.Column("semester", sa.String(length=8), nullable=True),
        sa.Column("previous_contributions", sa.String(length=1000), nullable=True),
        sa.Column("linkedin_profile", sa.String(length=256), nullable=True),
        sa.Column("github_profile", sa.String(length=256), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_feedback", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "uq_moderator_request_pending_applicant",
        "moderator_requests",
        ["applicant_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index("ix_moderator_requests_status_created", "moderator_requests", ["status", "created_at"])

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False, server_default=sa.text("''")),
        sa.Column("message", sa.String(length=1000), nullable=False),
        sa.Column("link", sa.String(length=256), nullable=True),
        sa.Column("metadata_json", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "ix_notifications_user_read_created", "notifications", ["user_id", "is_read", "created_at"]
    )

    op.create_table(
        "site_settings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("site_name", sa.String(length=128), nullable=False, server_default=sa.text("'College Notes'")),
        sa.Column("max_upload_size_mb", sa.Integer(), nullable=False, server_default=sa.text("50")),
        sa.Column(
            "allowed_file_types",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text(
                """'["pdf", "doc", "docx", "ppt", "pptx", "txt", "jpg", "png"]'::jsonb"""
            ),
        ),
        sa.Column("auto_approval", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("moderator_auto_approval", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("require_login_for_upload", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("id = 1", name="ck_site_settings_single_row"),
        sa.CheckConstraint("max_upload_size_mb BETWEEN 1 AND 100", name="ck_site_settings_upload_size"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("actor_role", sa.String(length=32), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("target_type", sa.String(length=32), nullable=False),
        sa.Column("target_id", sa.String(length=64), nullable=False),
        sa.Column("request_id", sa.String(length=128), nullable=True),
        sa.Column("details_json", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_audit_target", "audit_logs", ["target_type", "target_id"])
    op.create_index("ix_audit_created_at", "audit_logs", ["created_at"])


def downgrade():
    op.drop_index("ix_audit_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_target", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_table("site_settings")

    op.drop_index("ix_notifications_user_read_created", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_moderator_requests_status_created", table_name="moderator_requests")
    op.drop_index("uq_moderator_request_pending_applicant", table_name="moderator_requests")
    op.drop_table("moderator_requests")

    op.drop_index("ix_delete_requests_status_created", table_name="delete_requests")
    op.drop_index("uq_delete_request_pending_note", table_name="delete_requests")
    op.drop_table("delete_requests")

    op.drop_table("note_moderation_events")

    op.drop_index("ix_notes_uploaded_by", table_name="notes")
    op.drop_index("ix_notes_status", table_name="notes")
    op.drop_index("ix_notes_browse", table_name="notes")
    op.drop_table("notes")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
