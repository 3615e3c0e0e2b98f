"""audit_workflow_initial_tables

Creates the audit workflow tables:
  - audit_companies         — audited companies, stage, risk checklist, due date, signing document
  - audit_tasks             — per-company checklist rows
  - audit_locks             — one exclusive TTL edit lock per company (PK = company_id)
  - audit_task_discussions  — append-only task comments
  - audit_notifications     — mention notifications addressed by name key
  - audit_users             — mention directory (last write wins per actor id)
  - audit_presence          — presence heartbeats (PK = company_id, actor_id)
  - audit_activity_events   — append-only activity journal
  - scheduled_jobs          — housekeeping job registry and run tracking

Tables created conditionally (IF NOT EXISTS semantics) to support idempotent
execution against databases that already received these tables via db.create_all()
in a development environment.

Revision ID: 6a1f0c2d9e10
Revises:
Create Date: 2026-03-02 09:14:31.552018
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '6a1f0c2d9e10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Company ───────────────────────────────────────────────────────────
    if "audit_companies" not in existing:
        op.create_table(
            "audit_companies",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("company_group", sa.String(length=100), nullable=True),
            sa.Column("organization_number", sa.String(length=30), nullable=True),
            sa.Column("organization_type", sa.String(length=100), nullable=True),
            sa.Column("responsible_partner", sa.String(length=150), nullable=True),
            sa.Column(
                "audit_stage", sa.String(length=40), nullable=False,
                server_default="First time auditing",
                comment="First time auditing | First time review | Second time review | Partner review | Signing",
            ),
            sa.Column("overall_risk_assessed", sa.Boolean(), nullable=True),
            sa.Column("fraud_risk_documented", sa.Boolean(), nullable=True),
            sa.Column("controls_tested", sa.Boolean(), nullable=True),
            sa.Column("partner_review_ready", sa.Boolean(), nullable=True),
            sa.Column("task_due_date", sa.Date(), nullable=True),
            sa.Column("signing_document", sa.Text(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_audit_companies_name", "audit_companies", ["name"])

    # ── Task ──────────────────────────────────────────────────────────────
    if "audit_tasks" not in existing:
        op.create_table(
            "audit_tasks",
            sa.Column("id", sa.String(length=100), nullable=False),
            sa.Column("company_id", sa.String(length=64), nullable=False),
            sa.Column("task_number", sa.String(length=20), nullable=False),
            sa.Column("task", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("robot_processed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="In progress"),
            sa.Column("comment", sa.Text(), nullable=True),
            sa.Column("evidence", sa.Text(), nullable=True),
            sa.Column("last_updated", sa.Date(), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["audit_companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_audit_tasks_company_id", "audit_tasks", ["company_id"])
        op.create_index("idx_audit_task_company", "audit_tasks", ["company_id", "task_number"])

    # ── Lock ──────────────────────────────────────────────────────────────
    if "audit_locks" not in existing:
        op.create_table(
            "audit_locks",
            sa.Column(
                "company_id", sa.String(length=64), nullable=False,
                comment="Primary key: at most one lock row per company.",
            ),
            sa.Column("actor_id", sa.String(length=100), nullable=False),
            sa.Column("actor_name", sa.String(length=150), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["company_id"], ["audit_companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("company_id"),
        )
        op.create_index("ix_audit_locks_actor_id", "audit_locks", ["actor_id"])
        op.create_index("ix_audit_locks_expires_at", "audit_locks", ["expires_at"])

    # ── Discussion ────────────────────────────────────────────────────────
    if "audit_task_discussions" not in existing:
        op.create_table(
            "audit_task_discussions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.String(length=64), nullable=False),
            sa.Column("task_id", sa.String(length=100), nullable=False),
            sa.Column("author_actor_id", sa.String(length=100), nullable=False),
            sa.Column("author_name", sa.String(length=150), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["company_id"], ["audit_companies.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["task_id"], ["audit_tasks.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_audit_task_discussions_task_id", "audit_task_discussions", ["task_id"])
        op.create_index(
            "idx_discussion_company_ts", "audit_task_discussions", ["company_id", "created_at"]
        )

    # ── Notification ──────────────────────────────────────────────────────
    if "audit_notifications" not in existing:
        op.create_table(
            "audit_notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.String(length=64), nullable=False),
            sa.Column("task_id", sa.String(length=100), nullable=True),
            sa.Column("recipient_name_key", sa.String(length=150), nullable=False),
            sa.Column("recipient_name", sa.String(length=150), nullable=False),
            sa.Column("sender_name", sa.String(length=150), nullable=False),
            sa.Column(
                "notification_type", sa.String(length=30), nullable=False,
                server_default="mention",
            ),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["audit_companies.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["task_id"], ["audit_tasks.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_audit_notifications_company_id", "audit_notifications", ["company_id"])
        op.create_index(
            "idx_notification_recipient_read", "audit_notifications",
            ["recipient_name_key", "is_read"],
        )

    # ── Directory user ────────────────────────────────────────────────────
    if "audit_users" not in existing:
        op.create_table(
            "audit_users",
            sa.Column("actor_id", sa.String(length=100), nullable=False),
            sa.Column("display_name", sa.String(length=150), nullable=False),
            sa.Column("name_key", sa.String(length=150), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="auditor"),
            sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("actor_id"),
        )
        op.create_index("ix_audit_users_name_key", "audit_users", ["name_key"])

    # ── Presence ──────────────────────────────────────────────────────────
    if "audit_presence" not in existing:
        op.create_table(
            "audit_presence",
            sa.Column("company_id", sa.String(length=64), nullable=False),
            sa.Column("actor_id", sa.String(length=100), nullable=False),
            sa.Column("actor_name", sa.String(length=150), nullable=False),
            sa.Column("actor_role", sa.String(length=20), nullable=False),
            sa.Column("active_tab", sa.String(length=50), nullable=False),
            sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["company_id"], ["audit_companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("company_id", "actor_id"),
        )
        op.create_index("ix_audit_presence_last_seen_at", "audit_presence", ["last_seen_at"])

    # ── Activity ──────────────────────────────────────────────────────────
    if "audit_activity_events" not in existing:
        op.create_table(
            "audit_activity_events",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.String(length=64), nullable=False),
            sa.Column("actor_id", sa.String(length=100), nullable=False),
            sa.Column("actor_name", sa.String(length=150), nullable=False),
            sa.Column(
                "event_type", sa.String(length=30), nullable=False,
                comment="stage_change | stage_signing | task_status | task_comment | …",
            ),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["company_id"], ["audit_companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "idx_activity_company_ts", "audit_activity_events", ["company_id", "created_at"]
        )
        op.create_index("idx_activity_type", "audit_activity_events", ["event_type"])

    # ── Scheduled jobs ────────────────────────────────────────────────────
    if "scheduled_jobs" not in existing:
        op.create_table(
            "scheduled_jobs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("job_name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("schedule_type", sa.String(length=30), nullable=True),
            sa.Column("schedule_config", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("is_enabled", sa.Boolean(), nullable=True),
            sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("last_run_status", sa.String(length=20), nullable=True),
            sa.Column("last_run_duration_ms", sa.Integer(), nullable=True),
            sa.Column("last_run_result", sa.JSON(), nullable=True),
            sa.Column("run_count", sa.Integer(), nullable=True),
            sa.Column("error_count", sa.Integer(), nullable=True),
            sa.Column("last_error", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("job_name"),
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # Children first
    for table in (
        "scheduled_jobs",
        "audit_activity_events",
        "audit_presence",
        "audit_users",
        "audit_notifications",
        "audit_task_discussions",
        "audit_locks",
        "audit_tasks",
        "audit_companies",
    ):
        if table in existing:
            op.drop_table(table)
