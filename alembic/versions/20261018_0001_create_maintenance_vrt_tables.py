"""create maintenance VRT tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "maintenance_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_name", sa.String(length=255), nullable=False),
        sa.Column("site_url", sa.String(length=2048), nullable=False),
        sa.Column("site_type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("functionality_test", sa.Boolean(), nullable=False),
        sa.Column("plugin_update", sa.Boolean(), nullable=False),
        sa.Column("theme_update", sa.Boolean(), nullable=False),
        sa.Column("before_after_vrt", sa.Boolean(), nullable=False),
        sa.Column("sitemap_vrt", sa.Boolean(), nullable=False),
        sa.Column("frequency", sa.String(length=32), nullable=False),
        sa.Column("scheduled_time", sa.String(length=8), nullable=False),
        sa.Column("page_sitemap_url", sa.String(length=2048), nullable=True),
        sa.Column("post_sitemap_url", sa.String(length=2048), nullable=True),
        sa.Column("capture_timeout_ms", sa.Integer(), nullable=False),
        sa.Column("capture_full_page", sa.Boolean(), nullable=False),
        sa.Column("notification_emails", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("before_state_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("after_state_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_maintenance_jobs_status", "maintenance_jobs", ["status"], unique=False)
    op.create_index("ix_maintenance_jobs_site_url", "maintenance_jobs", ["site_url"], unique=False)
    op.create_index("ix_maintenance_jobs_created_at", "maintenance_jobs", ["created_at"], unique=False)

    op.create_table(
        "sites",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("site_url", sa.String(length=2048), nullable=False),
        sa.Column("page_sitemap_url", sa.String(length=2048), nullable=True),
        sa.Column("post_sitemap_url", sa.String(length=2048), nullable=True),
        sa.Column("page_urls", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("post_urls", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("last_fetched_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("site_url", name="uq_sites_site_url"),
    )

    op.create_table(
        "site_states",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("state_type", sa.String(length=16), nullable=False),
        sa.Column("site_url", sa.String(length=2048), nullable=False),
        sa.Column("site_name", sa.String(length=255), nullable=False),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("plugins", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("themes", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("wordpress_version", sa.String(length=32), nullable=True),
        sa.Column("php_version", sa.String(length=32), nullable=True),
        sa.Column("is_multisite", sa.Boolean(), nullable=False),
        sa.Column("active_theme", sa.String(length=255), nullable=True),
        sa.Column("plugin_update_count", sa.Integer(), nullable=False),
        sa.Column("theme_update_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["job_id"], ["maintenance_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_site_states_job_id", "site_states", ["job_id"], unique=False)
    op.create_index("ix_site_states_job_state_type", "site_states", ["job_id", "state_type"], unique=False)
    op.create_index("ix_site_states_site_url", "site_states", ["site_url"], unique=False)

    op.create_table(
        "vrt_sessions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("site_url", sa.String(length=2048), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("before_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("after_completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["job_id"], ["maintenance_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vrt_sessions_job_id", "vrt_sessions", ["job_id"], unique=False)
    op.create_index("ix_vrt_sessions_status", "vrt_sessions", ["status"], unique=False)

    op.create_table(
        "vrt_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("session_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=True),
        sa.Column("before_url", sa.Text(), nullable=True),
        sa.Column("before_public_id", sa.String(length=512), nullable=True),
        sa.Column("after_url", sa.Text(), nullable=True),
        sa.Column("after_public_id", sa.String(length=512), nullable=True),
        sa.Column("diff_url", sa.Text(), nullable=True),
        sa.Column("diff_public_id", sa.String(length=512), nullable=True),
        sa.Column("diff_percent", sa.Float(), nullable=True),
        sa.Column("diff_status", sa.String(length=16), nullable=True),
        sa.Column("diff_error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["session_id"], ["vrt_sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id", "kind", "url", name="uq_vrt_entries_session_kind_url"),
    )
    op.create_index("ix_vrt_entries_session_id", "vrt_entries", ["session_id"], unique=False)

    op.create_table(
        "reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["job_id"], ["maintenance_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id", name="uq_reports_job_id"),
    )
    op.create_index("ix_reports_status", "reports", ["status"], unique=False)
    op.create_index("ix_reports_generated_at", "reports", ["generated_at"], unique=False)

    op.create_table(
        "pipeline_tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("task_type", sa.String(length=50), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("request_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("result_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pipeline_tasks_task_type", "pipeline_tasks", ["task_type"], unique=False)
    op.create_index("ix_pipeline_tasks_status", "pipeline_tasks", ["status"], unique=False)
    op.create_index("ix_pipeline_tasks_job_id", "pipeline_tasks", ["job_id"], unique=False)
    op.create_index("ix_pipeline_tasks_created_at", "pipeline_tasks", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_pipeline_tasks_created_at", table_name="pipeline_tasks")
    op.drop_index("ix_pipeline_tasks_job_id", table_name="pipeline_tasks")
    op.drop_index("ix_pipeline_tasks_status", table_name="pipeline_tasks")
    op.drop_index("ix_pipeline_tasks_task_type", table_name="pipeline_tasks")
    op.drop_table("pipeline_tasks")
    op.drop_index("ix_reports_generated_at", table_name="reports")
    op.drop_index("ix_reports_status", table_name="reports")
    op.drop_table("reports")
    op.drop_index("ix_vrt_entries_session_id", table_name="vrt_entries")
    op.drop_table("vrt_entries")
    op.drop_index("ix_vrt_sessions_status", table_name="vrt_sessions")
    op.drop_index("ix_vrt_sessions_job_id", table_name="vrt_sessions")
    op.drop_table("vrt_sessions")
    op.drop_index("ix_site_states_site_url", table_name="site_states")
    op.drop_index("ix_site_states_job_state_type", table_name="site_states")
    op.drop_index("ix_site_states_job_id", table_name="site_states")
    op.drop_table("site_states")
    op.drop_table("sites")
    op.drop_index("ix_maintenance_jobs_created_at", table_name="maintenance_jobs")
    op.drop_index("ix_maintenance_jobs_site_url", table_name="maintenance_jobs")
    op.drop_index("ix_maintenance_jobs_status", table_name="maintenance_jobs")
    op.drop_table("maintenance_jobs")
