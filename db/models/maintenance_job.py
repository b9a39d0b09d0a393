"""
db/models/maintenance_job.py

Maintenance job: one run of updates against a site, with its task preferences.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.site_state import SiteState
    from db.models.vrt_session import VRTSessionRecord


class MaintenanceJob(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "maintenance_jobs"

    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    site_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    site_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="staging, live",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="pending",
        comment="pending → running → completed | failed",
    )

    # ── Task preferences ───────────────────────────────────────────────────────

    functionality_test: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    plugin_update: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    theme_update: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    before_after_vrt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sitemap_vrt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    frequency: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    scheduled_time: Mapped[str] = mapped_column(String(8), nullable=False, default="02:00")

    # ── Capture configuration ──────────────────────────────────────────────────

    page_sitemap_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    post_sitemap_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    capture_timeout_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=30000)
    capture_full_page: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    notification_emails: Mapped[list[str] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Report notification recipients",
    )
    before_state_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    after_state_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────────

    site_states: Mapped[list["SiteState"]] = relationship(
        "SiteState",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    vrt_sessions: Mapped[list["VRTSessionRecord"]] = relationship(
        "VRTSessionRecord",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_maintenance_jobs_status", "status"),
        Index("ix_maintenance_jobs_site_url", "site_url"),
        Index("ix_maintenance_jobs_created_at", "created_at"),
    )
