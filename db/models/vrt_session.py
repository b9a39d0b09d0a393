"""
db/models/vrt_session.py

Before/after VRT session and its fixed list of page/post entries.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.maintenance_job import MaintenanceJob


class VRTSessionRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "vrt_sessions"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("maintenance_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    site_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="before_pending → before_completed → after_pending → after_completed",
    )
    before_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    after_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    job: Mapped["MaintenanceJob"] = relationship(
        "MaintenanceJob",
        back_populates="vrt_sessions",
    )
    entries: Mapped[list["VRTEntryRecord"]] = relationship(
        "VRTEntryRecord",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="VRTEntryRecord.position",
    )

    __table_args__ = (
        Index("ix_vrt_sessions_job_id", "job_id"),
        Index("ix_vrt_sessions_status", "status"),
    )


class VRTEntryRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "vrt_entries"

    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vrt_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(16), nullable=False, comment="page, post")
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Stored capture order within the session",
    )
    url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    before_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    before_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    after_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    after_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)

    diff_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    diff_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    diff_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    diff_status: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="pass, fail, error",
    )
    diff_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    session: Mapped["VRTSessionRecord"] = relationship(
        "VRTSessionRecord",
        back_populates="entries",
    )

    __table_args__ = (
        UniqueConstraint("session_id", "kind", "url", name="uq_vrt_entries_session_kind_url"),
        Index("ix_vrt_entries_session_id", "session_id"),
    )
