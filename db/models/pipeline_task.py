"""
db/models/pipeline_task.py

Background pipeline task tracking (reference capture, after capture, reports).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PipelineTaskType:
    REFERENCE_CAPTURE = "reference_capture"
    AFTER_CAPTURE = "after_capture"
    SITEMAP_REFRESH = "sitemap_refresh"


class PipelineTaskStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineTask(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "pipeline_tasks"

    task_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="reference_capture, after_capture, sitemap_refresh",
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Owning maintenance job, when the task belongs to one",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=PipelineTaskStatus.PENDING,
    )
    request_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Submitted task parameters",
    )
    result_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Phase summary or other execution result",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_pipeline_tasks_task_type", "task_type"),
        Index("ix_pipeline_tasks_status", "status"),
        Index("ix_pipeline_tasks_job_id", "job_id"),
        Index("ix_pipeline_tasks_created_at", "created_at"),
    )
