"""
Repository for maintenance job persistence and lifecycle updates.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.maintenance_job import MaintenanceJob


class MaintenanceJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(self, **fields: Any) -> MaintenanceJob:
        job = MaintenanceJob(status="pending", **fields)
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> MaintenanceJob | None:
        return self._session.get(MaintenanceJob, job_id)

    def list_jobs(
        self,
        *,
        limit: int = 100,
        status: str | None = None,
        site_url: str | None = None,
    ) -> list[MaintenanceJob]:
        stmt: Select[tuple[MaintenanceJob]] = select(MaintenanceJob)
        if status:
            stmt = stmt.where(MaintenanceJob.status == status)
        if site_url:
            stmt = stmt.where(MaintenanceJob.site_url == site_url)
        stmt = stmt.order_by(MaintenanceJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, job_id: uuid.UUID) -> MaintenanceJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = "running"
        if job.start_time is None:
            job.start_time = utcnow()
        return job

    def mark_failed(self, *, job_id: uuid.UUID, error_message: str) -> MaintenanceJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = "failed"
        job.end_time = utcnow()
        job.error_message = error_message
        return job

    def attach_before_state(self, *, job_id: uuid.UUID, state_id: uuid.UUID) -> MaintenanceJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.before_state_id = state_id
        return job

    def attach_after_state(
        self,
        *,
        job_id: uuid.UUID,
        state_id: uuid.UUID,
        completed_at: datetime | None = None,
    ) -> MaintenanceJob | None:
        """
        Link the `after` snapshot and close out the job.
        """

        job = self.get_job(job_id)
        if job is None:
            return None
        job.after_state_id = state_id
        job.status = "completed"
        job.end_time = completed_at or utcnow()
        return job
