"""
Repository for pipeline task lifecycle persistence and status lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.pipeline_task import PipelineTask, PipelineTaskStatus


class PipelineTaskRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_task(
        self,
        *,
        task_type: str,
        job_id: uuid.UUID | None = None,
        request_payload: dict[str, Any] | None = None,
    ) -> PipelineTask:
        task = PipelineTask(
            task_type=task_type,
            job_id=job_id,
            status=PipelineTaskStatus.PENDING,
            request_payload=request_payload,
        )
        self._session.add(task)
        self._session.flush()
        self._session.refresh(task)
        return task

    def get_task(self, task_id: uuid.UUID) -> PipelineTask | None:
        return self._session.get(PipelineTask, task_id)

    def list_tasks(
        self,
        *,
        limit: int = 100,
        job_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[PipelineTask]:
        stmt: Select[tuple[PipelineTask]] = select(PipelineTask)
        if job_id:
            stmt = stmt.where(PipelineTask.job_id == job_id)
        if status:
            stmt = stmt.where(PipelineTask.status == status)
        stmt = stmt.order_by(PipelineTask.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, task_id: uuid.UUID) -> PipelineTask | None:
        task = self.get_task(task_id)
        if task is None:
            return None
        task.status = PipelineTaskStatus.RUNNING
        task.started_at = utcnow()
        task.completed_at = None
        task.error_message = None
        return task

    def mark_completed(
        self,
        *,
        task_id: uuid.UUID,
        result_payload: dict[str, Any] | None = None,
    ) -> PipelineTask | None:
        task = self.get_task(task_id)
        if task is None:
            return None
        task.status = PipelineTaskStatus.COMPLETED
        task.completed_at = utcnow()
        task.result_payload = result_payload
        task.error_message = None
        return task

    def mark_failed(
        self,
        *,
        task_id: uuid.UUID,
        error_message: str,
        result_payload: dict[str, Any] | None = None,
    ) -> PipelineTask | None:
        task = self.get_task(task_id)
        if task is None:
            return None
        task.status = PipelineTaskStatus.FAILED
        task.completed_at = utcnow()
        task.error_message = error_message
        if result_payload is not None:
            task.result_payload = result_payload
        return task

    def fail_stale_running(self, *, started_before: datetime, error_message: str) -> int:
        """
        Mark tasks stuck in `running` since before `started_before` as failed.
        """

        stmt = select(PipelineTask).where(
            PipelineTask.status == PipelineTaskStatus.RUNNING,
            PipelineTask.started_at < started_before,
        )
        stale = list(self._session.scalars(stmt).all())
        now = utcnow()
        for task in stale:
            task.status = PipelineTaskStatus.FAILED
            task.completed_at = now
            task.error_message = error_message
        return len(stale)
