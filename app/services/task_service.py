"""
Background pipeline task dispatch and lifecycle tracking.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from db.models.pipeline_task import PipelineTask, PipelineTaskType
from db.repositories.pipeline_task_repository import PipelineTaskRepository

logger = logging.getLogger(__name__)

TaskWork = Callable[[], dict[str, Any] | None]


class TaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class InlineTaskExecutor:
    """Runs submitted work immediately on the calling thread (CLI use)."""

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        task(*args, **kwargs)


class PipelineTaskService:
    """
    Creates a tracked task row, submits its work and records the outcome.
    """

    def __init__(self, *, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def submit(
        self,
        *,
        db: Session,
        executor: TaskExecutor,
        task_type: str,
        work: TaskWork,
        job_id: uuid.UUID | None = None,
        request_payload: dict[str, Any] | None = None,
    ) -> PipelineTask:
        repository = PipelineTaskRepository(db)
        task = repository.create_task(
            task_type=task_type,
            job_id=job_id,
            request_payload=request_payload,
        )
        db.commit()

        try:
            executor.submit(self._run_task, task.id, work)
        except Exception:
            repository.mark_failed(
                task_id=task.id,
                error_message=f"Failed to schedule {task_type} task.",
            )
            db.commit()
            raise

        return task

    def submit_reference_capture(
        self,
        *,
        db: Session,
        executor: TaskExecutor,
        job_id: uuid.UUID,
        work: TaskWork,
    ) -> PipelineTask:
        return self.submit(
            db=db,
            executor=executor,
            task_type=PipelineTaskType.REFERENCE_CAPTURE,
            work=work,
            job_id=job_id,
            request_payload={"job_id": str(job_id)},
        )

    def get_task(self, *, db: Session, task_id: uuid.UUID) -> PipelineTask | None:
        return PipelineTaskRepository(db).get_task(task_id)

    def list_tasks(
        self,
        *,
        db: Session,
        limit: int = 100,
        job_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[PipelineTask]:
        return PipelineTaskRepository(db).list_tasks(limit=limit, job_id=job_id, status=status)

    def _run_task(self, task_id: uuid.UUID, work: TaskWork) -> None:
        with self._session_factory() as db:
            repository = PipelineTaskRepository(db)
            try:
                running_task = repository.mark_running(task_id=task_id)
                if running_task is None:
                    raise RuntimeError(f"Pipeline task not found: {task_id}")
                db.commit()

                result_payload = work()

                completed_task = repository.mark_completed(task_id=task_id, result_payload=result_payload)
                if completed_task is None:
                    raise RuntimeError(f"Pipeline task not found: {task_id}")
                db.commit()
            except Exception as exc:
                self._mark_task_failed(db=db, task_id=task_id, exc=exc)

    def _mark_task_failed(self, *, db: Session, task_id: uuid.UUID, exc: Exception) -> None:
        repository = PipelineTaskRepository(db)
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Pipeline task failed id=%s error=%s", task_id, error_message)
        try:
            db.rollback()
            failed_task = repository.mark_failed(task_id=task_id, error_message=error_message[:2000])
            if failed_task is None:
                logger.error("Unable to mark pipeline task as failed because it was not found id=%s", task_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed pipeline task state id=%s", task_id)
