"""
Background pipeline task status endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.dependencies import get_task_service
from app.errors import NotFoundError
from app.schemas.tasks import TaskListResponse, TaskStatusData, TaskStatusResponse
from app.services.task_service import PipelineTaskService
from db.models.pipeline_task import PipelineTask
from db.session import get_db

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=TaskListResponse)
def list_tasks(
    job_id: UUID | None = Query(default=None, description="Optional maintenance job filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max tasks returned"),
    db: Session = Depends(get_db),
    tasks: PipelineTaskService = Depends(get_task_service),
) -> TaskListResponse:
    rows = tasks.list_tasks(db=db, limit=limit, job_id=job_id, status=status_filter)
    return TaskListResponse(
        message=f"{len(rows)} tasks found",
        data=[_to_task_data(row) for row in rows],
    )


@router.get("/{task_id}", response_model=TaskStatusResponse)
def get_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    tasks: PipelineTaskService = Depends(get_task_service),
) -> TaskStatusResponse:
    task = tasks.get_task(db=db, task_id=task_id)
    if task is None:
        raise NotFoundError(f"Pipeline task not found: {task_id}")
    return TaskStatusResponse(message=f"Task is {task.status}", data=_to_task_data(task))


def _to_task_data(task: PipelineTask) -> TaskStatusData:
    return TaskStatusData(
        task_id=task.id,
        task_type=task.task_type,
        job_id=task.job_id,
        status=task.status,
        created_at=task.created_at,
        updated_at=task.updated_at,
        started_at=task.started_at,
        completed_at=task.completed_at,
        request_payload=task.request_payload,
        result_payload=task.result_payload,
        error_message=task.error_message,
    )
