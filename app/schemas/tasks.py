"""
Schemas for background pipeline task status.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class TaskStatusData(BaseModel):
    task_id: UUID
    task_type: str
    job_id: UUID | None = None
    status: str
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    request_payload: dict[str, Any] | None = None
    result_payload: dict[str, Any] | None = None
    error_message: str | None = None


class TaskStatusResponse(BaseModel):
    success: bool = True
    message: str
    data: TaskStatusData


class TaskListResponse(BaseModel):
    success: bool = True
    message: str
    data: list[TaskStatusData] = Field(default_factory=list)
