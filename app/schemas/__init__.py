"""
app/schemas package marker.
"""

from app.schemas.common import ErrorResponse
from app.schemas.jobs import JobCreateRequest, JobData, JobListResponse, JobResponse
from app.schemas.reports import ReportCreateRequest, ReportResponse
from app.schemas.states import StateData, StateResponse
from app.schemas.tasks import TaskListResponse, TaskStatusData, TaskStatusResponse
from app.schemas.vrt import (
    AfterPhaseRequest,
    AfterPhaseResponse,
    SessionResponse,
    SitemapUrlsRequest,
    SitemapUrlsResponse,
)

__all__ = [
    "AfterPhaseRequest",
    "AfterPhaseResponse",
    "ErrorResponse",
    "JobCreateRequest",
    "JobData",
    "JobListResponse",
    "JobResponse",
    "ReportCreateRequest",
    "ReportResponse",
    "SessionResponse",
    "SitemapUrlsRequest",
    "SitemapUrlsResponse",
    "StateData",
    "StateResponse",
    "TaskListResponse",
    "TaskStatusData",
    "TaskStatusResponse",
]
