"""
app/services package marker.
"""

from app.services.inventory_service import InventoryService
from app.services.job_service import JobRequest, JobService
from app.services.notification_service import EmailNotifier, NullNotifier, build_notifier
from app.services.report_service import ReportService
from app.services.task_service import (
    FastAPIBackgroundTaskExecutor,
    InlineTaskExecutor,
    PipelineTaskService,
)
from app.services.vrt_service import VRTService

__all__ = [
    "EmailNotifier",
    "FastAPIBackgroundTaskExecutor",
    "InlineTaskExecutor",
    "InventoryService",
    "JobRequest",
    "JobService",
    "NullNotifier",
    "PipelineTaskService",
    "ReportService",
    "VRTService",
    "build_notifier",
]
