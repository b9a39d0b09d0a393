"""
Repository layer exports.
"""

from db.repositories.maintenance_job_repository import MaintenanceJobRepository
from db.repositories.pipeline_task_repository import PipelineTaskRepository
from db.repositories.report_repository import ReportRepository
from db.repositories.site_repository import SiteRepository
from db.repositories.site_state_repository import SiteStateRepository
from db.repositories.vrt_session_repository import VRTSessionRepository

__all__ = [
    "MaintenanceJobRepository",
    "PipelineTaskRepository",
    "ReportRepository",
    "SiteRepository",
    "SiteStateRepository",
    "VRTSessionRepository",
]
