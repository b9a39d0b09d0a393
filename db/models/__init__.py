"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.maintenance_job import MaintenanceJob
from db.models.pipeline_task import PipelineTask
from db.models.report import Report
from db.models.site import Site
from db.models.site_state import SiteState
from db.models.vrt_session import VRTEntryRecord, VRTSessionRecord

__all__ = [
    "MaintenanceJob",
    "PipelineTask",
    "Report",
    "Site",
    "SiteState",
    "VRTEntryRecord",
    "VRTSessionRecord",
]
