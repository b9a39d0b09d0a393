"""
app/domain package marker.
"""

from app.domain.inventory import ExtensionRecord, InventorySnapshot, StateType
from app.domain.jobs import JobStatus, MaintenanceJobView, SiteType, TaskPreferences
from app.domain.report import ReconciliationResult, ReportRecord, ReportStatus
from app.domain.vrt import (
    ArtifactRef,
    CapturePhase,
    DiffResult,
    DiffStatus,
    EntryKind,
    SessionStatus,
    VRTEntry,
    VRTSession,
)

__all__ = [
    "ArtifactRef",
    "CapturePhase",
    "DiffResult",
    "DiffStatus",
    "EntryKind",
    "ExtensionRecord",
    "InventorySnapshot",
    "JobStatus",
    "MaintenanceJobView",
    "ReconciliationResult",
    "ReportRecord",
    "ReportStatus",
    "SessionStatus",
    "SiteType",
    "StateType",
    "TaskPreferences",
    "VRTEntry",
    "VRTSession",
]
