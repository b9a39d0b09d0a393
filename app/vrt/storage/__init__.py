"""
Storage interfaces and SQLAlchemy adapters for VRT engines.
"""

from app.vrt.storage.base import JobStore, ReportStore, SnapshotStore, VRTSessionStore

__all__ = ["JobStore", "ReportStore", "SnapshotStore", "VRTSessionStore"]
