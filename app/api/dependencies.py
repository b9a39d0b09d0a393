"""
app/api/dependencies.py

Shared FastAPI dependencies: the process runtime and the services built on it.
"""

from __future__ import annotations

from fastapi import Depends, Request

from app.services.inventory_service import InventoryService
from app.services.job_service import JobService
from app.services.notification_service import build_notifier
from app.services.report_service import ReportService
from app.services.task_service import PipelineTaskService
from app.services.vrt_service import VRTService
from app.vrt.runtime import VRTRuntime


def get_runtime(request: Request) -> VRTRuntime:
    """
    Return the runtime opened by the application lifespan.
    """

    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise RuntimeError("VRT runtime is not initialised.")
    return runtime


def get_vrt_service(runtime: VRTRuntime = Depends(get_runtime)) -> VRTService:
    return VRTService(runtime=runtime)


def get_report_service(request: Request, runtime: VRTRuntime = Depends(get_runtime)) -> ReportService:
    notifier = getattr(request.app.state, "notifier", None) or build_notifier()
    return ReportService(runtime=runtime, notifier=notifier)


def get_job_service() -> JobService:
    return JobService()


def get_inventory_service() -> InventoryService:
    return InventoryService()


def get_task_service(request: Request) -> PipelineTaskService:
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        from db.session import SessionLocal

        session_factory = SessionLocal
    return PipelineTaskService(session_factory=session_factory)
