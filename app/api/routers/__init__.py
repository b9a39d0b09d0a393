"""
app/api/routers package marker.
"""

from app.api.routers.jobs import router as jobs_router
from app.api.routers.reports import router as reports_router
from app.api.routers.states import router as states_router
from app.api.routers.tasks import router as tasks_router
from app.api.routers.vrt import router as vrt_router

__all__ = [
    "jobs_router",
    "reports_router",
    "states_router",
    "tasks_router",
    "vrt_router",
]
