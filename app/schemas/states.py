"""
Schemas for inventory snapshot intake.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class StateData(BaseModel):
    state_id: UUID
    state_type: str
    job_id: UUID | None = None
    site_url: str
    site_name: str
    plugins_count: int
    themes_count: int
    plugin_updates_available: int
    theme_updates_available: int
    active_theme: str | None = None
    wordpress_version: str | None = None
    php_version: str | None = None
    timestamp: datetime


class StateResponse(BaseModel):
    success: bool = True
    message: str
    data: StateData
