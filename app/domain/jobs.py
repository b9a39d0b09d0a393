"""
app/domain/jobs.py

Read model of a maintenance job as seen by the VRT and report engines.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime


class JobStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = frozenset({PENDING, RUNNING, COMPLETED, FAILED})


class SiteType:
    STAGING = "staging"
    LIVE = "live"

    ALL = frozenset({STAGING, LIVE})


@dataclass(frozen=True)
class TaskPreferences:
    """
    Which maintenance tasks the job was asked to run.
    """

    functionality_test: bool = False
    plugin_update: bool = False
    theme_update: bool = False
    before_after_vrt: bool = False
    sitemap_vrt: bool = False
    frequency: str = "manual"
    scheduled_time: str = "02:00"

    def as_flags(self) -> dict[str, bool]:
        return {
            "functionality_test": self.functionality_test,
            "plugin_update": self.plugin_update,
            "theme_update": self.theme_update,
            "before_after_vrt": self.before_after_vrt,
            "sitemap_vrt": self.sitemap_vrt,
        }


@dataclass(frozen=True)
class MaintenanceJobView:
    job_id: uuid.UUID
    project_name: str
    site_url: str
    site_type: str
    status: str
    preferences: TaskPreferences = field(default_factory=TaskPreferences)
    page_sitemap_url: str | None = None
    post_sitemap_url: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    before_state_id: uuid.UUID | None = None
    after_state_id: uuid.UUID | None = None
    notification_emails: tuple[str, ...] = ()
