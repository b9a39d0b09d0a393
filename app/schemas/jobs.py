"""
Schemas for maintenance job intake and status endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProjectDetails(BaseModel):
    project_name: str = Field(min_length=1)
    site_type: str = "staging"


class SiteInfo(BaseModel):
    site_url: str = Field(min_length=1)
    wordpress_version: str | None = None


class AutomationPreferences(BaseModel):
    include_functionality_test: bool = False
    include_plugin_update: bool = False
    include_theme_update: bool = False
    include_before_after_vrt: bool = False
    include_sitemap_vrt: bool = False
    automation_frequency: str = "manual"
    automation_time: str = "02:00"


class PlatformConfig(BaseModel):
    timeout: int = Field(default=30000, ge=1000)
    screenshot_full: bool = True


class SitemapConfig(BaseModel):
    page_sitemap_url: str | None = None
    post_sitemap_url: str | None = None


class JobCreateRequest(BaseModel):
    project_details: ProjectDetails
    site_info: SiteInfo
    automation_preferences: AutomationPreferences = Field(default_factory=AutomationPreferences)
    platform_config: PlatformConfig = Field(default_factory=PlatformConfig)
    sitemap_config: SitemapConfig = Field(default_factory=SitemapConfig)
    notification_emails: list[str] = Field(default_factory=list)
    timestamp: datetime | None = None


class JobTasks(BaseModel):
    functionality_test: bool
    plugin_update: bool
    theme_update: bool
    before_after_vrt: bool
    sitemap_vrt: bool


class JobData(BaseModel):
    job_id: UUID
    project_name: str
    site_url: str
    site_type: str
    status: str
    tasks: JobTasks
    start_time: datetime | None = None
    end_time: datetime | None = None
    before_state_id: UUID | None = None
    after_state_id: UUID | None = None
    error_message: str | None = None
    reference_task_id: UUID | None = None


class JobResponse(BaseModel):
    success: bool = True
    message: str
    data: JobData


class JobListResponse(BaseModel):
    success: bool = True
    message: str
    data: list[JobData] = Field(default_factory=list)
