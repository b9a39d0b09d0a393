"""
Maintenance job intake and status lookup.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.domain.jobs import SiteType, TaskPreferences
from app.errors import NotFoundError, ValidationError
from app.vrt.logging_utils import log_event
from app.vrt.sitemap import normalize_site_url
from db.models.maintenance_job import MaintenanceJob
from db.repositories.maintenance_job_repository import MaintenanceJobRepository
from db.repositories.site_repository import SiteRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobRequest:
    project_name: str
    site_url: str
    site_type: str = SiteType.STAGING
    preferences: TaskPreferences = field(default_factory=TaskPreferences)
    page_sitemap_url: str | None = None
    post_sitemap_url: str | None = None
    capture_timeout_ms: int = 30000
    capture_full_page: bool = True
    notification_emails: tuple[str, ...] = ()
    start_time: datetime | None = None


class JobService:
    def create_job(self, *, db: Session, request: JobRequest) -> MaintenanceJob:
        """
        Persist a pending job and remember the site's sitemap configuration.
        """

        if not request.project_name.strip() or not request.site_url.strip():
            raise ValidationError("Missing required fields: project_name and site_url are required")
        if request.site_type not in SiteType.ALL:
            raise ValidationError(f"Invalid site_type '{request.site_type}'. Allowed: {sorted(SiteType.ALL)}.")

        prefs = request.preferences
        job = MaintenanceJobRepository(db).create_job(
            project_name=request.project_name.strip(),
            site_url=request.site_url.strip(),
            site_type=request.site_type,
            functionality_test=prefs.functionality_test,
            plugin_update=prefs.plugin_update,
            theme_update=prefs.theme_update,
            before_after_vrt=prefs.before_after_vrt,
            sitemap_vrt=prefs.sitemap_vrt,
            frequency=prefs.frequency,
            scheduled_time=prefs.scheduled_time,
            page_sitemap_url=request.page_sitemap_url,
            post_sitemap_url=request.post_sitemap_url,
            capture_timeout_ms=request.capture_timeout_ms,
            capture_full_page=request.capture_full_page,
            notification_emails=list(request.notification_emails),
            start_time=request.start_time or datetime.now(timezone.utc),
        )

        if request.page_sitemap_url or request.post_sitemap_url:
            sites = SiteRepository(db)
            site_key = normalize_site_url(request.site_url)
            existing = sites.get_by_url(site_key)
            sites.upsert_urls(
                site_url=site_key,
                pages=list(existing.page_urls or []) if existing else [],
                posts=list(existing.post_urls or []) if existing else [],
                fetched_at=existing.last_fetched_at if existing else None,
                page_sitemap_url=request.page_sitemap_url,
                post_sitemap_url=request.post_sitemap_url,
            )

        db.commit()
        log_event(
            logger,
            logging.INFO,
            "maintenance_job_created",
            job_id=str(job.id),
            site_url=job.site_url,
            before_after_vrt=prefs.before_after_vrt,
        )
        return job

    def get_job(self, *, db: Session, job_id: uuid.UUID) -> MaintenanceJob:
        job = MaintenanceJobRepository(db).get_job(job_id)
        if job is None:
            raise NotFoundError(f"Maintenance job {job_id} not found.")
        return job

    def list_jobs(
        self,
        *,
        db: Session,
        limit: int = 100,
        status: str | None = None,
        site_url: str | None = None,
    ) -> list[MaintenanceJob]:
        return MaintenanceJobRepository(db).list_jobs(limit=limit, status=status, site_url=site_url)
