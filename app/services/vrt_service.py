"""
VRT phase orchestration for jobs: sitemap lookup, reference capture, after
capture and progress polling.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from app.domain.jobs import MaintenanceJobView
from app.domain.vrt import CapturePhase, VRTSession
from app.errors import NotFoundError, ValidationError
from app.vrt.logging_utils import log_event
from app.vrt.runtime import VRTRuntime
from app.vrt.types import PhaseRunSummary, ResolvedSitemap

logger = logging.getLogger(__name__)


def summary_payload(summary: PhaseRunSummary) -> dict[str, Any]:
    return {
        "phase": summary.phase,
        "attempted": summary.attempted,
        "succeeded": summary.succeeded,
        "failed": summary.failed,
        "skipped": summary.skipped,
        "failures": [
            {"url": outcome.request.url, "error": outcome.error}
            for outcome in summary.outcomes
            if not outcome.success
        ],
    }


def session_payload(session: VRTSession) -> dict[str, Any]:
    return {
        "session_id": str(session.session_id),
        "job_id": str(session.job_id),
        "site_url": session.site_url,
        "status": session.status,
        "pages": len(session.pages),
        "posts": len(session.posts),
        "before_captured": session.count_with(CapturePhase.BEFORE),
        "after_captured": session.count_with(CapturePhase.AFTER),
        "before_completed_at": session.before_completed_at.isoformat() if session.before_completed_at else None,
        "after_completed_at": session.after_completed_at.isoformat() if session.after_completed_at else None,
    }


class VRTService:
    def __init__(self, *, runtime: VRTRuntime) -> None:
        self._runtime = runtime

    def resolve_sitemap_urls(
        self,
        *,
        site_url: str,
        page_sitemap_url: str | None = None,
        post_sitemap_url: str | None = None,
    ) -> ResolvedSitemap:
        if not site_url and not page_sitemap_url and not post_sitemap_url:
            raise ValidationError("site_url or a sitemap URL is required.")
        return self._runtime.sitemap_resolver().resolve_site(
            site_url=site_url,
            page_sitemap_url=page_sitemap_url,
            post_sitemap_url=post_sitemap_url,
            cache=self._runtime.sitemap_cache,
        )

    def urls_for_job(self, job: MaintenanceJobView) -> ResolvedSitemap | None:
        """
        Cached site URLs first, then a live sitemap resolve.
        """

        cached = self._runtime.sitemap_cache.get(job.site_url)
        if cached is not None and not cached.is_empty:
            return cached
        if not job.page_sitemap_url and not job.post_sitemap_url:
            log_event(
                logger,
                logging.WARNING,
                "reference_capture_no_sitemap",
                job_id=str(job.job_id),
                site_url=job.site_url,
            )
            return None
        return self.resolve_sitemap_urls(
            site_url=job.site_url,
            page_sitemap_url=job.page_sitemap_url,
            post_sitemap_url=job.post_sitemap_url,
        )

    def run_reference_capture(
        self,
        job_id: uuid.UUID,
        *,
        full_page: bool | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Create the job's VRT session and capture its `before` phase.

        A job with no resolvable URLs gets no session; the result says so.
        """

        job = self._runtime.jobs.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Maintenance job {job_id} not found.")

        resolved = self.urls_for_job(job)
        if resolved is None or resolved.is_empty:
            return {"job_id": str(job_id), "session_id": None, "message": "No URLs to capture"}

        machine = self._runtime.session_machine(full_page=full_page, timeout_ms=timeout_ms)
        session, summary = machine.begin_campaign(
            job_id=job_id,
            site_url=job.site_url,
            pages=resolved.pages,
            posts=resolved.posts,
        )
        log_event(
            logger,
            logging.INFO,
            "reference_capture_completed",
            job_id=str(job_id),
            session_id=str(session.session_id),
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return {**session_payload(session), "summary": summary_payload(summary)}

    def run_after_phase(
        self,
        job_id: uuid.UUID,
        *,
        full_page: bool | None = None,
        timeout_ms: int | None = None,
    ) -> tuple[VRTSession, PhaseRunSummary]:
        machine = self._runtime.session_machine(full_page=full_page, timeout_ms=timeout_ms)
        return machine.run_after_for_job(job_id)

    def get_progress(self, job_id: uuid.UUID) -> VRTSession:
        session = self._runtime.sessions.get_session_for_job(job_id)
        if session is None:
            raise NotFoundError(f"No VRT session for job {job_id}.")
        return session
