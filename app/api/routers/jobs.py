"""
Maintenance job intake and status endpoints.
"""

from __future__ import annotations

import uuid
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_job_service, get_task_service, get_vrt_service
from app.domain.jobs import TaskPreferences
from app.schemas.jobs import JobCreateRequest, JobData, JobListResponse, JobResponse, JobTasks
from app.services.job_service import JobRequest, JobService
from app.services.task_service import FastAPIBackgroundTaskExecutor, PipelineTaskService
from app.services.vrt_service import VRTService
from db.models.maintenance_job import MaintenanceJob
from db.session import get_db

router = APIRouter(tags=["jobs"])


@router.post("/jobs", status_code=status.HTTP_201_CREATED, response_model=JobResponse)
def create_job(
    payload: JobCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    jobs: JobService = Depends(get_job_service),
    tasks: PipelineTaskService = Depends(get_task_service),
    vrt: VRTService = Depends(get_vrt_service),
) -> JobResponse:
    prefs = payload.automation_preferences
    job = jobs.create_job(
        db=db,
        request=JobRequest(
            project_name=payload.project_details.project_name,
            site_url=payload.site_info.site_url,
            site_type=payload.project_details.site_type,
            preferences=TaskPreferences(
                functionality_test=prefs.include_functionality_test,
                plugin_update=prefs.include_plugin_update,
                theme_update=prefs.include_theme_update,
                before_after_vrt=prefs.include_before_after_vrt,
                sitemap_vrt=prefs.include_sitemap_vrt,
                frequency=prefs.automation_frequency,
                scheduled_time=prefs.automation_time,
            ),
            page_sitemap_url=payload.sitemap_config.page_sitemap_url,
            post_sitemap_url=payload.sitemap_config.post_sitemap_url,
            capture_timeout_ms=payload.platform_config.timeout,
            capture_full_page=payload.platform_config.screenshot_full,
            notification_emails=tuple(payload.notification_emails),
            start_time=payload.timestamp,
        ),
    )

    reference_task_id = None
    if job.before_after_vrt:
        job_id = job.id
        full_page = job.capture_full_page
        timeout_ms = job.capture_timeout_ms
        task = tasks.submit_reference_capture(
            db=db,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            job_id=job_id,
            work=lambda: vrt.run_reference_capture(job_id, full_page=full_page, timeout_ms=timeout_ms),
        )
        reference_task_id = task.id

    return JobResponse(
        message="Automation created successfully",
        data=_to_job_data(job, reference_task_id=reference_task_id),
    )


@router.get("/jobs", response_model=JobListResponse)
def list_jobs(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    site_url: str | None = Query(default=None, description="Optional site URL filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    db: Session = Depends(get_db),
    jobs: JobService = Depends(get_job_service),
) -> JobListResponse:
    rows = jobs.list_jobs(db=db, limit=limit, status=status_filter, site_url=site_url)
    return JobListResponse(
        message=f"{len(rows)} jobs found",
        data=[_to_job_data(row) for row in rows],
    )


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(
    job_id: UUID,
    db: Session = Depends(get_db),
    jobs: JobService = Depends(get_job_service),
) -> JobResponse:
    job = jobs.get_job(db=db, job_id=job_id)
    return JobResponse(message="Job found", data=_to_job_data(job))


def _to_job_data(job: MaintenanceJob, *, reference_task_id: uuid.UUID | None = None) -> JobData:
    return JobData(
        job_id=job.id,
        project_name=job.project_name,
        site_url=job.site_url,
        site_type=job.site_type,
        status=job.status,
        tasks=JobTasks(
            functionality_test=job.functionality_test,
            plugin_update=job.plugin_update,
            theme_update=job.theme_update,
            before_after_vrt=job.before_after_vrt,
            sitemap_vrt=job.sitemap_vrt,
        ),
        start_time=job.start_time,
        end_time=job.end_time,
        before_state_id=job.before_state_id,
        after_state_id=job.after_state_id,
        error_message=job.error_message,
        reference_task_id=reference_task_id,
    )
