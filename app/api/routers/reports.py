"""
Report synthesis and lookup endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import get_report_service
from app.domain.report import report_to_payload
from app.errors import ValidationError
from app.schemas.reports import ReportCreateRequest, ReportResponse
from app.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ReportResponse)
def generate_report(
    payload: ReportCreateRequest,
    response: Response,
    reports: ReportService = Depends(get_report_service),
) -> ReportResponse:
    if payload.job_id is None:
        raise ValidationError("automation_id is required")

    report, created = reports.generate(payload.job_id)
    if not created:
        response.status_code = status.HTTP_200_OK
        return ReportResponse(message="Report already exists", data=report_to_payload(report))
    return ReportResponse(
        message="Automation report generated successfully",
        data=report_to_payload(report),
    )


@router.get("/{report_id}", response_model=ReportResponse)
def get_report(
    report_id: UUID,
    reports: ReportService = Depends(get_report_service),
) -> ReportResponse:
    report = reports.get(report_id)
    return ReportResponse(message="Report found", data=report_to_payload(report))


@router.get("/job/{job_id}", response_model=ReportResponse)
def get_report_for_job(
    job_id: UUID,
    reports: ReportService = Depends(get_report_service),
) -> ReportResponse:
    report = reports.get_for_job(job_id)
    return ReportResponse(message="Report found", data=report_to_payload(report))
