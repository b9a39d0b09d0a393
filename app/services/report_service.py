"""
Report synthesis and lookup, plus notification of newly created reports.
"""

from __future__ import annotations

import logging
import uuid

from app.domain.report import ReportRecord
from app.errors import NotFoundError, StorageError
from app.services.notification_service import ReportNotifier, build_notifier
from app.vrt.logging_utils import log_event
from app.vrt.runtime import VRTRuntime

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, *, runtime: VRTRuntime, notifier: ReportNotifier | None = None) -> None:
        self._runtime = runtime
        self._notifier = notifier or build_notifier()

    def generate(self, job_id: uuid.UUID) -> tuple[ReportRecord, bool]:
        """
        Synthesize the report for `job_id`; returns `(report, created)`.

        Recipients are notified only when this call created the report.
        """

        report, created = self._runtime.report_synthesizer().synthesize(job_id)
        if created:
            self._notify(report)
        return report, created

    def get(self, report_id: uuid.UUID) -> ReportRecord:
        report = self._runtime.reports.get(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found.")
        return report

    def get_for_job(self, job_id: uuid.UUID) -> ReportRecord:
        report = self._runtime.reports.get_for_job(job_id)
        if report is None:
            raise NotFoundError(f"No report for job {job_id}.")
        return report

    def _notify(self, report: ReportRecord) -> None:
        try:
            job = self._runtime.jobs.get_job(report.job_id)
        except StorageError as exc:
            log_event(
                logger,
                logging.ERROR,
                "report_notification_lookup_failed",
                job_id=str(report.job_id),
                error=str(exc),
            )
            return
        if job is None or not job.notification_emails:
            return
        self._notifier.notify_report(report, job.notification_emails)
