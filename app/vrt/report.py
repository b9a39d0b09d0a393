"""
Report synthesis: one immutable pass/fail report per maintenance job.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from app.domain.inventory import InventorySnapshot, StateType
from app.domain.jobs import JobStatus, MaintenanceJobView
from app.domain.report import (
    DiffResultRow,
    DiffSummary,
    Issue,
    IssueSeverity,
    ReportRecord,
    ReportStatus,
    StateChanges,
    TaskOutcome,
    TaskResult,
)
from app.domain.vrt import CapturePhase, DiffResult, DiffStatus, SessionStatus, VRTSession
from app.errors import NotFoundError, StorageError, VRTError
from app.vrt.diff import DiffEngine
from app.vrt.logging_utils import log_event
from app.vrt.reconciliation import reconcile
from app.vrt.storage.base import JobStore, ReportStore, SnapshotStore, VRTSessionStore

logger = logging.getLogger(__name__)

AUTOMATION_FAILED_MESSAGE = "Automation process failed to complete"


def derive_overall_status(job: MaintenanceJobView, session: VRTSession | None) -> str:
    if job.status == JobStatus.FAILED:
        return ReportStatus.FAILED
    if job.status != JobStatus.COMPLETED:
        return ReportStatus.PARTIAL
    if job.preferences.before_after_vrt:
        if session is None or session.status != SessionStatus.AFTER_COMPLETED:
            return ReportStatus.PARTIAL
    elif session is not None and session.status != SessionStatus.AFTER_COMPLETED:
        return ReportStatus.PARTIAL
    return ReportStatus.COMPLETED


def build_results_summary(
    job: MaintenanceJobView,
    session: VRTSession | None,
    state_changes: StateChanges,
) -> dict[str, TaskResult]:
    """
    Per-task outcome summary keyed by task flag name.
    """

    prefs = job.preferences
    completed = job.status == JobStatus.COMPLETED

    functionality = TaskResult()
    if prefs.functionality_test:
        functionality = TaskResult(
            status=TaskOutcome.SUCCESS if completed else TaskOutcome.FAILURE,
            message="Login test completed successfully" if completed else "Login test failed",
        )

    plugin_update = TaskResult(updates_applied=0, updates_failed=0)
    if prefs.plugin_update:
        plugin_update = TaskResult(
            status=TaskOutcome.SUCCESS if state_changes.plugins_updated > 0 else TaskOutcome.SKIPPED,
            updates_applied=state_changes.plugins_updated,
            updates_failed=0,
        )

    theme_update = TaskResult(updates_applied=0, updates_failed=0)
    if prefs.theme_update:
        theme_update = TaskResult(
            status=TaskOutcome.SUCCESS if state_changes.themes_updated > 0 else TaskOutcome.SKIPPED,
            updates_applied=state_changes.themes_updated,
            updates_failed=0,
        )

    before_after = TaskResult(screenshots_captured=0, screenshots_failed=0)
    if prefs.before_after_vrt and session is not None:
        total = len(session.entries)
        captured = session.count_with(CapturePhase.AFTER)
        before_after = TaskResult(
            status=(
                TaskOutcome.SUCCESS
                if session.status == SessionStatus.AFTER_COMPLETED
                else TaskOutcome.PARTIAL
            ),
            screenshots_captured=captured,
            screenshots_failed=total - captured,
        )

    sitemap = TaskResult(screenshots_captured=0, screenshots_failed=0)
    if prefs.sitemap_vrt:
        sitemap = TaskResult(
            status=TaskOutcome.SUCCESS if completed else TaskOutcome.FAILURE,
            screenshots_captured=0,
            screenshots_failed=0,
        )

    return {
        "functionality_test": functionality,
        "plugin_update": plugin_update,
        "theme_update": theme_update,
        "before_after_vrt": before_after,
        "sitemap_vrt": sitemap,
    }


def build_issues(
    job: MaintenanceJobView,
    session: VRTSession | None,
    *,
    now: datetime,
) -> list[Issue]:
    issues: list[Issue] = []
    if job.status == JobStatus.FAILED:
        issues.append(
            Issue(
                task="automation",
                severity=IssueSeverity.HIGH,
                message=AUTOMATION_FAILED_MESSAGE,
                timestamp=job.end_time or now,
            )
        )

    if session is not None and session.status != SessionStatus.AFTER_COMPLETED:
        missing = session.missing_after_count
        if missing > 0:
            issues.append(
                Issue(
                    task="before_after_vrt",
                    severity=IssueSeverity.MEDIUM,
                    message=f"{missing} screenshots failed to capture",
                    timestamp=session.after_completed_at or now,
                )
            )
    return issues


class ReportSynthesizer:
    """
    Builds the report for a job at most once.

    Degraded inputs (missing snapshots, missing session, failed diffs) are
    classified into the report rather than raised.
    """

    def __init__(
        self,
        *,
        jobs: JobStore,
        snapshots: SnapshotStore,
        sessions: VRTSessionStore,
        reports: ReportStore,
        diff_engine: DiffEngine,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._jobs = jobs
        self._snapshots = snapshots
        self._sessions = sessions
        self._reports = reports
        self._diff_engine = diff_engine
        self._now = now or (lambda: datetime.now(timezone.utc))

    def synthesize(self, job_id: uuid.UUID) -> tuple[ReportRecord, bool]:
        """
        Return `(report, created)`. An existing report is returned unchanged.
        """

        existing = self._reports.get_for_job(job_id)
        if existing is not None:
            log_event(logger, logging.INFO, "report_exists", job_id=str(job_id))
            return existing, False

        job = self._jobs.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Maintenance job {job_id} not found.")

        now = self._now()
        before = self._load_snapshot(job, StateType.BEFORE)
        after = self._load_snapshot(job, StateType.AFTER)
        session = self._sessions.get_session_for_job(job_id)

        reconciliation = reconcile(before, after)
        diff_rows: list[DiffResultRow] = []
        diff_summary = DiffSummary()
        if job.preferences.before_after_vrt and session is not None:
            diff_rows, diff_summary = self._diff_session(job, session)
            session = self._sessions.get_session(session.session_id) or session

        end_time = job.end_time or now
        duration = 0
        if job.start_time is not None and job.end_time is not None:
            duration = round((job.end_time - job.start_time).total_seconds())

        record = ReportRecord(
            job_id=job.job_id,
            project_name=job.project_name,
            site_url=job.site_url,
            site_type=job.site_type,
            start_time=job.start_time,
            end_time=end_time,
            duration_seconds=duration,
            status=derive_overall_status(job, session),
            tasks_executed=job.preferences.as_flags(),
            results=build_results_summary(job, session, reconciliation.state_changes),
            reconciliation=reconciliation,
            issues=tuple(build_issues(job, session, now=now)),
            vrt_diff_results=tuple(diff_rows),
            vrt_diff_summary=diff_summary,
            generated_at=now,
            before_state_id=before.snapshot_id if before is not None else None,
            after_state_id=after.snapshot_id if after is not None else None,
            vrt_session_id=session.session_id if session is not None else None,
        )
        stored, created = self._reports.create(record)
        log_event(
            logger,
            logging.INFO,
            "report_synthesized" if created else "report_exists",
            job_id=str(job_id),
            report_id=str(stored.report_id),
            status=stored.status,
            diff_total=diff_summary.total,
            diff_failed=diff_summary.failed,
        )
        return stored, created

    def _load_snapshot(self, job: MaintenanceJobView, state_type: str) -> InventorySnapshot | None:
        snapshot_id = job.before_state_id if state_type == StateType.BEFORE else job.after_state_id
        try:
            if snapshot_id is not None:
                snapshot = self._snapshots.get_snapshot(snapshot_id)
                if snapshot is not None:
                    return snapshot
            return self._snapshots.latest_for_job(job.job_id, state_type)
        except StorageError as exc:
            log_event(
                logger,
                logging.ERROR,
                "snapshot_load_failed",
                job_id=str(job.job_id),
                state_type=state_type,
                error=str(exc),
            )
            return None

    def _diff_session(
        self,
        job: MaintenanceJobView,
        session: VRTSession,
    ) -> tuple[list[DiffResultRow], DiffSummary]:
        rows: list[DiffResultRow] = []
        total = passed = failed = 0
        for entry in session.entries:
            if entry.before is None or entry.after is None:
                continue
            total += 1
            try:
                outcome = self._diff_engine.diff(
                    entry.before.url,
                    entry.after.url,
                    job_id=job.job_id,
                )
            except VRTError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "diff_failed",
                    job_id=str(job.job_id),
                    url=entry.url,
                    error=str(exc),
                )
                result = DiffResult(status=DiffStatus.ERROR, error=str(exc))
                rows.append(
                    DiffResultRow(
                        url=entry.url or "",
                        before_url=entry.before.url,
                        after_url=entry.after.url,
                        diff_url=None,
                        diff_percent=None,
                        status=DiffStatus.ERROR,
                        error=str(exc),
                    )
                )
            else:
                result = DiffResult(
                    status=outcome.status,
                    percent=outcome.percent,
                    artifact=outcome.artifact,
                )
                if outcome.status == DiffStatus.PASS:
                    passed += 1
                else:
                    failed += 1
                rows.append(
                    DiffResultRow(
                        url=entry.url or "",
                        before_url=entry.before.url,
                        after_url=entry.after.url,
                        diff_url=outcome.artifact.url,
                        diff_percent=outcome.percent,
                        status=outcome.status,
                    )
                )

            try:
                self._sessions.record_diff(
                    session_id=session.session_id,
                    entry_id=entry.entry_id,
                    diff=result,
                )
            except StorageError as exc:
                log_event(
                    logger,
                    logging.ERROR,
                    "diff_persist_failed",
                    session_id=str(session.session_id),
                    entry_id=str(entry.entry_id),
                    error=str(exc),
                )

        return rows, DiffSummary(total=total, passed=passed, failed=failed)
