"""
tests/test_report_synthesizer.py

Pytest unit tests for ReportSynthesizer and its status rules.

Jobs, snapshots, sessions and reports are in-memory fakes; diffs run on
real Pillow images held in an in-memory artifact store.

Coverage
--------
- overall status derivation (completed / partial / failed)
- diff rows: pass, fail and error; error rows excluded from pass/fail counts
- diff results written back onto session entries
- reconciliation counts flow into the per-task results
- issues for failed jobs and missing after captures
- success rate: exact percentage of executed tasks, zero when none ran
- idempotence: a second call returns the stored report unchanged and runs no new diffs
"""

from __future__ import annotations

import random
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from app.domain.inventory import ExtensionRecord, InventorySnapshot, StateType
from app.domain.jobs import JobStatus, MaintenanceJobView, TaskPreferences
from app.domain.report import IssueSeverity, ReportStatus, TaskOutcome, report_to_payload
from app.domain.vrt import ArtifactRef, CapturePhase, DiffStatus, SessionStatus
from app.errors import NotFoundError
from app.vrt.diff import DiffEngine
from app.vrt.report import ReportSynthesizer, derive_overall_status
from tests.fakes import (
    FakeJobStore,
    FakeReportStore,
    FakeSnapshotStore,
    InMemoryArtifactStore,
    InMemoryVRTSessionStore,
    image_with_box,
    solid_image,
)

NOW = datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)
START = NOW - timedelta(minutes=30)
END = NOW - timedelta(minutes=5)
PAGES = ["https://example.com/", "https://example.com/about", "https://example.com/contact"]


def _job(status: str = JobStatus.COMPLETED, **prefs) -> MaintenanceJobView:
    preferences = TaskPreferences(
        **{"before_after_vrt": True, "plugin_update": True, "theme_update": True, **prefs}
    )
    return MaintenanceJobView(
        job_id=uuid.uuid4(),
        project_name="Client Site",
        site_url="https://example.com",
        site_type="live",
        status=status,
        preferences=preferences,
        start_time=START,
        end_time=END if status in {JobStatus.COMPLETED, JobStatus.FAILED} else None,
    )


class CountingDiffEngine(DiffEngine):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[str, str]] = []

    def diff(self, before_url, after_url, **kwargs):
        self.calls.append((before_url, after_url))
        return super().diff(before_url, after_url, **kwargs)


class _Harness:
    def __init__(self) -> None:
        self.jobs = FakeJobStore()
        self.snapshots = FakeSnapshotStore()
        self.sessions = InMemoryVRTSessionStore()
        self.reports = FakeReportStore()
        self.artifacts = InMemoryArtifactStore()
        self.diff_engine = CountingDiffEngine(
            artifact_store=self.artifacts,
            folder="vrt-diffs",
            rng=random.Random(1),
        )
        self.synthesizer = ReportSynthesizer(
            jobs=self.jobs,
            snapshots=self.snapshots,
            sessions=self.sessions,
            reports=self.reports,
            diff_engine=self.diff_engine,
            now=lambda: NOW,
        )

    def add_session(self, job: MaintenanceJobView, *, final_status: str = SessionStatus.AFTER_COMPLETED):
        """Three pages: unchanged, visibly changed, and one whose after image is gone."""
        session = self.sessions.create_session(
            job_id=job.job_id,
            site_url=job.site_url,
            status=SessionStatus.BEFORE_PENDING,
            pages=PAGES,
            posts=[],
        )
        images = [
            (solid_image(100, 100), solid_image(100, 100)),
            (solid_image(100, 100), image_with_box(100, 100, (0, 0, 10, 100))),
            (solid_image(100, 100), None),
        ]
        for entry, (before, after) in zip(session.pages, images):
            before_ref = self.artifacts.upload(before, public_id=f"b{entry.position}", folder="vrt", file_format="png")
            self.sessions.record_capture(
                session_id=session.session_id, entry_id=entry.entry_id, phase=CapturePhase.BEFORE, artifact=before_ref
            )
            if after is None:
                after_ref = ArtifactRef(url="http://testserver/artifacts/vrt/gone.png", public_id="gone")
            else:
                after_ref = self.artifacts.upload(after, public_id=f"a{entry.position}", folder="vrt", file_format="png")
            self.sessions.record_capture(
                session_id=session.session_id, entry_id=entry.entry_id, phase=CapturePhase.AFTER, artifact=after_ref
            )
        current = self.sessions.get_session(session.session_id)
        self.sessions.sessions[session.session_id] = replace(
            current, status=final_status, after_completed_at=END
        )
        return self.sessions.get_session(session.session_id)


@pytest.fixture()
def harness() -> _Harness:
    return _Harness()


# ---------------------------------------------------------------------------
# Overall status
# ---------------------------------------------------------------------------


class TestDeriveOverallStatus:
    def test_failed_job_is_failed(self, harness) -> None:
        assert derive_overall_status(_job(JobStatus.FAILED), None) == ReportStatus.FAILED

    def test_running_job_is_partial(self, harness) -> None:
        assert derive_overall_status(_job(JobStatus.RUNNING), None) == ReportStatus.PARTIAL

    def test_vrt_requested_without_session_is_partial(self) -> None:
        assert derive_overall_status(_job(), None) == ReportStatus.PARTIAL

    def test_vrt_not_requested_without_session_is_completed(self) -> None:
        assert derive_overall_status(_job(before_after_vrt=False), None) == ReportStatus.COMPLETED

    def test_unfinished_session_is_partial(self, harness) -> None:
        job = harness.jobs.add(_job())
        session = harness.add_session(job, final_status=SessionStatus.BEFORE_COMPLETED)
        assert derive_overall_status(job, session) == ReportStatus.PARTIAL

    def test_finished_session_is_completed(self, harness) -> None:
        job = harness.jobs.add(_job())
        session = harness.add_session(job)
        assert derive_overall_status(job, session) == ReportStatus.COMPLETED


# ---------------------------------------------------------------------------
# synthesize
# ---------------------------------------------------------------------------


class TestSynthesize:
    def test_diff_rows_and_summary(self, harness) -> None:
        job = harness.jobs.add(_job())
        harness.add_session(job)

        report, created = harness.synthesizer.synthesize(job.job_id)

        assert created is True
        assert report.status == ReportStatus.COMPLETED
        statuses = [row.status for row in report.vrt_diff_results]
        assert statuses == [DiffStatus.PASS, DiffStatus.FAIL, DiffStatus.ERROR]
        summary = report.vrt_diff_summary
        assert (summary.total, summary.passed, summary.failed) == (3, 1, 1)
        error_row = report.vrt_diff_results[2]
        assert error_row.diff_url is None
        assert error_row.diff_percent is None
        assert error_row.error

    def test_diff_results_written_back_to_session(self, harness) -> None:
        job = harness.jobs.add(_job())
        session = harness.add_session(job)

        harness.synthesizer.synthesize(job.job_id)

        stored = harness.sessions.get_session(session.session_id)
        assert [entry.diff.status for entry in stored.pages] == [
            DiffStatus.PASS,
            DiffStatus.FAIL,
            DiffStatus.ERROR,
        ]

    def test_second_call_returns_existing_report(self, harness) -> None:
        job = harness.jobs.add(_job())
        harness.add_session(job)

        first, created_first = harness.synthesizer.synthesize(job.job_id)
        second, created_second = harness.synthesizer.synthesize(job.job_id)

        diff_calls = len(harness.diff_engine.calls)
        assert (created_first, created_second) == (True, False)
        assert second == first
        assert report_to_payload(second) == report_to_payload(first)
        assert harness.reports.create_calls == 1
        assert diff_calls == 3
        assert len(harness.diff_engine.calls) == diff_calls

    def test_reconciliation_feeds_task_results(self, harness) -> None:
        job = harness.jobs.add(_job(before_after_vrt=False))
        for state_type, version in ((StateType.BEFORE, "1.0"), (StateType.AFTER, "1.1")):
            harness.snapshots.add(
                InventorySnapshot(
                    state_type=state_type,
                    site_url=job.site_url,
                    site_name="example.com",
                    captured_at=NOW,
                    plugins=(ExtensionRecord("Yoast SEO", version),),
                    themes=(ExtensionRecord("Astra", "4.0", active=True),),
                    job_id=job.job_id,
                )
            )

        report, _ = harness.synthesizer.synthesize(job.job_id)

        assert report.status == ReportStatus.COMPLETED
        assert report.results["plugin_update"].status == TaskOutcome.SUCCESS
        assert report.results["plugin_update"].updates_applied == 1
        assert report.results["theme_update"].status == TaskOutcome.SKIPPED
        assert report.before_state_id is not None
        assert report.after_state_id is not None
        assert report.vrt_diff_results == ()
        assert report.duration_seconds == 25 * 60

    def test_success_rate_counts_executed_tasks_only(self, harness) -> None:
        job = harness.jobs.add(_job())
        harness.add_session(job)
        for state_type, version in ((StateType.BEFORE, "1.0"), (StateType.AFTER, "1.1")):
            harness.snapshots.add(
                InventorySnapshot(
                    state_type=state_type,
                    site_url=job.site_url,
                    site_name="example.com",
                    captured_at=NOW,
                    plugins=(ExtensionRecord("Yoast SEO", version),),
                    themes=(ExtensionRecord("Astra", "4.0", active=True),),
                    job_id=job.job_id,
                )
            )

        report, _ = harness.synthesizer.synthesize(job.job_id)

        assert [name for name, enabled in report.tasks_executed.items() if enabled] == [
            "plugin_update",
            "theme_update",
            "before_after_vrt",
        ]
        assert report.results["plugin_update"].status == TaskOutcome.SUCCESS
        assert report.results["theme_update"].status == TaskOutcome.SKIPPED
        assert report.results["before_after_vrt"].status == TaskOutcome.SUCCESS
        assert report.success_rate == 67
        assert report_to_payload(report)["success_rate"] == 67

    def test_success_rate_without_executed_tasks_is_zero(self, harness) -> None:
        job = harness.jobs.add(_job(before_after_vrt=False, plugin_update=False, theme_update=False))

        report, _ = harness.synthesizer.synthesize(job.job_id)

        assert not any(report.tasks_executed.values())
        assert report.success_rate == 0

    def test_failed_job_reports_high_severity_issue(self, harness) -> None:
        job = harness.jobs.add(_job(JobStatus.FAILED, before_after_vrt=False))
        report, _ = harness.synthesizer.synthesize(job.job_id)
        assert report.status == ReportStatus.FAILED
        assert [(issue.task, issue.severity) for issue in report.issues] == [
            ("automation", IssueSeverity.HIGH)
        ]
        assert report.issues[0].timestamp == END

    def test_missing_after_captures_reported_as_issue(self, harness) -> None:
        job = harness.jobs.add(_job())
        session = harness.sessions.create_session(
            job_id=job.job_id, site_url=job.site_url, status=SessionStatus.BEFORE_COMPLETED, pages=PAGES, posts=[]
        )
        assert session.missing_after_count == 3

        report, _ = harness.synthesizer.synthesize(job.job_id)

        assert report.status == ReportStatus.PARTIAL
        assert report.issues[-1].message == "3 screenshots failed to capture"
        assert report.results["before_after_vrt"].status == TaskOutcome.PARTIAL
        assert report.results["before_after_vrt"].screenshots_failed == 3

    def test_unknown_job_raises_not_found(self, harness) -> None:
        with pytest.raises(NotFoundError):
            harness.synthesizer.synthesize(uuid.uuid4())

    def test_payload_is_json_safe(self, harness) -> None:
        job = harness.jobs.add(_job())
        harness.add_session(job)
        report, _ = harness.synthesizer.synthesize(job.job_id)

        payload = report_to_payload(report)

        assert payload["job_id"] == str(job.job_id)
        assert payload["vrt_diff_summary"] == {"total": 3, "passed": 1, "failed": 1}
        assert payload["state_changes"]["plugins_updated"] == 0
        assert isinstance(payload["generated_at"], str)
        assert payload["success_rate"] == 33
