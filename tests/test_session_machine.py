"""
tests/test_session_machine.py

Pytest unit tests for the before/after session lifecycle.

Uses the in-memory session store and a fake capture callable; runners are
real with zero pacing.

Coverage
--------
- Session creation: validation, URL de-duplication, initial status
- Before phase: partial failures still complete the phase
- After phase precondition: rejected without touching the session
- After phase: entries lacking a reference capture are skipped
- Persist failures count as failed captures
- Non-http URLs are skipped, not attempted
- run_after_for_job lookup and end-to-end campaign
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from app.domain.vrt import CapturePhase, SessionStatus
from app.errors import NotFoundError, PreconditionError, ValidationError
from app.vrt.runners import BatchedPhaseRunner, SequentialPhaseRunner
from app.vrt.session_machine import VRTSessionMachine, is_capturable_url
from tests.fakes import FakeCapture, InMemoryVRTSessionStore, NoSleepTicker

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
URLS = [
    "https://example.com/",
    "https://example.com/about",
    "https://example.com/contact",
]


def _machine(store: InMemoryVRTSessionStore, capture: FakeCapture, *, batched: bool = False) -> VRTSessionMachine:
    ticker = NoSleepTicker(interval_seconds=0.0)
    runner = BatchedPhaseRunner(batch_size=2, ticker=ticker) if batched else SequentialPhaseRunner(ticker=ticker)
    return VRTSessionMachine(store=store, runner=runner, capture=capture, now=lambda: NOW)


@pytest.fixture()
def store() -> InMemoryVRTSessionStore:
    return InMemoryVRTSessionStore()


# ---------------------------------------------------------------------------
# URL filter
# ---------------------------------------------------------------------------


class TestIsCapturableUrl:
    @pytest.mark.parametrize(
        "url",
        ["https://example.com/", "http://example.com/a?b=1", "  https://example.com/x  "],
    )
    def test_accepts_http_urls(self, url: str) -> None:
        assert is_capturable_url(url)

    @pytest.mark.parametrize("url", [None, "", "ftp://example.com/", "/relative", "mailto:a@b.c", "https://"])
    def test_rejects_everything_else(self, url) -> None:
        assert not is_capturable_url(url)


# ---------------------------------------------------------------------------
# create_session
# ---------------------------------------------------------------------------


class TestCreateSession:
    def test_starts_before_pending_with_deduplicated_entries(self, store) -> None:
        machine = _machine(store, FakeCapture())
        session = machine.create_session(
            job_id=uuid.uuid4(),
            site_url=" https://example.com ",
            pages=[URLS[0], URLS[1], URLS[0]],
            posts=["https://example.com/blog/post-1"],
        )
        assert session.status == SessionStatus.BEFORE_PENDING
        assert session.site_url == "https://example.com"
        assert [entry.url for entry in session.pages] == URLS[:2]
        assert len(session.posts) == 1
        assert [entry.position for entry in session.entries] == [0, 1, 2]

    def test_requires_site_url(self, store) -> None:
        machine = _machine(store, FakeCapture())
        with pytest.raises(ValidationError):
            machine.create_session(job_id=uuid.uuid4(), site_url="  ", pages=URLS)

    def test_requires_job_id(self, store) -> None:
        machine = _machine(store, FakeCapture())
        with pytest.raises(ValidationError):
            machine.create_session(job_id=None, site_url="https://example.com", pages=URLS)


# ---------------------------------------------------------------------------
# Before phase
# ---------------------------------------------------------------------------


class TestBeforePhase:
    def test_partial_failure_still_completes_phase(self, store) -> None:
        capture = FakeCapture(failing=[URLS[1]])
        machine = _machine(store, capture)
        session, summary = machine.begin_campaign(
            job_id=uuid.uuid4(), site_url="https://example.com", pages=URLS
        )

        assert session.status == SessionStatus.BEFORE_COMPLETED
        assert session.before_completed_at == NOW
        assert session.count_with(CapturePhase.BEFORE) == 2
        assert session.pages[1].before is None
        assert (summary.attempted, summary.succeeded, summary.failed, summary.skipped) == (3, 2, 1, 0)

    def test_batched_runner_gives_same_result(self, store) -> None:
        capture = FakeCapture(failing=[URLS[1]])
        machine = _machine(store, capture, batched=True)
        session, summary = machine.begin_campaign(
            job_id=uuid.uuid4(), site_url="https://example.com", pages=URLS
        )
        assert session.status == SessionStatus.BEFORE_COMPLETED
        assert summary.succeeded == 2
        assert [item.request.url for item in summary.outcomes] == URLS

    def test_invalid_urls_are_skipped(self, store) -> None:
        capture = FakeCapture()
        machine = _machine(store, capture)
        _, summary = machine.begin_campaign(
            job_id=uuid.uuid4(),
            site_url="https://example.com",
            pages=[URLS[0], "not-a-url", "ftp://example.com/file"],
        )
        assert summary.attempted == 1
        assert summary.skipped == 2
        assert [request.url for request in capture.requests] == [URLS[0]]

    def test_persist_failure_counts_as_failed(self, store) -> None:
        store.fail_captures_for.add(URLS[2])
        machine = _machine(store, FakeCapture())
        session, summary = machine.begin_campaign(
            job_id=uuid.uuid4(), site_url="https://example.com", pages=URLS
        )
        assert summary.succeeded == 2
        assert summary.failed == 1
        assert summary.outcomes[2].error == "Capture could not be persisted."
        assert session.pages[2].before is None

    def test_rerun_requires_before_pending(self, store) -> None:
        machine = _machine(store, FakeCapture())
        session, _ = machine.begin_campaign(
            job_id=uuid.uuid4(), site_url="https://example.com", pages=URLS
        )
        with pytest.raises(PreconditionError):
            machine.run_before_phase(session.session_id)

    def test_capture_requests_carry_phase_and_session(self, store) -> None:
        capture = FakeCapture()
        machine = _machine(store, capture)
        session, _ = machine.begin_campaign(
            job_id=uuid.uuid4(), site_url="https://example.com", pages=URLS[:1]
        )
        request = capture.requests[0]
        assert request.phase == CapturePhase.BEFORE
        assert request.session_id == session.session_id
        assert request.entry_id == session.pages[0].entry_id


# ---------------------------------------------------------------------------
# After phase
# ---------------------------------------------------------------------------


class TestAfterPhase:
    def test_rejected_until_reference_captures_complete(self, store) -> None:
        machine = _machine(store, FakeCapture())
        session = machine.create_session(
            job_id=uuid.uuid4(), site_url="https://example.com", pages=URLS
        )
        with pytest.raises(PreconditionError, match="Current status: before_pending"):
            machine.start_after_phase(session.session_id)

        unchanged = store.get_session(session.session_id)
        assert unchanged.status == SessionStatus.BEFORE_PENDING
        assert unchanged.count_with(CapturePhase.AFTER) == 0

    def test_run_after_requires_after_pending(self, store) -> None:
        machine = _machine(store, FakeCapture())
        session, _ = machine.begin_campaign(
            job_id=uuid.uuid4(), site_url="https://example.com", pages=URLS
        )
        with pytest.raises(PreconditionError):
            machine.run_after_phase(session.session_id)

    def test_skips_entries_without_reference_capture(self, store) -> None:
        job_id = uuid.uuid4()
        machine = _machine(store, FakeCapture(failing=[URLS[1]]))
        machine.begin_campaign(job_id=job_id, site_url="https://example.com", pages=URLS)

        after_capture = FakeCapture()
        after_machine = _machine(store, after_capture)
        session, summary = after_machine.run_after_for_job(job_id)

        assert session.status == SessionStatus.AFTER_COMPLETED
        assert session.after_completed_at == NOW
        assert (summary.attempted, summary.succeeded, summary.skipped) == (2, 2, 1)
        assert [request.url for request in after_capture.requests] == [URLS[0], URLS[2]]
        assert session.pages[1].after is None
        assert session.count_with(CapturePhase.AFTER) == 2

    def test_second_after_run_is_rejected(self, store) -> None:
        job_id = uuid.uuid4()
        machine = _machine(store, FakeCapture())
        machine.begin_campaign(job_id=job_id, site_url="https://example.com", pages=URLS)
        machine.run_after_for_job(job_id)

        with pytest.raises(PreconditionError, match="after_completed"):
            machine.run_after_for_job(job_id)

    def test_unknown_job_raises_not_found(self, store) -> None:
        machine = _machine(store, FakeCapture())
        with pytest.raises(NotFoundError):
            machine.run_after_for_job(uuid.uuid4())

    def test_after_failures_leave_missing_after_count(self, store) -> None:
        job_id = uuid.uuid4()
        _machine(store, FakeCapture()).begin_campaign(
            job_id=job_id, site_url="https://example.com", pages=URLS
        )
        session, summary = _machine(store, FakeCapture(failing=[URLS[0]])).run_after_for_job(job_id)
        assert summary.failed == 1
        assert session.status == SessionStatus.AFTER_COMPLETED
        assert session.missing_after_count == 1
