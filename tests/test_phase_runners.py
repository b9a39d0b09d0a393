"""
tests/test_phase_runners.py

Pytest unit tests for the fixed-interval ticker and the phase runners.

No browser, no sleeping: capture is a fake callable and the ticker's sleep
and clock are injected.

Coverage
--------
- Ticker: first wait free, waits the remaining interval, reset
- Sequential runner: request order, failure containment, pacing
- Batched runner: batch boundaries, order within batches, pacing per batch
- build_phase_runner mode selection
"""

from __future__ import annotations

import threading
import uuid

import pytest

from app.domain.vrt import CapturePhase, EntryKind
from app.vrt.rate_limiter import FixedIntervalTicker
from app.vrt.runners import (
    BatchedPhaseRunner,
    SequentialPhaseRunner,
    build_phase_runner,
)
from app.vrt.types import CaptureRequest
from tests.fakes import FakeCapture, NoSleepTicker


def _requests(count: int) -> list[CaptureRequest]:
    session_id = uuid.uuid4()
    return [
        CaptureRequest(
            entry_id=uuid.uuid4(),
            url=f"https://example.com/page-{index}",
            kind=EntryKind.PAGE,
            phase=CapturePhase.BEFORE,
            session_id=session_id,
        )
        for index in range(count)
    ]


# ---------------------------------------------------------------------------
# FixedIntervalTicker
# ---------------------------------------------------------------------------


class TestFixedIntervalTicker:
    def test_first_wait_never_sleeps(self) -> None:
        ticker = NoSleepTicker(interval_seconds=2.0)
        assert ticker.wait() == 0.0
        assert ticker.sleeps == []

    def test_waits_remaining_interval_after_mark(self) -> None:
        ticker = NoSleepTicker(interval_seconds=2.0)
        ticker.mark()
        ticker.clock_value = 0.5
        assert ticker.wait() == pytest.approx(1.5)
        assert ticker.sleeps == [pytest.approx(1.5)]

    def test_no_sleep_once_interval_elapsed(self) -> None:
        ticker = NoSleepTicker(interval_seconds=2.0)
        ticker.mark()
        ticker.clock_value = 3.0
        assert ticker.wait() == 0.0

    def test_reset_forgets_last_mark(self) -> None:
        ticker = NoSleepTicker(interval_seconds=2.0)
        ticker.mark()
        ticker.reset()
        assert ticker.wait() == 0.0

    def test_negative_interval_is_clamped(self) -> None:
        ticker = FixedIntervalTicker(interval_seconds=-1.0, sleep=lambda _: None)
        assert ticker.interval_seconds == 0.0


# ---------------------------------------------------------------------------
# SequentialPhaseRunner
# ---------------------------------------------------------------------------


class TestSequentialPhaseRunner:
    def test_outcomes_follow_request_order(self) -> None:
        requests = _requests(4)
        runner = SequentialPhaseRunner(ticker=NoSleepTicker(interval_seconds=0.0))
        outcomes = runner.run(requests, FakeCapture())
        assert [item.request for item in outcomes] == requests
        assert all(item.success for item in outcomes)

    def test_failure_is_contained(self) -> None:
        requests = _requests(3)
        capture = FakeCapture(failing=[requests[1].url])
        runner = SequentialPhaseRunner(ticker=NoSleepTicker(interval_seconds=0.0))
        outcomes = runner.run(requests, capture)
        assert [item.success for item in outcomes] == [True, False, True]
        assert "navigation timeout" in outcomes[1].error
        assert outcomes[1].artifact is None

    def test_callback_sees_every_outcome_in_order(self) -> None:
        requests = _requests(3)
        seen: list[str] = []
        runner = SequentialPhaseRunner(ticker=NoSleepTicker(interval_seconds=0.0))
        runner.run(requests, FakeCapture(), lambda outcome: seen.append(outcome.request.url))
        assert seen == [item.url for item in requests]

    def test_pauses_between_captures_only(self) -> None:
        ticker = NoSleepTicker(interval_seconds=2.0)
        runner = SequentialPhaseRunner(ticker=ticker)
        runner.run(_requests(3), FakeCapture())
        # clock never advances, so every wait after the first sleeps the full interval
        assert ticker.sleeps == [2.0, 2.0]

    def test_empty_request_list(self) -> None:
        runner = SequentialPhaseRunner(ticker=NoSleepTicker())
        assert runner.run([], FakeCapture()) == []


# ---------------------------------------------------------------------------
# BatchedPhaseRunner
# ---------------------------------------------------------------------------


class TestBatchedPhaseRunner:
    def test_outcomes_follow_request_order(self) -> None:
        requests = _requests(7)
        runner = BatchedPhaseRunner(batch_size=3, ticker=NoSleepTicker(interval_seconds=0.0))
        outcomes = runner.run(requests, FakeCapture())
        assert [item.request for item in outcomes] == requests

    def test_pause_between_batches(self) -> None:
        ticker = NoSleepTicker(interval_seconds=1.0)
        runner = BatchedPhaseRunner(batch_size=3, ticker=ticker)
        runner.run(_requests(7), FakeCapture())
        # 7 requests -> batches of 3, 3, 1 -> two pauses
        assert ticker.sleeps == [1.0, 1.0]

    def test_concurrency_never_exceeds_batch_size(self) -> None:
        lock = threading.Lock()
        active = 0
        peak = 0
        inner = FakeCapture()

        def capture(request: CaptureRequest):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            try:
                return inner(request)
            finally:
                with lock:
                    active -= 1

        runner = BatchedPhaseRunner(batch_size=2, ticker=NoSleepTicker(interval_seconds=0.0))
        outcomes = runner.run(_requests(5), capture)
        assert len(outcomes) == 5
        assert peak <= 2

    def test_failures_inside_batch_are_contained(self) -> None:
        requests = _requests(4)
        capture = FakeCapture(failing=[requests[0].url, requests[3].url])
        runner = BatchedPhaseRunner(batch_size=2, ticker=NoSleepTicker(interval_seconds=0.0))
        outcomes = runner.run(requests, capture)
        assert [item.success for item in outcomes] == [False, True, True, False]

    def test_batch_size_floor_is_one(self) -> None:
        runner = BatchedPhaseRunner(batch_size=0, ticker=NoSleepTicker())
        assert runner.batch_size == 1


# ---------------------------------------------------------------------------
# build_phase_runner
# ---------------------------------------------------------------------------


class TestBuildPhaseRunner:
    def test_sequential(self) -> None:
        runner = build_phase_runner(
            mode="sequential", capture_delay_seconds=2.0, batch_size=3, batch_delay_seconds=1.0
        )
        assert isinstance(runner, SequentialPhaseRunner)

    def test_batched_is_case_insensitive(self) -> None:
        runner = build_phase_runner(
            mode=" Batched ", capture_delay_seconds=2.0, batch_size=4, batch_delay_seconds=1.0
        )
        assert isinstance(runner, BatchedPhaseRunner)
        assert runner.batch_size == 4

    def test_unknown_mode_raises(self) -> None:
        with pytest.raises(ValueError, match="Unsupported capture mode"):
            build_phase_runner(
                mode="parallel", capture_delay_seconds=0.0, batch_size=1, batch_delay_seconds=0.0
            )
