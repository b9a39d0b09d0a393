"""
Phase runners: interchangeable strategies for dispatching captures.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from app.domain.vrt import ArtifactRef
from app.vrt.logging_utils import log_event
from app.vrt.rate_limiter import FixedIntervalTicker
from app.vrt.types import CaptureOutcome, CaptureRequest

logger = logging.getLogger(__name__)

CaptureFn = Callable[[CaptureRequest], ArtifactRef]
ResultCallback = Callable[[CaptureOutcome], None]

CAPTURE_MODE_SEQUENTIAL = "sequential"
CAPTURE_MODE_BATCHED = "batched"


def _run_one(capture: CaptureFn, request: CaptureRequest) -> CaptureOutcome:
    try:
        artifact = capture(request)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            logging.WARNING,
            "capture_failed",
            url=request.url,
            phase=request.phase,
            session_id=str(request.session_id),
            entry_id=str(request.entry_id),
            error=str(exc),
        )
        return CaptureOutcome(request=request, error=str(exc) or exc.__class__.__name__)
    return CaptureOutcome(request=request, artifact=artifact)


class PhaseRunner(ABC):
    """
    Dispatches a phase's capture requests and reports each outcome in request order.

    Per-request failures are contained: they surface as failed outcomes, never as
    exceptions from `run`.
    """

    @abstractmethod
    def run(
        self,
        requests: Sequence[CaptureRequest],
        capture: CaptureFn,
        on_result: ResultCallback | None = None,
    ) -> list[CaptureOutcome]:
        """
        Capture every request and return outcomes aligned with `requests`.
        """


class SequentialPhaseRunner(PhaseRunner):
    """
    One capture at a time with a fixed pause between captures.
    """

    def __init__(self, *, ticker: FixedIntervalTicker) -> None:
        self._ticker = ticker

    def run(
        self,
        requests: Sequence[CaptureRequest],
        capture: CaptureFn,
        on_result: ResultCallback | None = None,
    ) -> list[CaptureOutcome]:
        self._ticker.reset()
        outcomes: list[CaptureOutcome] = []
        for request in requests:
            self._ticker.wait()
            outcome = _run_one(capture, request)
            self._ticker.mark()
            if on_result is not None:
                on_result(outcome)
            outcomes.append(outcome)
        return outcomes


class BatchedPhaseRunner(PhaseRunner):
    """
    Small fixed-size concurrent batches with a pause between batches.

    Outcomes of a batch are delivered to `on_result` on the calling thread, in
    request order, once the whole batch has finished.
    """

    def __init__(self, *, batch_size: int, ticker: FixedIntervalTicker) -> None:
        self._batch_size = max(1, batch_size)
        self._ticker = ticker

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def run(
        self,
        requests: Sequence[CaptureRequest],
        capture: CaptureFn,
        on_result: ResultCallback | None = None,
    ) -> list[CaptureOutcome]:
        self._ticker.reset()
        outcomes: list[CaptureOutcome] = []
        if not requests:
            return outcomes

        with ThreadPoolExecutor(
            max_workers=self._batch_size,
            thread_name_prefix="vrt-capture",
        ) as pool:
            for start in range(0, len(requests), self._batch_size):
                batch = list(requests[start : start + self._batch_size])
                self._ticker.wait()
                futures = [pool.submit(_run_one, capture, request) for request in batch]
                batch_outcomes = [future.result() for future in futures]
                self._ticker.mark()
                log_event(
                    logger,
                    logging.INFO,
                    "capture_batch_completed",
                    batch_start=start,
                    batch_size=len(batch),
                    succeeded=sum(1 for item in batch_outcomes if item.success),
                )
                for outcome in batch_outcomes:
                    if on_result is not None:
                        on_result(outcome)
                    outcomes.append(outcome)
        return outcomes


def build_phase_runner(
    *,
    mode: str,
    capture_delay_seconds: float,
    batch_size: int,
    batch_delay_seconds: float,
) -> PhaseRunner:
    """
    Build the configured phase runner strategy.
    """

    normalized = mode.strip().lower()
    if normalized == CAPTURE_MODE_SEQUENTIAL:
        return SequentialPhaseRunner(
            ticker=FixedIntervalTicker(interval_seconds=capture_delay_seconds),
        )
    if normalized == CAPTURE_MODE_BATCHED:
        return BatchedPhaseRunner(
            batch_size=batch_size,
            ticker=FixedIntervalTicker(interval_seconds=batch_delay_seconds),
        )
    raise ValueError(
        f"Unsupported capture mode '{mode}'. "
        f"Allowed values: {[CAPTURE_MODE_SEQUENTIAL, CAPTURE_MODE_BATCHED]}."
    )
