"""
VRT session lifecycle: before_pending -> before_completed -> after_pending -> after_completed.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from urllib.parse import urlparse

from app.domain.vrt import ArtifactRef, CapturePhase, SessionStatus, VRTEntry, VRTSession
from app.errors import NotFoundError, PreconditionError, StorageError, ValidationError
from app.vrt.logging_utils import log_event
from app.vrt.runners import PhaseRunner
from app.vrt.storage.base import VRTSessionStore
from app.vrt.types import CaptureOutcome, CaptureRequest, PhaseRunSummary

logger = logging.getLogger(__name__)

_PHASE_PENDING = {
    CapturePhase.BEFORE: SessionStatus.BEFORE_PENDING,
    CapturePhase.AFTER: SessionStatus.AFTER_PENDING,
}
_PHASE_COMPLETED = {
    CapturePhase.BEFORE: SessionStatus.BEFORE_COMPLETED,
    CapturePhase.AFTER: SessionStatus.AFTER_COMPLETED,
}


def is_capturable_url(url: str | None) -> bool:
    """
    True for absolute http(s) URLs with a host.
    """

    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _dedupe_urls(urls: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        ordered.append(url)
    return ordered


class VRTSessionMachine:
    """
    Drives capture phases of a session and enforces lifecycle transitions.

    One machine call addresses one session; callers serialize repeat calls for
    the same session themselves.
    """

    def __init__(
        self,
        *,
        store: VRTSessionStore,
        runner: PhaseRunner,
        capture: Callable[[CaptureRequest], ArtifactRef],
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._runner = runner
        self._capture = capture
        self._now = now or (lambda: datetime.now(timezone.utc))

    def create_session(
        self,
        *,
        job_id: uuid.UUID,
        site_url: str,
        pages: Sequence[str],
        posts: Sequence[str] = (),
    ) -> VRTSession:
        if job_id is None:
            raise ValidationError("job_id is required.")
        if not site_url or not site_url.strip():
            raise ValidationError("site_url is required.")

        session = self._store.create_session(
            job_id=job_id,
            site_url=site_url.strip(),
            status=SessionStatus.BEFORE_PENDING,
            pages=_dedupe_urls(list(pages)),
            posts=_dedupe_urls(list(posts)),
        )
        log_event(
            logger,
            logging.INFO,
            "vrt_session_created",
            session_id=str(session.session_id),
            job_id=str(job_id),
            pages=len(session.pages),
            posts=len(session.posts),
        )
        return session

    def begin_campaign(
        self,
        *,
        job_id: uuid.UUID,
        site_url: str,
        pages: Sequence[str],
        posts: Sequence[str] = (),
    ) -> tuple[VRTSession, PhaseRunSummary]:
        """
        Create a session and immediately run its reference (`before`) phase.
        """

        session = self.create_session(job_id=job_id, site_url=site_url, pages=pages, posts=posts)
        summary = self.run_before_phase(session.session_id)
        return self._require_session(session.session_id), summary

    def run_before_phase(self, session_id: uuid.UUID) -> PhaseRunSummary:
        session = self._require_session(session_id)
        self._require_status(session, SessionStatus.BEFORE_PENDING)
        return self._run_phase(session, CapturePhase.BEFORE, session.entries)

    def start_after_phase(self, session_id: uuid.UUID) -> VRTSession:
        """
        Accept the `after` phase only when reference captures are complete.
        """

        session = self._require_session(session_id)
        moved = self._store.compare_and_set_status(
            session_id=session_id,
            expected=SessionStatus.BEFORE_COMPLETED,
            target=SessionStatus.AFTER_PENDING,
        )
        if not moved:
            current = self._require_session(session_id).status
            raise PreconditionError(
                f"Reference captures not ready. Current status: {current}"
            )
        log_event(
            logger,
            logging.INFO,
            "vrt_session_transition",
            session_id=str(session.session_id),
            previous=SessionStatus.BEFORE_COMPLETED,
            status=SessionStatus.AFTER_PENDING,
        )
        return self._require_session(session_id)

    def run_after_phase(self, session_id: uuid.UUID) -> PhaseRunSummary:
        session = self._require_session(session_id)
        self._require_status(session, SessionStatus.AFTER_PENDING)
        # Entries never captured in the reference phase have nothing to compare against.
        eligible = [entry for entry in session.entries if entry.before is not None]
        return self._run_phase(
            session,
            CapturePhase.AFTER,
            eligible,
            extra_skipped=len(session.entries) - len(eligible),
        )

    def run_after_for_job(self, job_id: uuid.UUID) -> tuple[VRTSession, PhaseRunSummary]:
        session = self._store.get_session_for_job(job_id)
        if session is None:
            raise NotFoundError(f"No VRT session found for job {job_id}.")
        self.start_after_phase(session.session_id)
        summary = self.run_after_phase(session.session_id)
        return self._require_session(session.session_id), summary

    def _run_phase(
        self,
        session: VRTSession,
        phase: str,
        entries: Sequence[VRTEntry],
        *,
        extra_skipped: int = 0,
    ) -> PhaseRunSummary:
        requests = [
            CaptureRequest(
                entry_id=entry.entry_id,
                url=entry.url.strip(),
                kind=entry.kind,
                phase=phase,
                session_id=session.session_id,
            )
            for entry in entries
            if is_capturable_url(entry.url)
        ]
        skipped = len(entries) - len(requests) + extra_skipped
        unpersisted: set[uuid.UUID] = set()

        def persist(outcome: CaptureOutcome) -> None:
            if outcome.artifact is None:
                return
            try:
                self._store.record_capture(
                    session_id=session.session_id,
                    entry_id=outcome.request.entry_id,
                    phase=phase,
                    artifact=outcome.artifact,
                )
            except StorageError as exc:
                unpersisted.add(outcome.request.entry_id)
                log_event(
                    logger,
                    logging.ERROR,
                    "capture_persist_failed",
                    session_id=str(session.session_id),
                    entry_id=str(outcome.request.entry_id),
                    phase=phase,
                    error=str(exc),
                )

        log_event(
            logger,
            logging.INFO,
            "vrt_phase_started",
            session_id=str(session.session_id),
            phase=phase,
            attempted=len(requests),
            skipped=skipped,
        )
        outcomes = self._runner.run(requests, self._capture, persist)
        outcomes = [
            CaptureOutcome(request=item.request, error="Capture could not be persisted.")
            if item.request.entry_id in unpersisted
            else item
            for item in outcomes
        ]
        succeeded = sum(1 for item in outcomes if item.success)

        completed_at = self._now()
        self._store.compare_and_set_status(
            session_id=session.session_id,
            expected=_PHASE_PENDING[phase],
            target=_PHASE_COMPLETED[phase],
            timestamp=completed_at,
        )
        summary = PhaseRunSummary(
            phase=phase,
            attempted=len(requests),
            succeeded=succeeded,
            failed=len(requests) - succeeded,
            skipped=skipped,
            outcomes=tuple(outcomes),
        )
        log_event(
            logger,
            logging.INFO,
            "vrt_phase_completed",
            session_id=str(session.session_id),
            phase=phase,
            attempted=summary.attempted,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
        )
        return summary

    def _require_session(self, session_id: uuid.UUID) -> VRTSession:
        session = self._store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"VRT session {session_id} not found.")
        return session

    @staticmethod
    def _require_status(session: VRTSession, expected: str) -> None:
        if session.status != expected:
            raise PreconditionError(
                f"Session {session.session_id} must be '{expected}'. "
                f"Current status: {session.status}"
            )
