"""
app/domain/vrt.py

Domain models for before/after visual regression sessions.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime


class SessionStatus:
    BEFORE_PENDING = "before_pending"
    BEFORE_COMPLETED = "before_completed"
    AFTER_PENDING = "after_pending"
    AFTER_COMPLETED = "after_completed"
    # Declared for the comparison phase; no transition enters it yet.
    COMPARISON_COMPLETED = "comparison_completed"

    ALL = frozenset(
        {
            BEFORE_PENDING,
            BEFORE_COMPLETED,
            AFTER_PENDING,
            AFTER_COMPLETED,
            COMPARISON_COMPLETED,
        }
    )


class CapturePhase:
    BEFORE = "before"
    AFTER = "after"

    ALL = frozenset({BEFORE, AFTER})


class EntryKind:
    PAGE = "page"
    POST = "post"

    ALL = frozenset({PAGE, POST})


class DiffStatus:
    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"


@dataclass(frozen=True)
class ArtifactRef:
    """
    Reference to one uploaded image artifact.
    """

    url: str
    public_id: str
    size: int | None = None


@dataclass(frozen=True)
class DiffResult:
    """
    Per-entry comparison outcome stored back on the session.
    """

    status: str
    percent: float | None = None
    artifact: ArtifactRef | None = None
    error: str | None = None


@dataclass(frozen=True)
class VRTEntry:
    """
    One URL's capture and diff state within a session.
    """

    entry_id: uuid.UUID
    kind: str
    position: int
    url: str | None
    before: ArtifactRef | None = None
    after: ArtifactRef | None = None
    diff: DiffResult | None = None

    def artifact_for(self, phase: str) -> ArtifactRef | None:
        if phase == CapturePhase.BEFORE:
            return self.before
        if phase == CapturePhase.AFTER:
            return self.after
        raise ValueError(f"Unknown capture phase: {phase}")


@dataclass(frozen=True)
class VRTSession:
    """
    Snapshot of one before/after capture campaign for a maintenance job.
    """

    session_id: uuid.UUID
    job_id: uuid.UUID
    site_url: str
    status: str
    pages: list[VRTEntry] = field(default_factory=list)
    posts: list[VRTEntry] = field(default_factory=list)
    created_at: datetime | None = None
    before_completed_at: datetime | None = None
    after_completed_at: datetime | None = None

    @property
    def entries(self) -> list[VRTEntry]:
        """Pages first, then posts, each in stored order."""
        return [*self.pages, *self.posts]

    def entry(self, entry_id: uuid.UUID) -> VRTEntry | None:
        for candidate in self.entries:
            if candidate.entry_id == entry_id:
                return candidate
        return None

    def count_with(self, phase: str) -> int:
        return sum(1 for item in self.entries if item.artifact_for(phase) is not None)

    @property
    def missing_after_count(self) -> int:
        return sum(1 for item in self.entries if item.after is None)
