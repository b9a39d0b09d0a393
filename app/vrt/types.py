"""
Shared datatypes passed between VRT engines.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from app.domain.vrt import ArtifactRef


@dataclass(frozen=True)
class CaptureRequest:
    """
    One URL to capture for a given session phase.
    """

    entry_id: uuid.UUID
    url: str
    kind: str
    phase: str
    session_id: uuid.UUID


@dataclass(frozen=True)
class CaptureOutcome:
    request: CaptureRequest
    artifact: ArtifactRef | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.artifact is not None


@dataclass(frozen=True)
class PhaseRunSummary:
    """
    Counts for one completed capture phase.

    `skipped` covers entries filtered out before dispatch; they are not attempted.
    """

    phase: str
    attempted: int
    succeeded: int
    failed: int
    skipped: int = 0
    outcomes: tuple[CaptureOutcome, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ResolvedSitemap:
    pages: list[str]
    posts: list[str]
    fetched_at: datetime

    @property
    def is_empty(self) -> bool:
        return not self.pages and not self.posts
