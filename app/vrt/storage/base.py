"""
Storage layer interfaces for VRT sessions, jobs, snapshots and reports.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from app.domain.inventory import InventorySnapshot
from app.domain.jobs import MaintenanceJobView
from app.domain.report import ReportRecord
from app.domain.vrt import ArtifactRef, DiffResult, VRTSession


class VRTSessionStore(ABC):
    """
    Document store for sessions and their entries.

    Entry writes are field-level updates addressed by (session id, entry id).
    """

    @abstractmethod
    def create_session(
        self,
        *,
        job_id: uuid.UUID,
        site_url: str,
        status: str,
        pages: Sequence[str],
        posts: Sequence[str],
    ) -> VRTSession:
        """
        Persist a session with its fixed entry list and return it.
        """

    @abstractmethod
    def get_session(self, session_id: uuid.UUID) -> VRTSession | None:
        """
        Load one session with entries in stored order.
        """

    @abstractmethod
    def get_session_for_job(self, job_id: uuid.UUID) -> VRTSession | None:
        """
        Latest session created for a job.
        """

    @abstractmethod
    def record_capture(
        self,
        *,
        session_id: uuid.UUID,
        entry_id: uuid.UUID,
        phase: str,
        artifact: ArtifactRef,
    ) -> None:
        """
        Set the phase artifact of one entry.
        """

    @abstractmethod
    def record_diff(
        self,
        *,
        session_id: uuid.UUID,
        entry_id: uuid.UUID,
        diff: DiffResult,
    ) -> None:
        """
        Set the diff result of one entry.
        """

    @abstractmethod
    def compare_and_set_status(
        self,
        *,
        session_id: uuid.UUID,
        expected: str,
        target: str,
        timestamp: datetime | None = None,
    ) -> bool:
        """
        Move `expected` -> `target` atomically. Returns False when the current
        status is not `expected`.
        """


class JobStore(ABC):
    @abstractmethod
    def get_job(self, job_id: uuid.UUID) -> MaintenanceJobView | None:
        """
        Load a maintenance job read model.
        """


class SnapshotStore(ABC):
    @abstractmethod
    def get_snapshot(self, snapshot_id: uuid.UUID) -> InventorySnapshot | None:
        """
        Load one inventory snapshot.
        """

    @abstractmethod
    def latest_for_job(self, job_id: uuid.UUID, state_type: str) -> InventorySnapshot | None:
        """
        Most recent snapshot of `state_type` recorded for a job.
        """


class ReportStore(ABC):
    @abstractmethod
    def get_for_job(self, job_id: uuid.UUID) -> ReportRecord | None:
        """
        Report already synthesized for a job, if any.
        """

    @abstractmethod
    def get(self, report_id: uuid.UUID) -> ReportRecord | None:
        """
        Load a report by id.
        """

    @abstractmethod
    def create(self, report: ReportRecord) -> tuple[ReportRecord, bool]:
        """
        Insert a report. When one already exists for the job, return it with
        `created=False` instead.
        """
