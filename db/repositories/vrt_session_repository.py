"""
Repository for VRT sessions and field-level entry updates.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from db.models.vrt_session import VRTEntryRecord, VRTSessionRecord

_ARTIFACT_COLUMNS = {
    "before": ("before_url", "before_public_id"),
    "after": ("after_url", "after_public_id"),
}
_COMPLETION_COLUMNS = {
    "before_completed": "before_completed_at",
    "after_completed": "after_completed_at",
}


class VRTSessionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_session(
        self,
        *,
        job_id: uuid.UUID,
        site_url: str,
        status: str,
        pages: Sequence[str],
        posts: Sequence[str],
    ) -> VRTSessionRecord:
        record = VRTSessionRecord(job_id=job_id, site_url=site_url, status=status)
        position = 0
        for kind, urls in (("page", pages), ("post", posts)):
            for url in urls:
                record.entries.append(VRTEntryRecord(kind=kind, position=position, url=url))
                position += 1
        self._session.add(record)
        self._session.flush()
        return record

    def get_session(self, session_id: uuid.UUID) -> VRTSessionRecord | None:
        stmt = (
            select(VRTSessionRecord)
            .options(selectinload(VRTSessionRecord.entries))
            .where(VRTSessionRecord.id == session_id)
        )
        return self._session.scalars(stmt).first()

    def get_latest_for_job(self, job_id: uuid.UUID) -> VRTSessionRecord | None:
        stmt = (
            select(VRTSessionRecord)
            .options(selectinload(VRTSessionRecord.entries))
            .where(VRTSessionRecord.job_id == job_id)
            .order_by(VRTSessionRecord.created_at.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def set_entry_artifact(
        self,
        *,
        session_id: uuid.UUID,
        entry_id: uuid.UUID,
        phase: str,
        url: str,
        public_id: str,
    ) -> int:
        url_column, public_id_column = _ARTIFACT_COLUMNS[phase]
        return self._update_entry(
            session_id=session_id,
            entry_id=entry_id,
            values={url_column: url, public_id_column: public_id},
        )

    def set_entry_diff(
        self,
        *,
        session_id: uuid.UUID,
        entry_id: uuid.UUID,
        url: str | None,
        public_id: str | None,
        percent: float | None,
        status: str,
        error: str | None,
    ) -> int:
        return self._update_entry(
            session_id=session_id,
            entry_id=entry_id,
            values={
                "diff_url": url,
                "diff_public_id": public_id,
                "diff_percent": percent,
                "diff_status": status,
                "diff_error": error,
            },
        )

    def compare_and_set_status(
        self,
        *,
        session_id: uuid.UUID,
        expected: str,
        target: str,
        timestamp: datetime | None = None,
    ) -> bool:
        values: dict[str, Any] = {"status": target}
        completion_column = _COMPLETION_COLUMNS.get(target)
        if completion_column is not None and timestamp is not None:
            values[completion_column] = timestamp
        stmt = (
            update(VRTSessionRecord)
            .where(VRTSessionRecord.id == session_id, VRTSessionRecord.status == expected)
            .values(**values)
        )
        result = self._session.execute(stmt)
        return result.rowcount == 1

    def _update_entry(
        self,
        *,
        session_id: uuid.UUID,
        entry_id: uuid.UUID,
        values: dict[str, Any],
    ) -> int:
        stmt = (
            update(VRTEntryRecord)
            .where(VRTEntryRecord.id == entry_id, VRTEntryRecord.session_id == session_id)
            .values(**values)
        )
        return self._session.execute(stmt).rowcount
