"""
Repository for synthesized reports.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.report import Report


class ReportRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, report_id: uuid.UUID) -> Report | None:
        return self._session.get(Report, report_id)

    def get_by_job(self, job_id: uuid.UUID) -> Report | None:
        stmt = select(Report).where(Report.job_id == job_id)
        return self._session.scalars(stmt).first()

    def list_reports(self, *, limit: int = 50, status: str | None = None) -> list[Report]:
        stmt: Select[tuple[Report]] = select(Report)
        if status:
            stmt = stmt.where(Report.status == status)
        stmt = stmt.order_by(Report.generated_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def create(
        self,
        *,
        report_id: uuid.UUID,
        job_id: uuid.UUID,
        status: str,
        generated_at: datetime,
        payload: dict[str, Any],
    ) -> Report:
        report = Report(
            id=report_id,
            job_id=job_id,
            status=status,
            generated_at=generated_at,
            payload=payload,
        )
        self._session.add(report)
        self._session.flush()
        return report
