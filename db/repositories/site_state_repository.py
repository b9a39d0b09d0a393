"""
Repository for inventory snapshots. Snapshots are insert-only.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.site_state import SiteState


class SiteStateRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_state(self, **fields: Any) -> SiteState:
        state = SiteState(**fields)
        self._session.add(state)
        self._session.flush()
        self._session.refresh(state)
        return state

    def get_state(self, state_id: uuid.UUID) -> SiteState | None:
        return self._session.get(SiteState, state_id)

    def latest_for_job(self, *, job_id: uuid.UUID, state_type: str) -> SiteState | None:
        stmt = (
            select(SiteState)
            .where(SiteState.job_id == job_id, SiteState.state_type == state_type)
            .order_by(SiteState.captured_at.desc(), SiteState.created_at.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()
