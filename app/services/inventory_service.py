"""
Inventory snapshot intake.

Snapshots are insert-only. A `before` snapshot is linked onto its job; an
`after` snapshot is linked and closes the job out as completed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from sqlalchemy.orm import Session

from app.domain.inventory import InventorySnapshot, StateType
from app.mappers.inventory_adapter import snapshot_from_payload
from app.vrt.logging_utils import log_event
from app.vrt.storage.sqlalchemy_storage import snapshot_from_state, state_fields_from_snapshot
from db.repositories.maintenance_job_repository import MaintenanceJobRepository
from db.repositories.site_state_repository import SiteStateRepository

logger = logging.getLogger(__name__)


class InventoryService:
    def record_state(self, *, db: Session, payload: dict[str, Any]) -> InventorySnapshot:
        """
        Validate, store and link one snapshot. Returns the stored snapshot.

        A snapshot naming an unknown job is stored unlinked and logged.
        """

        snapshot = snapshot_from_payload(payload)
        jobs = MaintenanceJobRepository(db)
        if snapshot.job_id is not None and jobs.get_job(snapshot.job_id) is None:
            log_event(
                logger,
                logging.WARNING,
                "snapshot_job_missing",
                job_id=str(snapshot.job_id),
                state_type=snapshot.state_type,
            )
            snapshot = replace(snapshot, job_id=None)

        state = SiteStateRepository(db).create_state(**state_fields_from_snapshot(snapshot))
        if snapshot.job_id is not None:
            if snapshot.state_type == StateType.BEFORE:
                jobs.attach_before_state(job_id=snapshot.job_id, state_id=state.id)
            else:
                jobs.attach_after_state(job_id=snapshot.job_id, state_id=state.id)

        db.commit()
        stored = snapshot_from_state(state)
        log_event(
            logger,
            logging.INFO,
            "snapshot_recorded",
            state_id=str(state.id),
            state_type=stored.state_type,
            job_id=str(stored.job_id) if stored.job_id else None,
            plugins=len(stored.plugins),
            themes=len(stored.themes),
        )
        return stored
