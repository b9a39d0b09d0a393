"""
Inventory snapshot intake endpoint.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import get_inventory_service
from app.domain.inventory import StateType
from app.schemas.states import StateData, StateResponse
from app.services.inventory_service import InventoryService
from db.session import get_db

router = APIRouter(tags=["states"])


@router.post("/states", response_model=StateResponse)
def record_state(
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    inventory: InventoryService = Depends(get_inventory_service),
) -> StateResponse:
    snapshot = inventory.record_state(db=db, payload=payload)
    label = "Before" if snapshot.state_type == StateType.BEFORE else "After"
    return StateResponse(
        message=f"{label} state recorded successfully",
        data=StateData(
            state_id=snapshot.snapshot_id,
            state_type=snapshot.state_type,
            job_id=snapshot.job_id,
            site_url=snapshot.site_url,
            site_name=snapshot.site_name,
            plugins_count=len(snapshot.plugins),
            themes_count=len(snapshot.themes),
            plugin_updates_available=snapshot.plugin_update_count,
            theme_updates_available=snapshot.theme_update_count,
            active_theme=snapshot.active_theme,
            wordpress_version=snapshot.wordpress_version,
            php_version=snapshot.php_version,
            timestamp=snapshot.captured_at,
        ),
    )
