"""
db/models/site_state.py

Inventory snapshot of a site's plugins and themes. Rows are never updated.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.maintenance_job import MaintenanceJob


class SiteState(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "site_states"

    job_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("maintenance_jobs.id", ondelete="CASCADE"),
        nullable=True,
    )
    state_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="before, after",
    )
    site_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    site_name: Mapped[str] = mapped_column(String(255), nullable=False)
    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    plugins: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Ordered list of {name, version, active, update_available, available_version}",
    )
    themes: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    wordpress_version: Mapped[str | None] = mapped_column(String(32), nullable=True)
    php_version: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_multisite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    active_theme: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plugin_update_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    theme_update_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    job: Mapped["MaintenanceJob | None"] = relationship(
        "MaintenanceJob",
        back_populates="site_states",
    )

    __table_args__ = (
        Index("ix_site_states_job_id", "job_id"),
        Index("ix_site_states_job_state_type", "job_id", "state_type"),
        Index("ix_site_states_site_url", "site_url"),
    )
