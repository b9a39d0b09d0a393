"""
db/models/site.py

Per-site sitemap cache. Advisory only; sessions keep their own URL lists.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Site(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "sites"

    site_url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        comment="Normalized site root, no trailing slash",
    )
    page_sitemap_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    post_sitemap_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    page_urls: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    post_urls: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    last_fetched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (UniqueConstraint("site_url", name="uq_sites_site_url"),)
