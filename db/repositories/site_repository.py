"""
Repository for the per-site sitemap URL cache.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.site import Site


class SiteRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_url(self, site_url: str) -> Site | None:
        stmt = select(Site).where(Site.site_url == site_url)
        return self._session.scalars(stmt).first()

    def list_sites(self, *, limit: int = 500) -> list[Site]:
        stmt = select(Site).order_by(Site.site_url).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def upsert_urls(
        self,
        *,
        site_url: str,
        pages: Sequence[str],
        posts: Sequence[str],
        fetched_at: datetime | None,
        page_sitemap_url: str | None = None,
        post_sitemap_url: str | None = None,
    ) -> Site:
        site = self.get_by_url(site_url)
        if site is None:
            site = Site(site_url=site_url)
            self._session.add(site)
        site.page_urls = list(pages)
        site.post_urls = list(posts)
        site.last_fetched_at = fetched_at
        if page_sitemap_url is not None:
            site.page_sitemap_url = page_sitemap_url
        if post_sitemap_url is not None:
            site.post_sitemap_url = post_sitemap_url
        self._session.flush()
        return site
