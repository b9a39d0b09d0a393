"""
Sitemap resolution: sitemap URL -> ordered, deduplicated page URLs.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Protocol

import requests
from bs4 import BeautifulSoup

from app.errors import FetchError, StorageError
from app.vrt.logging_utils import log_event
from app.vrt.types import ResolvedSitemap

logger = logging.getLogger(__name__)

DEFAULT_SITEMAP_PATH = "/sitemap.xml"


class SitemapCache(Protocol):
    """
    Advisory site URL -> resolved sitemap cache.
    """

    def get(self, site_url: str) -> ResolvedSitemap | None:
        ...

    def put(self, site_url: str, resolved: ResolvedSitemap) -> None:
        ...


class InMemorySitemapCache:
    """
    Process-local cache owned by the runtime context.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ResolvedSitemap] = {}
        self._lock = threading.Lock()

    def get(self, site_url: str) -> ResolvedSitemap | None:
        with self._lock:
            return self._entries.get(normalize_site_url(site_url))

    def put(self, site_url: str, resolved: ResolvedSitemap) -> None:
        with self._lock:
            self._entries[normalize_site_url(site_url)] = resolved

    def site_urls(self) -> list[str]:
        with self._lock:
            return list(self._entries)


def normalize_site_url(site_url: str) -> str:
    return site_url.strip().rstrip("/")


def _dedupe(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        ordered.append(url)
    return ordered


def extract_leaf_urls(soup: BeautifulSoup) -> list[str]:
    """
    `<loc>` values outside any `<sitemap>` element, in document order.
    """

    urls: list[str] = []
    for loc in soup.find_all("loc"):
        if loc.find_parent("sitemap") is not None:
            continue
        value = loc.get_text(strip=True)
        if value.startswith("http"):
            urls.append(value)
    return _dedupe(urls)


def extract_child_sitemaps(soup: BeautifulSoup) -> list[str]:
    urls: list[str] = []
    for sitemap in soup.find_all("sitemap"):
        loc = sitemap.find("loc")
        if loc is None:
            continue
        value = loc.get_text(strip=True)
        if value:
            urls.append(value)
    return _dedupe(urls)


class SitemapResolver:
    """
    Fetches sitemap documents and expands sitemap indexes one level deep.
    """

    def __init__(
        self,
        *,
        session: requests.Session,
        timeout_seconds: float = 15.0,
        user_agent: str | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._timeout_seconds = timeout_seconds
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._now = now or (lambda: datetime.now(timezone.utc))

    def resolve(self, sitemap_url: str) -> list[str]:
        """
        Return the leaf URLs advertised by `sitemap_url`.

        Raises FetchError when the top-level document cannot be fetched.
        """

        soup = self._fetch(sitemap_url)
        urls = extract_leaf_urls(soup)
        if urls:
            log_event(logger, logging.INFO, "sitemap_resolved", sitemap_url=sitemap_url, urls=len(urls))
            return urls

        children = extract_child_sitemaps(soup)
        collected: list[str] = []
        for child_url in children:
            try:
                child_soup = self._fetch(child_url)
            except FetchError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "sub_sitemap_fetch_failed",
                    sitemap_url=sitemap_url,
                    sub_sitemap_url=child_url,
                    error=str(exc),
                )
                continue
            child_urls = extract_leaf_urls(child_soup)
            if not child_urls and extract_child_sitemaps(child_soup):
                log_event(
                    logger,
                    logging.WARNING,
                    "nested_sitemap_index_skipped",
                    sitemap_url=sitemap_url,
                    sub_sitemap_url=child_url,
                )
                continue
            collected.extend(child_urls)

        urls = _dedupe(collected)
        log_event(
            logger,
            logging.INFO,
            "sitemap_index_resolved",
            sitemap_url=sitemap_url,
            sub_sitemaps=len(children),
            urls=len(urls),
        )
        return urls

    def resolve_site(
        self,
        *,
        site_url: str,
        page_sitemap_url: str | None = None,
        post_sitemap_url: str | None = None,
        cache: SitemapCache | None = None,
    ) -> ResolvedSitemap:
        """
        Resolve pages and posts for a site, falling back to `<site>/sitemap.xml`.

        Each configured sitemap is resolved on its own; a failing one is logged
        and the other set is kept. FetchError is raised only when a configured
        sitemap failed and nothing at all could be resolved.
        """

        failures: list[FetchError] = []
        pages = self._resolve_configured(site_url, "page", page_sitemap_url, failures)
        posts = self._resolve_configured(site_url, "post", post_sitemap_url, failures)

        if not pages and not posts and site_url:
            fallback_url = f"{normalize_site_url(site_url)}{DEFAULT_SITEMAP_PATH}"
            try:
                pages = self.resolve(fallback_url)
            except FetchError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "default_sitemap_failed",
                    site_url=site_url,
                    sitemap_url=fallback_url,
                    error=str(exc),
                )

        if not pages and not posts and failures:
            raise failures[0]

        resolved = ResolvedSitemap(pages=pages, posts=posts, fetched_at=self._now())
        if cache is not None and not resolved.is_empty:
            try:
                cache.put(site_url, resolved)
            except StorageError as exc:
                log_event(
                    logger,
                    logging.ERROR,
                    "sitemap_cache_write_failed",
                    site_url=site_url,
                    error=str(exc),
                )
        return resolved

    def _resolve_configured(
        self,
        site_url: str,
        kind: str,
        sitemap_url: str | None,
        failures: list[FetchError],
    ) -> list[str]:
        if not sitemap_url:
            return []
        try:
            return self.resolve(sitemap_url)
        except FetchError as exc:
            log_event(
                logger,
                logging.WARNING,
                "configured_sitemap_failed",
                site_url=site_url,
                kind=kind,
                sitemap_url=sitemap_url,
                error=str(exc),
            )
            failures.append(exc)
            return []

    def _fetch(self, url: str) -> BeautifulSoup:
        try:
            response = self._session.get(url, headers=self._headers, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            raise FetchError(f"Failed to fetch sitemap {url}: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise FetchError(f"Failed to fetch sitemap {url}: HTTP {response.status_code}")
        return BeautifulSoup(response.text, "html.parser")
