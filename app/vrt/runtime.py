"""
Runtime context owning the shared VRT resources.

Created once per process (API lifespan or CLI run), opened at startup and
closed at shutdown. Engines receive their collaborators from here instead of
module-level globals.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

import requests
from sqlalchemy.orm import Session

from app.config import (
    ArtifactStoreSettings,
    VRTSettings,
    get_artifact_store_settings,
    get_vrt_settings,
)
from app.vrt.artifacts import ArtifactStore, LocalArtifactStore
from app.vrt.browser import BrowserFactory, BrowserProfile, PlaywrightBrowserFactory
from app.vrt.capture import CaptureWorker
from app.vrt.diff import DiffEngine
from app.vrt.logging_utils import log_event
from app.vrt.report import ReportSynthesizer
from app.vrt.runners import PhaseRunner, build_phase_runner
from app.vrt.session_machine import VRTSessionMachine
from app.vrt.sitemap import SitemapCache, SitemapResolver
from app.vrt.storage.base import JobStore, ReportStore, SnapshotStore, VRTSessionStore
from app.vrt.storage.sqlalchemy_storage import (
    SQLAlchemyJobStore,
    SQLAlchemyReportStore,
    SQLAlchemySitemapCache,
    SQLAlchemySnapshotStore,
    SQLAlchemyVRTSessionStore,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VRTRuntime:
    """
    Dependency root for sitemap, capture, diff and report engines.
    """

    def __init__(
        self,
        *,
        vrt_settings: VRTSettings,
        artifact_settings: ArtifactStoreSettings,
        session_factory: Callable[[], Session] | None = None,
        http_session: requests.Session | None = None,
        sitemap_cache: SitemapCache | None = None,
        artifact_store: ArtifactStore | None = None,
        browser_factory: BrowserFactory | None = None,
        sessions: VRTSessionStore | None = None,
        jobs: JobStore | None = None,
        snapshots: SnapshotStore | None = None,
        reports: ReportStore | None = None,
    ) -> None:
        self.vrt_settings = vrt_settings
        self.artifact_settings = artifact_settings
        self._session_factory = session_factory
        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._sitemap_cache = sitemap_cache
        self._artifact_store = artifact_store
        self._browser_factory = browser_factory
        self._sessions = sessions
        self._jobs = jobs
        self._snapshots = snapshots
        self._reports = reports
        self._opened = False

    def open(self) -> VRTRuntime:
        if self._opened:
            return self
        if self._http_session is None:
            self._http_session = requests.Session()
        if self._session_factory is not None:
            factory = self._session_factory
            self._sitemap_cache = self._sitemap_cache or SQLAlchemySitemapCache(session_factory=factory)
            self._sessions = self._sessions or SQLAlchemyVRTSessionStore(session_factory=factory)
            self._jobs = self._jobs or SQLAlchemyJobStore(session_factory=factory)
            self._snapshots = self._snapshots or SQLAlchemySnapshotStore(session_factory=factory)
            self._reports = self._reports or SQLAlchemyReportStore(session_factory=factory)
        if self._artifact_store is None:
            self._artifact_store = LocalArtifactStore(
                root_dir=self.artifact_settings.root_dir,
                public_base_url=self.artifact_settings.public_base_url,
                max_upload_bytes=self.artifact_settings.max_upload_bytes,
                session=self._http_session,
                timeout_seconds=self.artifact_settings.fetch_timeout_seconds,
            )
        if self._browser_factory is None:
            settings = self.vrt_settings
            self._browser_factory = PlaywrightBrowserFactory(
                profile=BrowserProfile(
                    viewport_width=settings.viewport_width,
                    viewport_height=settings.viewport_height,
                    user_agent=settings.user_agent,
                    headless=settings.headless,
                    navigation_timeout_ms=settings.navigation_timeout_ms,
                ),
                max_contexts=settings.max_browser_contexts,
            )
        self._opened = True
        log_event(
            logger,
            logging.INFO,
            "vrt_runtime_opened",
            capture_mode=self.vrt_settings.capture_mode,
            artifact_root=self.artifact_settings.root_dir,
        )
        return self

    def close(self) -> None:
        if not self._opened:
            return
        if self._owns_http_session and self._http_session is not None:
            self._http_session.close()
            self._http_session = None
        self._opened = False
        log_event(logger, logging.INFO, "vrt_runtime_closed")

    def __enter__(self) -> VRTRuntime:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require(self, value: T | None, name: str) -> T:
        if not self._opened:
            raise RuntimeError("VRT runtime is not open.")
        if value is None:
            raise RuntimeError(f"VRT runtime has no {name} configured.")
        return value

    @property
    def http_session(self) -> requests.Session:
        return self._require(self._http_session, "HTTP session")

    @property
    def sitemap_cache(self) -> SitemapCache:
        return self._require(self._sitemap_cache, "sitemap cache")

    @property
    def artifact_store(self) -> ArtifactStore:
        return self._require(self._artifact_store, "artifact store")

    @property
    def sessions(self) -> VRTSessionStore:
        return self._require(self._sessions, "session store")

    @property
    def jobs(self) -> JobStore:
        return self._require(self._jobs, "job store")

    @property
    def snapshots(self) -> SnapshotStore:
        return self._require(self._snapshots, "snapshot store")

    @property
    def reports(self) -> ReportStore:
        return self._require(self._reports, "report store")

    def sitemap_resolver(self) -> SitemapResolver:
        return SitemapResolver(
            session=self.http_session,
            timeout_seconds=self.vrt_settings.sitemap_timeout_seconds,
            user_agent=self.vrt_settings.sitemap_user_agent,
        )

    def phase_runner(self) -> PhaseRunner:
        settings = self.vrt_settings
        return build_phase_runner(
            mode=settings.capture_mode,
            capture_delay_seconds=settings.capture_delay_seconds,
            batch_size=settings.batch_size,
            batch_delay_seconds=settings.batch_delay_seconds,
        )

    def capture_worker(self, *, full_page: bool | None = None, timeout_ms: int | None = None) -> CaptureWorker:
        settings = self.vrt_settings
        return CaptureWorker(
            browser_factory=self._require(self._browser_factory, "browser factory"),
            artifact_store=self.artifact_store,
            folder=self.artifact_settings.screenshot_folder,
            navigation_timeout_ms=timeout_ms or settings.navigation_timeout_ms,
            settle_delay_ms=settings.settle_delay_ms,
            jpeg_quality=settings.jpeg_quality,
            fallback_quality=settings.fallback_quality,
            full_page=settings.full_page if full_page is None else full_page,
        )

    def session_machine(self, *, full_page: bool | None = None, timeout_ms: int | None = None) -> VRTSessionMachine:
        return VRTSessionMachine(
            store=self.sessions,
            runner=self.phase_runner(),
            capture=self.capture_worker(full_page=full_page, timeout_ms=timeout_ms),
        )

    def diff_engine(self) -> DiffEngine:
        settings = self.vrt_settings
        return DiffEngine(
            artifact_store=self.artifact_store,
            folder=self.artifact_settings.diff_folder,
            threshold=settings.diff_threshold,
            alpha=settings.diff_alpha,
            pass_threshold=settings.pass_threshold_percent,
        )

    def report_synthesizer(self) -> ReportSynthesizer:
        return ReportSynthesizer(
            jobs=self.jobs,
            snapshots=self.snapshots,
            sessions=self.sessions,
            reports=self.reports,
            diff_engine=self.diff_engine(),
        )


def build_runtime(session_factory: Callable[[], Session] | None = None) -> VRTRuntime:
    """
    Build an unopened runtime from environment settings.
    """

    return VRTRuntime(
        vrt_settings=get_vrt_settings(),
        artifact_settings=get_artifact_store_settings(),
        session_factory=session_factory,
    )
