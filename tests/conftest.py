"""
tests/conftest.py

Shared fixtures for the VRT pipeline tests.

Nothing here touches a database, the network or a real browser.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from app.config import ArtifactStoreSettings, VRTSettings
from app.vrt.artifacts import LocalArtifactStore
from app.vrt.runtime import VRTRuntime
from app.vrt.sitemap import InMemorySitemapCache
from tests.fakes import (
    PUBLIC_BASE_URL,
    FakeBrowserFactory,
    FakeHTTPSession,
    FakeJobStore,
    FakeReportStore,
    FakeSnapshotStore,
    InMemoryArtifactStore,
    InMemoryVRTSessionStore,
)


@pytest.fixture()
def session_store() -> InMemoryVRTSessionStore:
    return InMemoryVRTSessionStore()


@pytest.fixture()
def job_store() -> FakeJobStore:
    return FakeJobStore()


@pytest.fixture()
def snapshot_store() -> FakeSnapshotStore:
    return FakeSnapshotStore()


@pytest.fixture()
def report_store() -> FakeReportStore:
    return FakeReportStore()


@pytest.fixture()
def artifact_store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture()
def http_session() -> FakeHTTPSession:
    return FakeHTTPSession()


@pytest.fixture()
def vrt_settings() -> VRTSettings:
    return VRTSettings(capture_delay_seconds=0.0, batch_delay_seconds=0.0, settle_delay_ms=0)


@pytest.fixture()
def local_artifact_store(tmp_path, http_session: FakeHTTPSession) -> LocalArtifactStore:
    return LocalArtifactStore(
        root_dir=tmp_path / "artifacts",
        public_base_url=PUBLIC_BASE_URL,
        max_upload_bytes=1024 * 1024,
        session=http_session,
    )


@pytest.fixture()
def runtime(
    tmp_path,
    vrt_settings: VRTSettings,
    http_session: FakeHTTPSession,
    session_store: InMemoryVRTSessionStore,
    job_store: FakeJobStore,
    snapshot_store: FakeSnapshotStore,
    report_store: FakeReportStore,
    artifact_store: InMemoryArtifactStore,
) -> Iterator[VRTRuntime]:
    """Opened runtime wired entirely to in-memory collaborators."""
    runtime = VRTRuntime(
        vrt_settings=vrt_settings,
        artifact_settings=ArtifactStoreSettings(root_dir=str(tmp_path / "artifacts")),
        http_session=http_session,
        sitemap_cache=InMemorySitemapCache(),
        artifact_store=artifact_store,
        browser_factory=FakeBrowserFactory(),
        sessions=session_store,
        jobs=job_store,
        snapshots=snapshot_store,
        reports=report_store,
    )
    with runtime:
        yield runtime
