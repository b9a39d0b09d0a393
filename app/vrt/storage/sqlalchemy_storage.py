"""
SQLAlchemy-backed storage adapters for the VRT engines.

Every operation runs in its own short transaction so each entry update is
committed as soon as it is made.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import asdict, replace
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.inventory import ExtensionRecord, InventorySnapshot
from app.domain.jobs import MaintenanceJobView, TaskPreferences
from app.domain.report import ReportRecord, report_from_payload, report_to_payload
from app.domain.vrt import ArtifactRef, DiffResult, VRTEntry, VRTSession
from app.errors import StorageError
from app.vrt.sitemap import normalize_site_url
from app.vrt.storage.base import JobStore, ReportStore, SnapshotStore, VRTSessionStore
from app.vrt.types import ResolvedSitemap
from db.models.maintenance_job import MaintenanceJob
from db.models.report import Report
from db.models.site_state import SiteState
from db.models.vrt_session import VRTEntryRecord, VRTSessionRecord
from db.repositories.maintenance_job_repository import MaintenanceJobRepository
from db.repositories.report_repository import ReportRepository
from db.repositories.site_repository import SiteRepository
from db.repositories.site_state_repository import SiteStateRepository
from db.repositories.vrt_session_repository import VRTSessionRepository

SessionFactory = Callable[[], Session]


@contextmanager
def unit_of_work(session_factory: SessionFactory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageError(f"Database operation failed: {exc}") from exc
    finally:
        session.close()


def _artifact(url: str | None, public_id: str | None) -> ArtifactRef | None:
    if not url:
        return None
    return ArtifactRef(url=url, public_id=public_id or "")


def entry_from_record(record: VRTEntryRecord) -> VRTEntry:
    diff = None
    if record.diff_status:
        diff = DiffResult(
            status=record.diff_status,
            percent=record.diff_percent,
            artifact=_artifact(record.diff_url, record.diff_public_id),
            error=record.diff_error,
        )
    return VRTEntry(
        entry_id=record.id,
        kind=record.kind,
        position=record.position,
        url=record.url,
        before=_artifact(record.before_url, record.before_public_id),
        after=_artifact(record.after_url, record.after_public_id),
        diff=diff,
    )


def session_from_record(record: VRTSessionRecord) -> VRTSession:
    entries = sorted((entry_from_record(item) for item in record.entries), key=lambda e: e.position)
    return VRTSession(
        session_id=record.id,
        job_id=record.job_id,
        site_url=record.site_url,
        status=record.status,
        pages=[entry for entry in entries if entry.kind == "page"],
        posts=[entry for entry in entries if entry.kind == "post"],
        created_at=record.created_at,
        before_completed_at=record.before_completed_at,
        after_completed_at=record.after_completed_at,
    )


def job_view_from_record(record: MaintenanceJob) -> MaintenanceJobView:
    return MaintenanceJobView(
        job_id=record.id,
        project_name=record.project_name,
        site_url=record.site_url,
        site_type=record.site_type,
        status=record.status,
        preferences=TaskPreferences(
            functionality_test=record.functionality_test,
            plugin_update=record.plugin_update,
            theme_update=record.theme_update,
            before_after_vrt=record.before_after_vrt,
            sitemap_vrt=record.sitemap_vrt,
            frequency=record.frequency,
            scheduled_time=record.scheduled_time,
        ),
        page_sitemap_url=record.page_sitemap_url,
        post_sitemap_url=record.post_sitemap_url,
        start_time=record.start_time,
        end_time=record.end_time,
        before_state_id=record.before_state_id,
        after_state_id=record.after_state_id,
        notification_emails=tuple(record.notification_emails or ()),
    )


def _extension_from_json(item: dict[str, Any]) -> ExtensionRecord:
    return ExtensionRecord(
        name=str(item.get("name", "")),
        version=str(item.get("version", "")),
        active=bool(item.get("active", False)),
        update_available=bool(item.get("update_available", False)),
        available_version=item.get("available_version"),
        identifier=item.get("identifier"),
        author=item.get("author"),
        description=item.get("description"),
    )


def snapshot_from_state(record: SiteState) -> InventorySnapshot:
    return InventorySnapshot(
        snapshot_id=record.id,
        job_id=record.job_id,
        state_type=record.state_type,
        site_url=record.site_url,
        site_name=record.site_name,
        captured_at=record.captured_at,
        plugins=tuple(_extension_from_json(item) for item in record.plugins or ()),
        themes=tuple(_extension_from_json(item) for item in record.themes or ()),
        wordpress_version=record.wordpress_version,
        php_version=record.php_version,
        is_multisite=record.is_multisite,
    )


def state_fields_from_snapshot(snapshot: InventorySnapshot) -> dict[str, Any]:
    return {
        "job_id": snapshot.job_id,
        "state_type": snapshot.state_type,
        "site_url": snapshot.site_url,
        "site_name": snapshot.site_name,
        "captured_at": snapshot.captured_at,
        "plugins": [asdict(item) for item in snapshot.plugins],
        "themes": [asdict(item) for item in snapshot.themes],
        "wordpress_version": snapshot.wordpress_version,
        "php_version": snapshot.php_version,
        "is_multisite": snapshot.is_multisite,
        "active_theme": snapshot.active_theme,
        "plugin_update_count": snapshot.plugin_update_count,
        "theme_update_count": snapshot.theme_update_count,
    }


def report_from_row(row: Report) -> ReportRecord:
    payload = dict(row.payload)
    payload["report_id"] = str(row.id)
    return report_from_payload(payload)


class SQLAlchemyVRTSessionStore(VRTSessionStore):
    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def create_session(
        self,
        *,
        job_id: uuid.UUID,
        site_url: str,
        status: str,
        pages: Sequence[str],
        posts: Sequence[str],
    ) -> VRTSession:
        with unit_of_work(self._session_factory) as db:
            record = VRTSessionRepository(db).create_session(
                job_id=job_id,
                site_url=site_url,
                status=status,
                pages=pages,
                posts=posts,
            )
            db.refresh(record)
            return session_from_record(record)

    def get_session(self, session_id: uuid.UUID) -> VRTSession | None:
        with unit_of_work(self._session_factory) as db:
            record = VRTSessionRepository(db).get_session(session_id)
            return session_from_record(record) if record is not None else None

    def get_session_for_job(self, job_id: uuid.UUID) -> VRTSession | None:
        with unit_of_work(self._session_factory) as db:
            record = VRTSessionRepository(db).get_latest_for_job(job_id)
            return session_from_record(record) if record is not None else None

    def record_capture(
        self,
        *,
        session_id: uuid.UUID,
        entry_id: uuid.UUID,
        phase: str,
        artifact: ArtifactRef,
    ) -> None:
        with unit_of_work(self._session_factory) as db:
            updated = VRTSessionRepository(db).set_entry_artifact(
                session_id=session_id,
                entry_id=entry_id,
                phase=phase,
                url=artifact.url,
                public_id=artifact.public_id,
            )
        if updated != 1:
            raise StorageError(f"VRT entry {entry_id} not found in session {session_id}.")

    def record_diff(
        self,
        *,
        session_id: uuid.UUID,
        entry_id: uuid.UUID,
        diff: DiffResult,
    ) -> None:
        with unit_of_work(self._session_factory) as db:
            updated = VRTSessionRepository(db).set_entry_diff(
                session_id=session_id,
                entry_id=entry_id,
                url=diff.artifact.url if diff.artifact else None,
                public_id=diff.artifact.public_id if diff.artifact else None,
                percent=diff.percent,
                status=diff.status,
                error=diff.error,
            )
        if updated != 1:
            raise StorageError(f"VRT entry {entry_id} not found in session {session_id}.")

    def compare_and_set_status(
        self,
        *,
        session_id: uuid.UUID,
        expected: str,
        target: str,
        timestamp: datetime | None = None,
    ) -> bool:
        with unit_of_work(self._session_factory) as db:
            return VRTSessionRepository(db).compare_and_set_status(
                session_id=session_id,
                expected=expected,
                target=target,
                timestamp=timestamp,
            )


class SQLAlchemyJobStore(JobStore):
    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get_job(self, job_id: uuid.UUID) -> MaintenanceJobView | None:
        with unit_of_work(self._session_factory) as db:
            record = MaintenanceJobRepository(db).get_job(job_id)
            return job_view_from_record(record) if record is not None else None


class SQLAlchemySnapshotStore(SnapshotStore):
    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get_snapshot(self, snapshot_id: uuid.UUID) -> InventorySnapshot | None:
        with unit_of_work(self._session_factory) as db:
            record = SiteStateRepository(db).get_state(snapshot_id)
            return snapshot_from_state(record) if record is not None else None

    def latest_for_job(self, job_id: uuid.UUID, state_type: str) -> InventorySnapshot | None:
        with unit_of_work(self._session_factory) as db:
            record = SiteStateRepository(db).latest_for_job(job_id=job_id, state_type=state_type)
            return snapshot_from_state(record) if record is not None else None


class SQLAlchemyReportStore(ReportStore):
    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get_for_job(self, job_id: uuid.UUID) -> ReportRecord | None:
        with unit_of_work(self._session_factory) as db:
            row = ReportRepository(db).get_by_job(job_id)
            return report_from_row(row) if row is not None else None

    def get(self, report_id: uuid.UUID) -> ReportRecord | None:
        with unit_of_work(self._session_factory) as db:
            row = ReportRepository(db).get(report_id)
            return report_from_row(row) if row is not None else None

    def create(self, report: ReportRecord) -> tuple[ReportRecord, bool]:
        stored = replace(report, report_id=report.report_id or uuid.uuid4())
        try:
            with unit_of_work(self._session_factory) as db:
                ReportRepository(db).create(
                    report_id=stored.report_id,
                    job_id=stored.job_id,
                    status=stored.status,
                    generated_at=stored.generated_at,
                    payload=report_to_payload(stored),
                )
        except StorageError as exc:
            if not isinstance(exc.__cause__, IntegrityError):
                raise
            existing = self.get_for_job(report.job_id)
            if existing is None:
                raise
            return existing, False
        return stored, True


class SQLAlchemySitemapCache:
    """
    Sitemap cache persisted on the `sites` table.
    """

    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, site_url: str) -> ResolvedSitemap | None:
        with unit_of_work(self._session_factory) as db:
            site = SiteRepository(db).get_by_url(normalize_site_url(site_url))
            if site is None or site.last_fetched_at is None:
                return None
            return ResolvedSitemap(
                pages=list(site.page_urls or []),
                posts=list(site.post_urls or []),
                fetched_at=site.last_fetched_at,
            )

    def put(self, site_url: str, resolved: ResolvedSitemap) -> None:
        with unit_of_work(self._session_factory) as db:
            SiteRepository(db).upsert_urls(
                site_url=normalize_site_url(site_url),
                pages=resolved.pages,
                posts=resolved.posts,
                fetched_at=resolved.fetched_at,
            )

