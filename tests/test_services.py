"""
tests/test_services.py

Unit tests for the service layer: VRT orchestration, inventory intake and
background task tracking.

Repositories are replaced with in-memory doubles via monkeypatch, so no
database session is ever opened.

Coverage
--------
- VRTService: cached URLs preferred, sitemap fallback, no-URL jobs, progress
- InventoryService: before/after linking, unknown job stored unlinked
- PipelineTaskService: completed and failed task lifecycles, scheduling errors
- scheduler: job registration, per-site refresh failures are contained
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.domain.jobs import JobStatus, MaintenanceJobView, TaskPreferences
from app.domain.vrt import SessionStatus
from app.errors import NotFoundError, ValidationError
from app.scheduler import jobs as scheduler_jobs
from app.services import inventory_service as inventory_module
from app.services import task_service as task_module
from app.services.inventory_service import InventoryService
from app.services.task_service import InlineTaskExecutor, PipelineTaskService
from app.services.vrt_service import VRTService
from app.vrt.types import ResolvedSitemap
from tests.fakes import FakeResponse

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
SITEMAP_XML = (
    '<?xml version="1.0" encoding="UTF-8"?><urlset>'
    "<url><loc>https://example.com/fresh</loc></url>"
    "</urlset>"
)


def _job(**overrides) -> MaintenanceJobView:
    values = {
        "job_id": uuid.uuid4(),
        "project_name": "Client Site",
        "site_url": "https://example.com",
        "site_type": "live",
        "status": JobStatus.RUNNING,
        "preferences": TaskPreferences(before_after_vrt=True),
        "page_sitemap_url": "https://example.com/page-sitemap.xml",
    }
    values.update(overrides)
    return MaintenanceJobView(**values)


class FakeDB:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def __enter__(self) -> "FakeDB":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


# ---------------------------------------------------------------------------
# VRTService
# ---------------------------------------------------------------------------


class TestVRTService:
    def test_cached_urls_win_over_sitemap(self, runtime, http_session) -> None:
        job = _job()
        runtime.sitemap_cache.put(
            job.site_url,
            ResolvedSitemap(pages=["https://example.com/cached"], posts=[], fetched_at=NOW),
        )
        resolved = VRTService(runtime=runtime).urls_for_job(job)
        assert resolved.pages == ["https://example.com/cached"]
        assert http_session.calls == []

    def test_resolves_sitemap_on_cache_miss(self, runtime, http_session) -> None:
        http_session.responses["https://example.com/page-sitemap.xml"] = SITEMAP_XML
        resolved = VRTService(runtime=runtime).urls_for_job(_job())
        assert resolved.pages == ["https://example.com/fresh"]
        assert runtime.sitemap_cache.get("https://example.com") is not None

    def test_no_sitemap_configuration(self, runtime) -> None:
        job = _job(page_sitemap_url=None)
        assert VRTService(runtime=runtime).urls_for_job(job) is None

    def test_reference_capture_without_urls(self, runtime, job_store, session_store) -> None:
        job = job_store.add(_job(page_sitemap_url=None))
        result = VRTService(runtime=runtime).run_reference_capture(job.job_id)
        assert result == {"job_id": str(job.job_id), "session_id": None, "message": "No URLs to capture"}
        assert session_store.sessions == {}

    def test_reference_capture_unknown_job(self, runtime) -> None:
        with pytest.raises(NotFoundError):
            VRTService(runtime=runtime).run_reference_capture(uuid.uuid4())

    def test_reference_capture_creates_session(self, runtime, job_store, http_session) -> None:
        http_session.responses["https://example.com/page-sitemap.xml"] = SITEMAP_XML
        job = job_store.add(_job())
        result = VRTService(runtime=runtime).run_reference_capture(job.job_id)
        assert result["status"] == SessionStatus.BEFORE_COMPLETED
        assert result["before_captured"] == 1
        assert result["summary"]["phase"] == "before"

    def test_reference_capture_survives_failing_page_sitemap(self, runtime, job_store, http_session) -> None:
        http_session.responses["https://example.com/page-sitemap.xml"] = FakeResponse(status_code=500)
        http_session.responses["https://example.com/post-sitemap.xml"] = SITEMAP_XML
        job = job_store.add(_job(post_sitemap_url="https://example.com/post-sitemap.xml"))

        result = VRTService(runtime=runtime).run_reference_capture(job.job_id)

        assert result["status"] == SessionStatus.BEFORE_COMPLETED
        assert result["pages"] == 0
        assert result["posts"] == 1

    def test_resolve_requires_some_url(self, runtime) -> None:
        with pytest.raises(ValidationError):
            VRTService(runtime=runtime).resolve_sitemap_urls(site_url="")

    def test_progress_unknown_job(self, runtime) -> None:
        with pytest.raises(NotFoundError):
            VRTService(runtime=runtime).get_progress(uuid.uuid4())


# ---------------------------------------------------------------------------
# InventoryService
# ---------------------------------------------------------------------------


class FakeJobRepository:
    jobs: set[uuid.UUID] = set()
    attached: list[tuple[str, uuid.UUID, uuid.UUID]] = []

    def __init__(self, db) -> None:
        self.db = db

    def get_job(self, job_id):
        return SimpleNamespace(id=job_id) if job_id in self.jobs else None

    def attach_before_state(self, *, job_id, state_id):
        self.attached.append(("before", job_id, state_id))

    def attach_after_state(self, *, job_id, state_id):
        self.attached.append(("after", job_id, state_id))


class FakeStateRepository:
    def __init__(self, db) -> None:
        self.db = db

    def create_state(self, **fields):
        return SimpleNamespace(id=uuid.uuid4(), **fields)


@pytest.fixture()
def inventory_repos(monkeypatch):
    FakeJobRepository.jobs = set()
    FakeJobRepository.attached = []
    monkeypatch.setattr(inventory_module, "MaintenanceJobRepository", FakeJobRepository)
    monkeypatch.setattr(inventory_module, "SiteStateRepository", FakeStateRepository)
    return FakeJobRepository


class TestInventoryService:
    def _payload(self, state_type: str, job_id: uuid.UUID) -> dict:
        return {
            "state_type": state_type,
            "automation_id": str(job_id),
            "site_url": "https://example.com",
            "plugins": [{"name": "Akismet", "version": "5.3"}],
            "themes": [{"name": "Astra", "version": "4.0", "active": True}],
        }

    def test_links_before_and_after(self, inventory_repos) -> None:
        job_id = uuid.uuid4()
        inventory_repos.jobs.add(job_id)
        db = FakeDB()
        service = InventoryService()

        before = service.record_state(db=db, payload=self._payload("before", job_id))
        after = service.record_state(db=db, payload=self._payload("after", job_id))

        assert [(kind, jid) for kind, jid, _ in inventory_repos.attached] == [
            ("before", job_id),
            ("after", job_id),
        ]
        assert inventory_repos.attached[0][2] == before.snapshot_id
        assert after.plugins[0].name == "Akismet"
        assert after.active_theme == "Astra"
        assert db.commits == 2

    def test_unknown_job_is_stored_unlinked(self, inventory_repos) -> None:
        snapshot = InventoryService().record_state(db=FakeDB(), payload=self._payload("before", uuid.uuid4()))
        assert snapshot.job_id is None
        assert inventory_repos.attached == []

    def test_invalid_payload_commits_nothing(self, inventory_repos) -> None:
        db = FakeDB()
        with pytest.raises(ValidationError):
            InventoryService().record_state(db=db, payload={"site_url": "https://example.com"})
        assert db.commits == 0


# ---------------------------------------------------------------------------
# PipelineTaskService
# ---------------------------------------------------------------------------


class FakeTaskRepository:
    tasks: dict[uuid.UUID, SimpleNamespace] = {}

    def __init__(self, db) -> None:
        self.db = db

    def create_task(self, *, task_type, job_id=None, request_payload=None):
        task = SimpleNamespace(
            id=uuid.uuid4(),
            task_type=task_type,
            job_id=job_id,
            request_payload=request_payload,
            status="pending",
            result_payload=None,
            error_message=None,
        )
        self.tasks[task.id] = task
        return task

    def mark_running(self, *, task_id):
        task = self.tasks.get(task_id)
        if task is not None:
            task.status = "running"
        return task

    def mark_completed(self, *, task_id, result_payload=None):
        task = self.tasks.get(task_id)
        if task is not None:
            task.status = "completed"
            task.result_payload = result_payload
        return task

    def mark_failed(self, *, task_id, error_message):
        task = self.tasks.get(task_id)
        if task is not None:
            task.status = "failed"
            task.error_message = error_message
        return task


class RefusingExecutor:
    def submit(self, task, *args, **kwargs) -> None:
        raise RuntimeError("queue full")


@pytest.fixture()
def task_repo(monkeypatch):
    FakeTaskRepository.tasks = {}
    monkeypatch.setattr(task_module, "PipelineTaskRepository", FakeTaskRepository)
    return FakeTaskRepository


class TestPipelineTaskService:
    def test_successful_work_completes_task(self, task_repo) -> None:
        service = PipelineTaskService(session_factory=FakeDB)
        job_id = uuid.uuid4()

        task = service.submit_reference_capture(
            db=FakeDB(),
            executor=InlineTaskExecutor(),
            job_id=job_id,
            work=lambda: {"session_id": "abc"},
        )

        stored = task_repo.tasks[task.id]
        assert stored.status == "completed"
        assert stored.result_payload == {"session_id": "abc"}
        assert stored.request_payload == {"job_id": str(job_id)}

    def test_failing_work_marks_task_failed(self, task_repo) -> None:
        service = PipelineTaskService(session_factory=FakeDB)

        def work():
            raise NotFoundError("Maintenance job gone.")

        task = service.submit(db=FakeDB(), executor=InlineTaskExecutor(), task_type="reference_capture", work=work)

        stored = task_repo.tasks[task.id]
        assert stored.status == "failed"
        assert stored.error_message == "NotFoundError: Maintenance job gone."

    def test_scheduling_failure_marks_failed_and_raises(self, task_repo) -> None:
        service = PipelineTaskService(session_factory=FakeDB)
        db = FakeDB()
        with pytest.raises(RuntimeError, match="queue full"):
            service.submit(db=db, executor=RefusingExecutor(), task_type="reference_capture", work=lambda: None)
        (stored,) = task_repo.tasks.values()
        assert stored.status == "failed"
        assert db.commits == 2


# ---------------------------------------------------------------------------
# Scheduler jobs
# ---------------------------------------------------------------------------


class TestScheduler:
    def test_registers_both_jobs(self, runtime) -> None:
        scheduler = scheduler_jobs.build_scheduler(runtime=runtime)
        assert sorted(job.id for job in scheduler.get_jobs()) == ["sitemap_refresh", "stale_task_sweep"]

    def test_refresh_continues_past_failing_site(self, runtime, http_session, monkeypatch) -> None:
        sites = [
            SimpleNamespace(
                site_url="https://broken.example.com",
                page_sitemap_url="https://broken.example.com/sitemap.xml",
                post_sitemap_url=None,
            ),
            SimpleNamespace(
                site_url="https://example.com",
                page_sitemap_url="https://example.com/page-sitemap.xml",
                post_sitemap_url=None,
            ),
        ]

        @contextmanager
        def _scope():
            yield FakeDB()

        monkeypatch.setattr(scheduler_jobs, "_session_scope", _scope)
        monkeypatch.setattr(
            scheduler_jobs,
            "SiteRepository",
            lambda db: SimpleNamespace(list_sites=lambda: sites),
        )
        http_session.responses["https://example.com/page-sitemap.xml"] = SITEMAP_XML

        scheduler_jobs.refresh_sitemap_cache(runtime)

        assert runtime.sitemap_cache.get("https://example.com").pages == ["https://example.com/fresh"]
        assert runtime.sitemap_cache.get("https://broken.example.com") is None
