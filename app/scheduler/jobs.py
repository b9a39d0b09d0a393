"""
app/scheduler/jobs.py

APScheduler-based background jobs for the VRT service.

Schedule (all times UTC)
--------------------------
  sitemap_refresh: daily at SCHEDULER_SITEMAP_REFRESH_HOUR (default 01:00)
  stale_task_sweep: every hour

sitemap_refresh re-resolves every site in the ``sites`` table from its
remembered page/post sitemap URLs and rewrites the cached URL lists.
stale_task_sweep fails pipeline tasks left ``running`` for longer than
SCHEDULER_STALE_TASK_MINUTES (a worker died mid-capture).

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.config import get_scheduler_settings
from app.errors import VRTError
from app.vrt.runtime import VRTRuntime
from db.repositories.pipeline_task_repository import PipelineTaskRepository
from db.repositories.site_repository import SiteRepository
from db.session import SessionLocal

logger = logging.getLogger(__name__)

STALE_TASK_MESSAGE = "Task exceeded the running time limit and was marked failed."


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Job: Daily sitemap cache refresh
# ---------------------------------------------------------------------------


def refresh_sitemap_cache(runtime: VRTRuntime) -> None:
    """
    Re-resolve cached URL lists for every known site.
    One failing site does not stop the others.
    """
    logger.info("Scheduler: sitemap_refresh starting")

    with _session_scope() as db:
        sites = [
            (site.site_url, site.page_sitemap_url, site.post_sitemap_url)
            for site in SiteRepository(db).list_sites()
        ]

    if not sites:
        logger.info("Scheduler: sitemap_refresh, no sites found, skipping")
        return

    resolver = runtime.sitemap_resolver()
    for site_url, page_sitemap_url, post_sitemap_url in sites:
        try:
            resolved = resolver.resolve_site(
                site_url=site_url,
                page_sitemap_url=page_sitemap_url,
                post_sitemap_url=post_sitemap_url,
                cache=runtime.sitemap_cache,
            )
            logger.info(
                "Scheduler: sitemap_refresh site=%r pages=%d posts=%d",
                site_url,
                len(resolved.pages),
                len(resolved.posts),
            )
        except VRTError as exc:
            logger.warning("Scheduler: sitemap_refresh failed site=%r: %s", site_url, exc)

    logger.info("Scheduler: sitemap_refresh complete")


# ---------------------------------------------------------------------------
# Job: Hourly stale task sweep
# ---------------------------------------------------------------------------


def expire_stale_tasks() -> None:
    """
    Fail pipeline tasks that have been running longer than the configured limit.
    """
    logger.info("Scheduler: stale_task_sweep starting")
    cutoff = datetime.now(tz=timezone.utc) - timedelta(minutes=get_scheduler_settings().stale_task_minutes)

    with _session_scope() as db:
        try:
            expired = PipelineTaskRepository(db).fail_stale_running(
                started_before=cutoff,
                error_message=STALE_TASK_MESSAGE,
            )
            db.commit()
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.warning("Scheduler: stale_task_sweep failed: %s", exc)
            return

    logger.info("Scheduler: stale_task_sweep complete expired=%d", expired)


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(*, runtime: VRTRuntime) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        refresh_sitemap_cache,
        trigger="cron",
        hour=settings.sitemap_refresh_hour,
        minute=0,
        kwargs={"runtime": runtime},
        id="sitemap_refresh",
        name="Daily sitemap cache refresh",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        expire_stale_tasks,
        trigger="interval",
        hours=1,
        id="stale_task_sweep",
        name="Hourly stale task sweep",
        replace_existing=True,
        misfire_grace_time=600,
    )

    return scheduler
