from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api.error_handlers import register_exception_handlers


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - No empty-string values are accepted.
    - SQLite fallbacks are not permitted.
    - SMTP_HOST is required whenever NOTIFY_ENABLED is true.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- APP_MODE -------------------------------------------------------
    app_mode = os.getenv("APP_MODE", "").strip().lower()
    if not app_mode:
        errors.append("APP_MODE is not set. It must be explicitly set to 'cloud' or 'local'.")
    elif app_mode not in {"cloud", "local"}:
        errors.append(f"APP_MODE='{app_mode}' is not valid. Allowed values: ['cloud', 'local'].")

    # --- Database URL ---------------------------------------------------
    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not database_url and not cloud_database_url and not local_database_url:
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL. "
            "SQLite fallbacks are not permitted."
        )

    # --- Notifications --------------------------------------------------
    notify_raw = os.getenv("NOTIFY_ENABLED", "false").strip().lower()
    if notify_raw in {"1", "true", "yes", "on"} and not os.getenv("SMTP_HOST", "").strip():
        errors.append("SMTP_HOST is not set but NOTIFY_ENABLED is true.")

    if errors:
        raise RuntimeError(
            "Startup validation failed. Missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    If any are missing, log a critical error and abort startup so that
    the operator is forced to run migrations before serving traffic.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, open the VRT runtime and start the scheduler."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.config import get_notification_settings, get_scheduler_settings
    from app.scheduler.jobs import build_scheduler
    from app.services.notification_service import build_notifier
    from app.vrt.runtime import build_runtime
    from db.session import SessionLocal

    runtime = build_runtime(SessionLocal).open()
    application.state.runtime = runtime
    application.state.session_factory = SessionLocal
    notifier = build_notifier()
    application.state.notifier = notifier

    scheduler = None
    if get_scheduler_settings().enabled:
        scheduler = build_scheduler(runtime=runtime)
        scheduler.start()
        logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=True)
            logging.getLogger(__name__).info("Scheduler shut down")
        notifier.join(timeout=get_notification_settings().timeout_seconds)
        runtime.close()


def _mount_artifacts(application: FastAPI) -> None:
    from app.config import get_artifact_store_settings

    root_dir = Path(get_artifact_store_settings().root_dir)
    root_dir.mkdir(parents=True, exist_ok=True)
    application.mount("/artifacts", StaticFiles(directory=str(root_dir)), name="artifacts")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Maintenance VRT API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import (
        jobs_router,
        reports_router,
        states_router,
        tasks_router,
        vrt_router,
    )

    application.include_router(jobs_router)
    application.include_router(states_router)
    application.include_router(vrt_router)
    application.include_router(reports_router)
    application.include_router(tasks_router)
    register_exception_handlers(application)
    _mount_artifacts(application)

    @application.get("/health")
    def healthcheck() -> dict[str, object]:
        return {
            "success": True,
            "message": "Service healthy",
            "data": {"status": "ok"},
        }

    return application


app = create_app()
