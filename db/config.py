"""
Environment-driven database configuration for the VRT service.

The URL resolves from DATABASE_URL, then CLOUD_DATABASE_URL (cloud-like
ENVIRONMENT only), then LOCAL_DATABASE_URL. Only PostgreSQL is accepted:
sessions, entries and reports rely on JSONB and native UUID columns.

Pool sizing follows capture concurrency. Every in-flight capture records its
result through its own short unit of work, so the pool holds one connection
per concurrent capture plus headroom for API requests and scheduler jobs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
POOL_HEADROOM = 2


def load_env_files() -> None:
    """
    Load KEY=VALUE pairs from `.env` then `.env.local` at the project root.
    Lines may start with `export `. Existing process variables win.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite postgres URLs to the psycopg 3 driver form.
    """

    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def resolve_database_url() -> str:
    load_env_files()

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    candidates = [os.getenv("DATABASE_URL")]
    if environment in CLOUD_ENVIRONMENTS:
        candidates.append(os.getenv("CLOUD_DATABASE_URL"))
    candidates.append(os.getenv("LOCAL_DATABASE_URL"))

    for candidate in candidates:
        if candidate and candidate.strip():
            url = normalize_postgres_url(candidate.strip())
            if not url.startswith("postgresql"):
                raise RuntimeError("Only PostgreSQL URLs are supported.")
            return url

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )


@dataclass(frozen=True)
class PoolSettings:
    pool_size: int
    max_overflow: int
    pool_recycle: int = 1800
    echo: bool = False


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def capture_concurrency(*, capture_mode: str, batch_size: int, max_browser_contexts: int) -> int:
    """Captures that can hold a connection at the same time."""
    workers = batch_size if capture_mode == "batched" else 1
    return max(1, min(workers, max_browser_contexts))


def resolve_pool_settings(concurrency: int) -> PoolSettings:
    """
    Defaults sized from `concurrency`; DB_POOL_SIZE, DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE and SQL_ECHO override.
    """

    return PoolSettings(
        pool_size=max(1, _env_int("DB_POOL_SIZE", concurrency + POOL_HEADROOM)),
        max_overflow=max(0, _env_int("DB_MAX_OVERFLOW", concurrency)),
        pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
        echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
    )
