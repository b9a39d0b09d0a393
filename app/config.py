"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_APP_MODES = {"cloud", "local"}
_ALLOWED_CAPTURE_MODES = {"sequential", "batched"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _require_app_mode() -> str:
    """
    Read and validate APP_MODE from the environment.
    """

    _load_env_once()
    raw = os.getenv("APP_MODE")
    if raw is None:
        raise RuntimeError(f"APP_MODE must be set. Allowed values: {sorted(_ALLOWED_APP_MODES)}.")
    mode = raw.strip().lower()
    if mode not in _ALLOWED_APP_MODES:
        raise RuntimeError(
            f"APP_MODE '{raw.strip()}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_APP_MODES)}."
        )
    return mode


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application mode settings.
    """

    mode: str


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.

    Raises RuntimeError if APP_MODE is missing or invalid.
    """

    return AppSettings(mode=_require_app_mode())


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class VRTSettings:
    """
    Capture, pacing and diff settings for VRT phases.
    """

    capture_mode: str = "sequential"
    capture_delay_seconds: float = 2.0
    batch_size: int = 3
    batch_delay_seconds: float = 1.0
    navigation_timeout_ms: int = 30000
    settle_delay_ms: int = 2000
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    jpeg_quality: int = 80
    fallback_quality: int = 70
    full_page: bool = True
    max_browser_contexts: int = 3
    headless: bool = True
    diff_threshold: float = 0.1
    diff_alpha: float = 0.7
    pass_threshold_percent: float = 1.0
    sitemap_timeout_seconds: float = 15.0
    sitemap_user_agent: str = "MaintenanceVRT/1.0 (+sitemap-resolver)"


@dataclass(frozen=True)
class ArtifactStoreSettings:
    """
    Local artifact store location and limits.
    """

    root_dir: str = "data/artifacts"
    public_base_url: str = "http://localhost:8000/artifacts"
    max_upload_bytes: int = 10 * 1024 * 1024
    screenshot_folder: str = "techops-screenshots/vrt"
    diff_folder: str = "techops-screenshots/vrt-diffs"
    fetch_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class NotificationSettings:
    """
    SMTP settings for report notification emails.
    """

    enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    sender: str = "maintenance-vrt@localhost"
    use_ssl: bool = False
    use_starttls: bool = True
    timeout_seconds: float = 30.0
    report_base_url: str = "http://localhost:3000/reports"


@dataclass(frozen=True)
class SchedulerSettings:
    enabled: bool = True
    sitemap_refresh_hour: int = 1
    stale_task_minutes: int = 120


@lru_cache(maxsize=1)
def get_vrt_settings() -> VRTSettings:
    """
    Return cached VRT settings from environment variables.
    """

    capture_mode = _get_str_env("VRT_CAPTURE_MODE", "sequential").lower()
    if capture_mode not in _ALLOWED_CAPTURE_MODES:
        capture_mode = "sequential"

    return VRTSettings(
        capture_mode=capture_mode,
        capture_delay_seconds=max(0.0, _get_float_env("VRT_CAPTURE_DELAY_SECONDS", 2.0)),
        batch_size=max(1, _get_int_env("VRT_BATCH_SIZE", 3)),
        batch_delay_seconds=max(0.0, _get_float_env("VRT_BATCH_DELAY_SECONDS", 1.0)),
        navigation_timeout_ms=max(1000, _get_int_env("VRT_NAVIGATION_TIMEOUT_MS", 30000)),
        settle_delay_ms=max(0, _get_int_env("VRT_SETTLE_DELAY_MS", 2000)),
        viewport_width=max(320, _get_int_env("VRT_VIEWPORT_WIDTH", 1920)),
        viewport_height=max(240, _get_int_env("VRT_VIEWPORT_HEIGHT", 1080)),
        user_agent=_get_str_env("VRT_USER_AGENT", VRTSettings.user_agent),
        jpeg_quality=min(100, max(1, _get_int_env("VRT_JPEG_QUALITY", 80))),
        fallback_quality=min(100, max(1, _get_int_env("VRT_FALLBACK_QUALITY", 70))),
        full_page=_get_bool_env("VRT_FULL_PAGE", True),
        max_browser_contexts=max(1, _get_int_env("VRT_MAX_BROWSER_CONTEXTS", 3)),
        headless=_get_bool_env("VRT_HEADLESS", True),
        diff_threshold=min(1.0, max(0.0, _get_float_env("VRT_DIFF_THRESHOLD", 0.1))),
        diff_alpha=min(1.0, max(0.0, _get_float_env("VRT_DIFF_ALPHA", 0.7))),
        pass_threshold_percent=max(0.0, _get_float_env("VRT_PASS_THRESHOLD_PERCENT", 1.0)),
        sitemap_timeout_seconds=max(1.0, _get_float_env("VRT_SITEMAP_TIMEOUT_SECONDS", 15.0)),
        sitemap_user_agent=_get_str_env("VRT_SITEMAP_USER_AGENT", VRTSettings.sitemap_user_agent),
    )


@lru_cache(maxsize=1)
def get_artifact_store_settings() -> ArtifactStoreSettings:
    """
    Return cached artifact store settings from environment variables.
    """

    return ArtifactStoreSettings(
        root_dir=_get_str_env("ARTIFACT_ROOT_DIR", "data/artifacts"),
        public_base_url=_get_str_env("ARTIFACT_PUBLIC_BASE_URL", "http://localhost:8000/artifacts"),
        max_upload_bytes=max(0, _get_int_env("ARTIFACT_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)),
        screenshot_folder=_get_str_env("ARTIFACT_SCREENSHOT_FOLDER", "techops-screenshots/vrt"),
        diff_folder=_get_str_env("ARTIFACT_DIFF_FOLDER", "techops-screenshots/vrt-diffs"),
        fetch_timeout_seconds=max(1.0, _get_float_env("ARTIFACT_FETCH_TIMEOUT_SECONDS", 30.0)),
    )


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """
    Return cached notification settings from environment variables.
    """

    return NotificationSettings(
        enabled=_get_bool_env("NOTIFY_ENABLED", False),
        smtp_host=_get_str_env("SMTP_HOST", "localhost"),
        smtp_port=max(1, _get_int_env("SMTP_PORT", 587)),
        smtp_username=_get_optional_str_env("SMTP_USERNAME"),
        smtp_password=_get_optional_str_env("SMTP_PASSWORD"),
        sender=_get_str_env("NOTIFY_SENDER", "maintenance-vrt@localhost"),
        use_ssl=_get_bool_env("SMTP_USE_SSL", False),
        use_starttls=_get_bool_env("SMTP_USE_STARTTLS", True),
        timeout_seconds=max(1.0, _get_float_env("SMTP_TIMEOUT_SECONDS", 30.0)),
        report_base_url=_get_str_env("REPORT_BASE_URL", "http://localhost:3000/reports"),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        sitemap_refresh_hour=min(23, max(0, _get_int_env("SCHEDULER_SITEMAP_REFRESH_HOUR", 1))),
        stale_task_minutes=max(5, _get_int_env("SCHEDULER_STALE_TASK_MINUTES", 120)),
    )
