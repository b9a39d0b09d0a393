"""
app/domain/report.py

Report domain models and their JSON payload conversion.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

REPORT_VERSION = "1.0"


class ReportStatus:
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


class TaskOutcome:
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    PARTIAL = "partial"


class IssueSeverity:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class UpdatedExtension:
    name: str
    old_version: str
    new_version: str


@dataclass(frozen=True)
class UnchangedExtension:
    name: str
    current_version: str
    has_update: bool = False
    available_version: str | None = None


@dataclass(frozen=True)
class ExtensionUpdates:
    updated: tuple[UpdatedExtension, ...] = ()
    not_updated: tuple[UnchangedExtension, ...] = ()


@dataclass(frozen=True)
class StateChanges:
    plugins_updated: int = 0
    themes_updated: int = 0
    plugins_added: int = 0
    plugins_removed: int = 0
    themes_added: int = 0
    themes_removed: int = 0


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Added/removed/updated deltas between two inventory snapshots.
    """

    state_changes: StateChanges = field(default_factory=StateChanges)
    plugin_updates: ExtensionUpdates = field(default_factory=ExtensionUpdates)
    theme_updates: ExtensionUpdates = field(default_factory=ExtensionUpdates)


@dataclass(frozen=True)
class Issue:
    task: str
    severity: str
    message: str
    timestamp: datetime


@dataclass(frozen=True)
class TaskResult:
    status: str = TaskOutcome.SKIPPED
    message: str | None = None
    updates_applied: int | None = None
    updates_failed: int | None = None
    screenshots_captured: int | None = None
    screenshots_failed: int | None = None


@dataclass(frozen=True)
class DiffResultRow:
    url: str
    before_url: str
    after_url: str
    diff_url: str | None
    diff_percent: float | None
    status: str
    error: str | None = None


@dataclass(frozen=True)
class DiffSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0


@dataclass(frozen=True)
class ReportRecord:
    """
    Immutable synthesis output, one per maintenance job.
    """

    job_id: uuid.UUID
    project_name: str
    site_url: str
    site_type: str
    start_time: datetime | None
    end_time: datetime
    duration_seconds: int
    status: str
    tasks_executed: dict[str, bool]
    results: dict[str, TaskResult]
    reconciliation: ReconciliationResult
    issues: tuple[Issue, ...]
    vrt_diff_results: tuple[DiffResultRow, ...]
    vrt_diff_summary: DiffSummary
    generated_at: datetime
    before_state_id: uuid.UUID | None = None
    after_state_id: uuid.UUID | None = None
    vrt_session_id: uuid.UUID | None = None
    report_id: uuid.UUID | None = None
    version: str = REPORT_VERSION

    @property
    def success_rate(self) -> int:
        """
        Percentage of executed tasks whose result is a success.
        """

        executed = [name for name, enabled in self.tasks_executed.items() if enabled]
        if not executed:
            return 0
        successful = sum(
            1
            for name in executed
            if self.results.get(name, TaskResult()).status == TaskOutcome.SUCCESS
        )
        return round(successful / len(executed) * 100)


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def report_to_payload(report: ReportRecord) -> dict[str, Any]:
    """
    Serialize a report to a JSON-safe dict (stored as JSONB and returned by the API).
    """

    payload = _jsonable(asdict(report))
    reconciliation = payload.pop("reconciliation")
    payload["state_changes"] = reconciliation["state_changes"]
    payload["plugin_updates"] = reconciliation["plugin_updates"]
    payload["theme_updates"] = reconciliation["theme_updates"]
    payload["success_rate"] = report.success_rate
    return payload


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def _parse_updates(raw: dict[str, Any] | None) -> ExtensionUpdates:
    raw = raw or {}
    return ExtensionUpdates(
        updated=tuple(UpdatedExtension(**item) for item in raw.get("updated", [])),
        not_updated=tuple(UnchangedExtension(**item) for item in raw.get("not_updated", [])),
    )


def report_from_payload(payload: dict[str, Any]) -> ReportRecord:
    """
    Rebuild a report from its stored payload.
    """

    return ReportRecord(
        report_id=_parse_uuid(payload.get("report_id")),
        job_id=_parse_uuid(payload["job_id"]),
        project_name=payload["project_name"],
        site_url=payload["site_url"],
        site_type=payload["site_type"],
        start_time=_parse_datetime(payload.get("start_time")),
        end_time=_parse_datetime(payload["end_time"]),
        duration_seconds=int(payload.get("duration_seconds") or 0),
        status=payload["status"],
        tasks_executed=dict(payload.get("tasks_executed") or {}),
        results={
            name: TaskResult(**item) for name, item in (payload.get("results") or {}).items()
        },
        reconciliation=ReconciliationResult(
            state_changes=StateChanges(**(payload.get("state_changes") or {})),
            plugin_updates=_parse_updates(payload.get("plugin_updates")),
            theme_updates=_parse_updates(payload.get("theme_updates")),
        ),
        issues=tuple(
            Issue(
                task=item["task"],
                severity=item["severity"],
                message=item["message"],
                timestamp=_parse_datetime(item["timestamp"]),
            )
            for item in payload.get("issues") or []
        ),
        vrt_diff_results=tuple(DiffResultRow(**item) for item in payload.get("vrt_diff_results") or []),
        vrt_diff_summary=DiffSummary(**(payload.get("vrt_diff_summary") or {})),
        generated_at=_parse_datetime(payload["generated_at"]),
        before_state_id=_parse_uuid(payload.get("before_state_id")),
        after_state_id=_parse_uuid(payload.get("after_state_id")),
        vrt_session_id=_parse_uuid(payload.get("vrt_session_id")),
        version=payload.get("version", REPORT_VERSION),
    )
