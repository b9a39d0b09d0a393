"""
Report notification emails.

Each recipient is sent on its own daemon thread; a failed send is logged and
never surfaces to the caller. The HTML body is rendered from
`templates/report_email.html`; sends still in flight at shutdown are joined
through `EmailNotifier.join`.
"""

from __future__ import annotations

import logging
import smtplib
import threading
import time
from collections.abc import Callable, Sequence
from email.message import EmailMessage
from pathlib import Path
from typing import Protocol

from jinja2 import Environment, FileSystemLoader

from app.config import NotificationSettings, get_notification_settings
from app.domain.report import ReportRecord
from app.domain.vrt import DiffStatus
from app.vrt.logging_utils import log_event

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
HTML_TEMPLATE = "report_email.html"

_template_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


class ReportNotifier(Protocol):
    def notify_report(self, report: ReportRecord, recipients: Sequence[str]) -> int:
        ...

    def join(self, timeout: float | None = None) -> int:
        ...


def valid_recipients(recipients: Sequence[str]) -> list[str]:
    return [item.strip() for item in recipients if item and "@" in item]


def build_report_url(base_url: str, report: ReportRecord) -> str:
    return f"{base_url.rstrip('/')}/{report.report_id}"


def build_subject(report: ReportRecord) -> str:
    return f"Automation Report Generated: {report.project_name}"


def build_text_body(report: ReportRecord, report_url: str) -> str:
    lines = [
        "Automation Report Generated",
        "",
        f"Project: {report.project_name}",
        f"Site: {report.site_url}",
        f"Status: {report.status}",
        f"Duration: {report.duration_seconds}s",
        f"Report: {report_url}",
    ]
    summary = report.vrt_diff_summary
    if report.vrt_diff_results:
        lines += [
            "",
            "Visual Regression Test (VRT) Results",
            f"Total: {summary.total}  Passed: {summary.passed}  Failed: {summary.failed}",
        ]
        failed = [row for row in report.vrt_diff_results if row.status == DiffStatus.FAIL]
        if failed:
            for row in failed:
                percent = "-" if row.diff_percent is None else f"{row.diff_percent:.2f}"
                lines.append(f"  {row.url}  diff={percent}%  {row.diff_url or ''}".rstrip())
        else:
            lines.append("All pages passed visual regression test.")
    return "\n".join(lines) + "\n"


def build_html_body(report: ReportRecord, report_url: str) -> str:
    failed_rows = [row for row in report.vrt_diff_results if row.status == DiffStatus.FAIL]
    return _template_env.get_template(HTML_TEMPLATE).render(
        report=report,
        report_url=report_url,
        summary=report.vrt_diff_summary,
        failed_rows=failed_rows,
    )


class NullNotifier:
    """Used when notifications are disabled."""

    def notify_report(self, report: ReportRecord, recipients: Sequence[str]) -> int:
        log_event(
            logger,
            logging.DEBUG,
            "report_notification_disabled",
            report_id=str(report.report_id),
            recipients=len(recipients),
        )
        return 0

    def join(self, timeout: float | None = None) -> int:
        return 0


class EmailNotifier:
    """
    SMTP notifier for generated reports.
    """

    def __init__(
        self,
        *,
        settings: NotificationSettings,
        smtp_factory: Callable[..., smtplib.SMTP] | None = None,
        start_thread: Callable[[threading.Thread], None] | None = None,
    ) -> None:
        self._settings = settings
        if smtp_factory is None:
            smtp_factory = smtplib.SMTP_SSL if settings.use_ssl else smtplib.SMTP
        self._smtp_factory = smtp_factory
        self._start_thread = start_thread or (lambda thread: thread.start())
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    def notify_report(self, report: ReportRecord, recipients: Sequence[str]) -> int:
        """
        Queue one email per valid recipient. Returns the number queued.
        """

        targets = valid_recipients(recipients)
        if not targets:
            return 0

        report_url = build_report_url(self._settings.report_base_url, report)
        subject = build_subject(report)
        text_body = build_text_body(report, report_url)
        html_body = build_html_body(report, report_url)

        for recipient in targets:
            thread = threading.Thread(
                target=self._send_quietly,
                args=(recipient, subject, text_body, html_body),
                name=f"report-mail-{recipient}",
                daemon=True,
            )
            with self._lock:
                self._threads = [item for item in self._threads if item.is_alive()]
                self._threads.append(thread)
            self._start_thread(thread)

        log_event(
            logger,
            logging.INFO,
            "report_notification_queued",
            report_id=str(report.report_id),
            recipients=len(targets),
        )
        return len(targets)

    def join(self, timeout: float | None = None) -> int:
        """
        Wait for in-flight sends, sharing `timeout` across all of them.

        Returns the number of sends still running afterwards.
        """

        with self._lock:
            pending = [thread for thread in self._threads if thread.is_alive()]
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in pending:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)

        still_running = sum(1 for thread in pending if thread.is_alive())
        with self._lock:
            self._threads = [thread for thread in self._threads if thread.is_alive()]
        if still_running:
            log_event(
                logger,
                logging.WARNING,
                "report_notification_join_timeout",
                pending=still_running,
            )
        return still_running

    def _send_quietly(self, recipient: str, subject: str, text_body: str, html_body: str) -> None:
        try:
            self.send(recipient, subject, text_body, html_body)
        except (smtplib.SMTPException, OSError) as exc:
            log_event(
                logger,
                logging.ERROR,
                "report_notification_failed",
                recipient=recipient,
                error=str(exc),
            )

    def send(self, recipient: str, subject: str, text_body: str, html_body: str | None = None) -> None:
        settings = self._settings
        message = EmailMessage()
        message["From"] = settings.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(text_body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        with self._smtp_factory(settings.smtp_host, settings.smtp_port, timeout=settings.timeout_seconds) as server:
            if settings.use_starttls and not settings.use_ssl:
                server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(message)

        log_event(logger, logging.INFO, "report_notification_sent", recipient=recipient)


def build_notifier(settings: NotificationSettings | None = None) -> ReportNotifier:
    settings = settings or get_notification_settings()
    if not settings.enabled:
        return NullNotifier()
    return EmailNotifier(settings=settings)
