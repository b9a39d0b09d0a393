"""
Headless browser lifecycle for page captures.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from app.vrt.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
)


@dataclass(frozen=True)
class BrowserProfile:
    """
    Launch and context options shared by every capture.
    """

    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    headless: bool = True
    navigation_timeout_ms: int = 30000
    launch_args: tuple[str, ...] = field(default=DEFAULT_CHROMIUM_ARGS)


class BrowserFactory(Protocol):
    """
    Context manager factory yielding an isolated page.

    Every browser resource opened for the page is released when the block exits.
    """

    def open_page(self) -> Any:
        ...


def _close_quietly(resource: Any, name: str) -> None:
    try:
        resource.close()
    except PlaywrightError as exc:
        log_event(
            logger,
            logging.WARNING,
            "browser_cleanup_failed",
            resource=name,
            error=str(exc),
        )


class PlaywrightBrowserFactory:
    """
    One Chromium browser and context per capture, capped by a semaphore.
    """

    def __init__(self, *, profile: BrowserProfile, max_contexts: int = 3) -> None:
        self._profile = profile
        self._slots = threading.BoundedSemaphore(max(1, max_contexts))

    @property
    def profile(self) -> BrowserProfile:
        return self._profile

    @contextmanager
    def open_page(self) -> Iterator[Any]:
        profile = self._profile
        with self._slots, sync_playwright() as playwright:
            browser = playwright.chromium.launch(
                headless=profile.headless,
                args=list(profile.launch_args),
            )
            try:
                context = browser.new_context(
                    viewport={
                        "width": profile.viewport_width,
                        "height": profile.viewport_height,
                    },
                    user_agent=profile.user_agent,
                )
                try:
                    page = context.new_page()
                    page.set_default_timeout(profile.navigation_timeout_ms)
                    try:
                        yield page
                    finally:
                        _close_quietly(page, "page")
                finally:
                    _close_quietly(context, "context")
            finally:
                _close_quietly(browser, "browser")
