"""
Capture worker: render one URL in a headless browser and upload the image.
"""

from __future__ import annotations

import logging
import random
import re
import string
import time
from collections.abc import Callable
from typing import Any

from playwright.sync_api import Error as PlaywrightError

from app.domain.vrt import ArtifactRef
from app.errors import ArtifactStoreError, ArtifactTooLargeError, CaptureError
from app.vrt.artifacts import ArtifactStore
from app.vrt.browser import BrowserFactory
from app.vrt.logging_utils import log_event
from app.vrt.types import CaptureRequest

logger = logging.getLogger(__name__)

CONSENT_OVERLAY_SELECTORS = (
    ".cookie-banner",
    ".cookie-notice",
    ".gdpr-banner",
    ".privacy-notice",
    ".consent-banner",
    ".popup-overlay",
    "#cookie-law-info-bar",
    ".cookie-bar",
    ".cookies-eu-banner",
    ".eu-cookie-compliance-banner",
    ".cookie-compliance",
    ".wp-block-cookie-banner",
)
CONSENT_OVERLAY_CSS = ", ".join(CONSENT_OVERLAY_SELECTORS) + " { display: none !important; }"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def url_fingerprint(url: str, *, length: int = 30) -> str:
    """
    Filesystem-safe prefix of a URL used in artifact names.
    """

    return _NON_ALNUM.sub("_", url)[:length]


def random_suffix(length: int, rng: random.Random | None = None) -> str:
    chooser = rng or random
    return "".join(chooser.choice(_SUFFIX_ALPHABET) for _ in range(length))


def build_artifact_name(
    request: CaptureRequest,
    *,
    epoch_ms: int,
    suffix: str,
) -> str:
    """
    `{phase}_{kind}_{session}_{fingerprint}_{epoch_ms}_{suffix}`; unique, not content-addressed.
    """

    return (
        f"{request.phase}_{request.kind}_{request.session_id}_"
        f"{url_fingerprint(request.url)}_{epoch_ms}_{suffix}"
    )


class CaptureWorker:
    """
    Captures a single URL per call. Failures surface as `CaptureError`.
    """

    def __init__(
        self,
        *,
        browser_factory: BrowserFactory,
        artifact_store: ArtifactStore,
        folder: str,
        navigation_timeout_ms: int = 30000,
        settle_delay_ms: int = 2000,
        jpeg_quality: int = 80,
        fallback_quality: int = 70,
        full_page: bool = True,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._browser_factory = browser_factory
        self._artifact_store = artifact_store
        self._folder = folder
        self._navigation_timeout_ms = navigation_timeout_ms
        self._settle_delay_ms = settle_delay_ms
        self._jpeg_quality = jpeg_quality
        self._fallback_quality = fallback_quality
        self._full_page = full_page
        self._clock = clock
        self._rng = rng

    def __call__(self, request: CaptureRequest) -> ArtifactRef:
        return self.capture(request)

    def capture(self, request: CaptureRequest) -> ArtifactRef:
        started = time.monotonic()
        try:
            with self._browser_factory.open_page() as page:
                self._navigate(page, request.url)
                page.wait_for_timeout(self._settle_delay_ms)
                page.add_style_tag(content=CONSENT_OVERLAY_CSS)
                artifact = self._render_and_upload(page, request)
        except CaptureError:
            raise
        except (PlaywrightError, ArtifactStoreError) as exc:
            raise CaptureError(f"Screenshot capture failed for {request.url}: {exc}") from exc

        log_event(
            logger,
            logging.INFO,
            "capture_completed",
            url=request.url,
            phase=request.phase,
            kind=request.kind,
            session_id=str(request.session_id),
            public_id=artifact.public_id,
            size=artifact.size,
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return artifact

    def _navigate(self, page: Any, url: str) -> None:
        try:
            page.goto(url, wait_until="networkidle", timeout=self._navigation_timeout_ms)
            return
        except PlaywrightError as exc:
            log_event(
                logger,
                logging.WARNING,
                "navigation_networkidle_failed",
                url=url,
                error=str(exc),
            )
        page.goto(url, wait_until="domcontentloaded", timeout=self._navigation_timeout_ms)

    def _render_and_upload(self, page: Any, request: CaptureRequest) -> ArtifactRef:
        public_id = build_artifact_name(
            request,
            epoch_ms=int(self._clock() * 1000),
            suffix=random_suffix(9, self._rng),
        )
        content = page.screenshot(
            full_page=self._full_page,
            type="jpeg",
            quality=self._jpeg_quality,
        )
        try:
            return self._artifact_store.upload(content, public_id=public_id, folder=self._folder)
        except ArtifactTooLargeError as exc:
            if not self._full_page:
                raise CaptureError(f"Screenshot too large for {request.url}: {exc}") from exc
            log_event(
                logger,
                logging.WARNING,
                "capture_too_large_viewport_fallback",
                url=request.url,
                size=exc.size,
                limit=exc.limit,
            )

        fallback = page.screenshot(
            full_page=False,
            type="jpeg",
            quality=self._fallback_quality,
        )
        return self._artifact_store.upload(
            fallback,
            public_id=f"{public_id}_viewport",
            folder=self._folder,
        )
