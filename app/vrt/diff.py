"""
Pixel diff engine for before/after screenshots.
"""

from __future__ import annotations

import io
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError
from pixelmatch.contrib.PIL import pixelmatch

from app.domain.vrt import ArtifactRef, DiffStatus
from app.errors import ArtifactStoreError, DiffError
from app.vrt.artifacts import ArtifactStore
from app.vrt.capture import random_suffix
from app.vrt.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.1
DEFAULT_ALPHA = 0.7
DEFAULT_PASS_THRESHOLD_PERCENT = 1.0


@dataclass(frozen=True)
class ImageComparison:
    diff_png: bytes
    mismatched_pixels: int
    width: int
    height: int

    @property
    def percent(self) -> float:
        total = self.width * self.height
        if total == 0:
            return 0.0
        return self.mismatched_pixels / total * 100


@dataclass(frozen=True)
class DiffOutcome:
    artifact: ArtifactRef
    percent: float
    status: str
    width: int
    height: int


def classify_diff(percent: float, pass_threshold: float = DEFAULT_PASS_THRESHOLD_PERCENT) -> str:
    return DiffStatus.PASS if percent <= pass_threshold else DiffStatus.FAIL


def _decode(content: bytes, label: str) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise DiffError(f"Could not decode {label} image: {exc}") from exc
    return image.convert("RGBA")


def compare_images(
    before: bytes,
    after: bytes,
    *,
    threshold: float = DEFAULT_THRESHOLD,
    alpha: float = DEFAULT_ALPHA,
) -> ImageComparison:
    """
    Compare two encoded images over their common top-left region.

    The larger image is cropped, never resampled, so regions outside the
    smaller image's bounds are ignored.
    """

    before_image = _decode(before, "before")
    after_image = _decode(after, "after")
    width = min(before_image.width, after_image.width)
    height = min(before_image.height, after_image.height)
    if width == 0 or height == 0:
        raise DiffError("Cannot compare empty images.")

    box = (0, 0, width, height)
    if before_image.size != (width, height):
        before_image = before_image.crop(box)
    if after_image.size != (width, height):
        after_image = after_image.crop(box)

    diff_image = Image.new("RGBA", (width, height))
    try:
        mismatched = pixelmatch(
            before_image,
            after_image,
            diff_image,
            threshold=threshold,
            alpha=alpha,
        )
    except ValueError as exc:
        raise DiffError(f"Image comparison failed: {exc}") from exc

    buffer = io.BytesIO()
    diff_image.save(buffer, format="PNG")
    return ImageComparison(
        diff_png=buffer.getvalue(),
        mismatched_pixels=int(mismatched),
        width=width,
        height=height,
    )


class DiffEngine:
    """
    Fetches two artifacts, compares them and uploads the diff image.

    Unreachable artifacts raise FetchError; decode, compare and upload
    failures raise DiffError.
    """

    def __init__(
        self,
        *,
        artifact_store: ArtifactStore,
        folder: str,
        threshold: float = DEFAULT_THRESHOLD,
        alpha: float = DEFAULT_ALPHA,
        pass_threshold: float = DEFAULT_PASS_THRESHOLD_PERCENT,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._artifact_store = artifact_store
        self._folder = folder
        self._threshold = threshold
        self._alpha = alpha
        self._pass_threshold = pass_threshold
        self._clock = clock
        self._rng = rng

    def diff(
        self,
        before_url: str,
        after_url: str,
        *,
        job_id: object,
        threshold: float | None = None,
    ) -> DiffOutcome:
        before = self._artifact_store.fetch(before_url)
        after = self._artifact_store.fetch(after_url)

        comparison = compare_images(
            before,
            after,
            threshold=self._threshold if threshold is None else threshold,
            alpha=self._alpha,
        )
        public_id = (
            f"vrt_diff_{job_id}_{int(self._clock() * 1000)}_{random_suffix(6, self._rng)}"
        )
        try:
            artifact = self._artifact_store.upload(
                comparison.diff_png,
                public_id=public_id,
                folder=self._folder,
                file_format="png",
            )
        except ArtifactStoreError as exc:
            raise DiffError(f"Failed to upload diff image: {exc}") from exc

        percent = comparison.percent
        status = classify_diff(percent, self._pass_threshold)
        log_event(
            logger,
            logging.INFO,
            "diff_completed",
            job_id=str(job_id),
            percent=round(percent, 4),
            status=status,
            width=comparison.width,
            height=comparison.height,
        )
        return DiffOutcome(
            artifact=artifact,
            percent=percent,
            status=status,
            width=comparison.width,
            height=comparison.height,
        )
