"""
tests/test_diff_engine.py

Pytest unit tests for the pixel diff engine.

Images are generated in memory with Pillow; artifacts live in an in-memory
store.

Coverage
--------
- identical images pass with zero mismatches
- a red block covering 10% of the frame fails
- mismatched dimensions are cropped to the common top-left region
- classify_diff threshold boundary
- unreachable artifacts raise FetchError, undecodable ones DiffError
- the diff image is uploaded as PNG
"""

from __future__ import annotations

import io
import random

import pytest
from PIL import Image

from app.domain.vrt import DiffStatus
from app.errors import DiffError, FetchError
from app.vrt.diff import DiffEngine, classify_diff, compare_images
from tests.fakes import InMemoryArtifactStore, image_with_box, solid_image


def _engine(store: InMemoryArtifactStore) -> DiffEngine:
    return DiffEngine(
        artifact_store=store,
        folder="vrt-diffs",
        clock=lambda: 1_700_000_000.0,
        rng=random.Random(3),
    )


def _stored(store: InMemoryArtifactStore, content: bytes, name: str) -> str:
    return store.upload(content, public_id=name, folder="vrt", file_format="png").url


# ---------------------------------------------------------------------------
# compare_images
# ---------------------------------------------------------------------------


class TestCompareImages:
    def test_identical_images_have_no_mismatch(self) -> None:
        image = solid_image(50, 40)
        comparison = compare_images(image, image)
        assert comparison.mismatched_pixels == 0
        assert comparison.percent == 0.0
        assert (comparison.width, comparison.height) == (50, 40)

    def test_red_block_is_counted(self) -> None:
        before = solid_image(100, 100)
        after = image_with_box(100, 100, (0, 0, 10, 100))
        comparison = compare_images(before, after)
        assert comparison.percent == pytest.approx(10.0, abs=1.0)

    def test_larger_image_is_cropped_not_resized(self) -> None:
        before = solid_image(100, 100)
        # the extra width is red, but lies outside the common region
        after = image_with_box(140, 80, (100, 0, 140, 80))
        comparison = compare_images(before, after)
        assert (comparison.width, comparison.height) == (100, 80)
        assert comparison.mismatched_pixels == 0

    def test_diff_image_is_png_of_common_size(self) -> None:
        comparison = compare_images(solid_image(30, 20), solid_image(30, 20, (0, 0, 0)))
        diff = Image.open(io.BytesIO(comparison.diff_png))
        assert diff.format == "PNG"
        assert diff.size == (30, 20)

    def test_undecodable_input_raises_diff_error(self) -> None:
        with pytest.raises(DiffError, match="before"):
            compare_images(b"not an image", solid_image(10, 10))


class TestClassifyDiff:
    def test_threshold_is_inclusive(self) -> None:
        assert classify_diff(1.0) == DiffStatus.PASS
        assert classify_diff(1.0001) == DiffStatus.FAIL

    def test_custom_threshold(self) -> None:
        assert classify_diff(4.0, pass_threshold=5.0) == DiffStatus.PASS


# ---------------------------------------------------------------------------
# DiffEngine
# ---------------------------------------------------------------------------


class TestDiffEngine:
    def test_changed_page_fails_and_uploads_diff(self) -> None:
        store = InMemoryArtifactStore()
        before_url = _stored(store, solid_image(100, 100), "before")
        after_url = _stored(store, image_with_box(100, 100, (0, 0, 10, 100)), "after")

        outcome = _engine(store).diff(before_url, after_url, job_id="job-1")

        assert outcome.status == DiffStatus.FAIL
        assert outcome.percent > 1.0
        assert outcome.artifact.url.endswith(".png")
        assert outcome.artifact.public_id.startswith("vrt-diffs/vrt_diff_job-1_1700000000000_")
        assert outcome.artifact.url in store.blobs

    def test_unchanged_page_passes(self) -> None:
        store = InMemoryArtifactStore()
        url = _stored(store, solid_image(64, 64), "same")
        outcome = _engine(store).diff(url, url, job_id="job-2")
        assert outcome.status == DiffStatus.PASS
        assert outcome.percent == 0.0

    def test_unreachable_artifact_raises_fetch_error(self) -> None:
        store = InMemoryArtifactStore()
        url = _stored(store, solid_image(10, 10), "present")
        with pytest.raises(FetchError):
            _engine(store).diff(url, "http://testserver/artifacts/vrt/missing.png", job_id="job-3")

    def test_per_call_threshold_override(self) -> None:
        store = InMemoryArtifactStore()
        before_url = _stored(store, solid_image(20, 20, (200, 200, 200)), "grey-a")
        after_url = _stored(store, solid_image(20, 20, (205, 205, 205)), "grey-b")
        strict = _engine(store).diff(before_url, after_url, job_id="job-4", threshold=0.0)
        assert strict.percent == 100.0
