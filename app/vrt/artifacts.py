"""
Artifact store abstraction for screenshots and diff images.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

import requests

from app.domain.vrt import ArtifactRef
from app.errors import ArtifactStoreError, ArtifactTooLargeError, FetchError
from app.vrt.logging_utils import log_event

logger = logging.getLogger(__name__)

_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9_.-]")


class ArtifactStore(Protocol):
    """
    Upload/fetch contract used by the capture worker and the diff engine.
    """

    def upload(
        self,
        content: bytes,
        *,
        public_id: str,
        folder: str,
        file_format: str = "jpg",
    ) -> ArtifactRef:
        ...

    def fetch(self, url: str) -> bytes:
        ...


def _safe_segment(value: str) -> str:
    cleaned = _SAFE_SEGMENT.sub("_", value.strip())
    if not cleaned or cleaned in {".", ".."}:
        raise ArtifactStoreError(f"Invalid artifact path segment: '{value}'.")
    return cleaned


class LocalArtifactStore:
    """
    Filesystem artifact store served under a public base URL.

    Folders map to sub-directories of `root_dir`; uploads larger than
    `max_upload_bytes` are rejected with `ArtifactTooLargeError`.
    """

    def __init__(
        self,
        *,
        root_dir: str | Path,
        public_base_url: str,
        max_upload_bytes: int,
        session: requests.Session,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._root_dir = Path(root_dir)
        self._public_base_url = public_base_url.rstrip("/")
        self._max_upload_bytes = max_upload_bytes
        self._session = session
        self._timeout_seconds = timeout_seconds

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    @property
    def public_base_url(self) -> str:
        return self._public_base_url

    def upload(
        self,
        content: bytes,
        *,
        public_id: str,
        folder: str,
        file_format: str = "jpg",
    ) -> ArtifactRef:
        size = len(content)
        if self._max_upload_bytes > 0 and size > self._max_upload_bytes:
            raise ArtifactTooLargeError(size=size, limit=self._max_upload_bytes)

        folder_parts = [_safe_segment(part) for part in folder.split("/") if part.strip()]
        file_name = f"{_safe_segment(public_id)}.{_safe_segment(file_format)}"
        relative_path = Path(*folder_parts, file_name)
        absolute_path = self._root_dir / relative_path
        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as handle:
                handle.write(content)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise ArtifactStoreError(f"Failed to write artifact '{public_id}'.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        artifact = ArtifactRef(
            url=f"{self._public_base_url}/{relative_path.as_posix()}",
            public_id="/".join([*folder_parts, _safe_segment(public_id)]),
            size=size,
        )
        log_event(
            logger,
            logging.INFO,
            "artifact_uploaded",
            public_id=artifact.public_id,
            size=size,
        )
        return artifact

    def fetch(self, url: str) -> bytes:
        local_path = self._local_path_for(url)
        if local_path is not None:
            try:
                return local_path.read_bytes()
            except OSError as exc:
                raise FetchError(f"Artifact not readable: {url}") from exc

        try:
            response = self._session.get(url, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            raise FetchError(f"Failed to download artifact {url}: {exc}") from exc
        if response.status_code >= 400:
            raise FetchError(
                f"Failed to download artifact {url}: HTTP {response.status_code}"
            )
        return response.content

    def _local_path_for(self, url: str) -> Path | None:
        prefix = f"{self._public_base_url}/"
        if not url.startswith(prefix):
            return None
        relative = url[len(prefix) :]
        root = self._root_dir.resolve()
        candidate = (root / relative).resolve()
        if root != candidate and root not in candidate.parents:
            raise FetchError(f"Artifact path escapes the store root: {url}")
        return candidate
