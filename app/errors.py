"""
app/errors.py

Error taxonomy shared by the VRT engines, services and HTTP layer.
"""

from __future__ import annotations


class VRTError(Exception):
    """Base exception for maintenance VRT failures."""

    code = "internal_error"


class ValidationError(VRTError):
    """Raised when required input is missing or malformed."""

    code = "validation_error"


class NotFoundError(VRTError):
    """Raised when a referenced job, session, snapshot or report does not exist."""

    code = "not_found"


class PreconditionError(VRTError):
    """Raised when a valid request hits the wrong session lifecycle state."""

    code = "precondition_failed"


class FetchError(VRTError):
    """Raised when a remote resource (sitemap, image) cannot be fetched."""

    code = "fetch_error"


class CaptureError(VRTError):
    """Raised when one URL cannot be captured after every fallback."""

    code = "capture_error"


class DiffError(VRTError):
    """Raised when two captures cannot be compared."""

    code = "diff_error"


class StorageError(VRTError):
    """Raised when persistence or artifact storage fails."""

    code = "storage_error"


class ArtifactStoreError(StorageError):
    """Raised when the artifact store rejects or loses an upload."""


class ArtifactTooLargeError(ArtifactStoreError):
    """Raised when an upload exceeds the artifact store size limit."""

    def __init__(self, *, size: int, limit: int) -> None:
        super().__init__(f"Artifact too large: {size} bytes exceeds limit of {limit} bytes.")
        self.size = size
        self.limit = limit
