"""Data structures for the bulk ingest pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class FailureReason(StrEnum):
    """Failure reasons reported per item and by the HTTP layer."""

    VALIDATION_ERROR = "validation_error"
    DUPLICATE = "duplicate"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    STORAGE_TRANSPORT = "storage_transport"
    PARTIAL_UPLOAD = "partial_upload"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INVALID_MANIFEST = "invalid_manifest"
    INVALID_REQUEST = "invalid_request"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    RECORD_NOT_FOUND = "record_not_found"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_SCHEDULE = "invalid_schedule"
    INTERNAL_ERROR = "internal_error"


@dataclass(slots=True)
class ItemAttempt:
    """Side effects of one manifest item, tracked so they can be undone."""

    index: int
    external_id: str | None = None
    record_id: str | None = None
    attempted_keys: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.external_id or "unknown"


@dataclass(slots=True)
class ItemSuccess:
    external_id: str
    record_id: str
    primary_image_url: str | None
    media_count: int


@dataclass(slots=True)
class ItemFailure:
    external_id: str
    error: str
    reason: FailureReason


@dataclass(slots=True)
class IngestReport:
    """Per-item breakdown of a batch; order follows the manifest."""

    successful: list[ItemSuccess] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)
