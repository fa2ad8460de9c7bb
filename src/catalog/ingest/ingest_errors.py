"""Domain-specific exceptions for the bulk ingest pipeline."""

from ..exceptions import AppError
from .ingest_models import FailureReason


class IngestError(AppError):
    """Base class for ingest-related errors."""

    reason: FailureReason = FailureReason.INTERNAL_ERROR


class IngestValidationError(IngestError):
    """Raised when a manifest item is missing fields or is malformed."""

    reason = FailureReason.VALIDATION_ERROR


class DuplicateRecordError(IngestError):
    """Raised when the external id already exists in the catalog."""

    reason = FailureReason.DUPLICATE


class UnresolvedReferenceError(IngestError):
    """Raised when category/subcategory references do not resolve."""

    reason = FailureReason.UNRESOLVED_REFERENCE


class UploadTransportError(IngestError):
    """Raised when the object store could not take an item's media."""

    reason = FailureReason.STORAGE_TRANSPORT


class PartialUploadError(UploadTransportError):
    """Raised when only some of an item's files were stored."""

    reason = FailureReason.PARTIAL_UPLOAD


class ItemDeadlineExceededError(UploadTransportError):
    """Raised when an item does not finish uploading before its deadline."""

    reason = FailureReason.DEADLINE_EXCEEDED


class ManifestError(IngestError):
    """Raised when the batch manifest itself cannot be read."""

    reason = FailureReason.INVALID_MANIFEST


class PayloadTooLargeError(IngestError):
    """Raised when an uploaded media file exceeds configured limits."""

    reason = FailureReason.PAYLOAD_TOO_LARGE


class UploadReadError(IngestError):
    """Raised when streaming an uploaded file fails."""

    reason = FailureReason.INVALID_REQUEST


class UnknownRecordError(IngestError):
    """Raised when a media update targets a record that does not exist."""

    reason = FailureReason.RECORD_NOT_FOUND
