"""Errors raised by the object storage client."""

from ..exceptions import AppError


class StorageError(AppError):
    """Base class for object storage failures."""


class StorageTransportError(StorageError):
    """Network failure or error response from the object store."""

    def __init__(
        self, message: str, *, status_code: int | None = None, code: str | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class MultipartUploadError(StorageTransportError):
    """A multipart session failed and was aborted."""

    def __init__(self, message: str, *, upload_id: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code)
        self.upload_id = upload_id
