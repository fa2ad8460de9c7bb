"""Data structures exchanged with the object storage client."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(slots=True)
class UploadPayload:
    """In-memory file ready to be stored."""

    filename: str
    data: bytes
    content_type: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def resolved_content_type(self) -> str:
        """Declared type first, then a guess from the extension."""
        if self.content_type:
            return self.content_type
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True, slots=True)
class UploadOutcome:
    """Result of one upload attempt: a stored object or an error, never both."""

    filename: str
    object_key: str | None = None
    url: str | None = None
    content_type: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        stored = self.object_key is not None
        if stored == (self.error is not None):
            raise ValueError("UploadOutcome needs exactly one of object_key or error")
        if stored and self.url is None:
            raise ValueError("successful UploadOutcome requires an access url")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls, filename: str, *, object_key: str, url: str, content_type: str | None = None
    ) -> "UploadOutcome":
        return cls(filename=filename, object_key=object_key, url=url, content_type=content_type)

    @classmethod
    def failure(cls, filename: str, error: str) -> "UploadOutcome":
        return cls(filename=filename, error=error)
