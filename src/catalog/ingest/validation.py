"""Reading multipart uploads into in-memory payloads."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from fastapi import UploadFile

from ..config import IngestLimits
from ..storage.storage_models import UploadPayload
from .ingest_errors import ManifestError, PayloadTooLargeError, UploadReadError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadReader:
    """Read manifest and media uploads against configured limits."""

    limits: IngestLimits

    async def read_manifest(self, upload: UploadFile) -> list[Any]:
        """Decode the JSON manifest; it must be an array of item objects."""
        raw = await self._read(upload, cap=self.limits.max_file_bytes)
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(
                "ingest.manifest.invalid_json",
                extra={"upload_name": upload.filename, "error": str(exc)},
            )
            raise ManifestError(f"Invalid JSON format: {exc}") from exc
        if not isinstance(data, list):
            raise ManifestError("JSON must be an array of items")
        logger.info(
            "ingest.manifest.parsed",
            extra={"upload_name": upload.filename, "items": len(data)},
        )
        return data

    async def read_media(self, uploads: Sequence[UploadFile]) -> list[UploadPayload]:
        if len(uploads) > self.limits.max_media_files:
            raise PayloadTooLargeError(
                f"At most {self.limits.max_media_files} media files per batch"
            )
        payloads: list[UploadPayload] = []
        for upload in uploads:
            data = await self._read(upload, cap=self.limits.max_file_bytes)
            payloads.append(
                UploadPayload(
                    filename=upload.filename or "upload.bin",
                    data=data,
                    content_type=upload.content_type,
                )
            )
        return payloads

    async def _read(self, upload: UploadFile, *, cap: int) -> bytes:
        buffer = bytearray()
        try:
            while True:
                chunk = await upload.read(self.limits.chunk_size_bytes)
                if not chunk:
                    break
                buffer.extend(chunk)
                if len(buffer) > cap:
                    logger.warning(
                        "ingest.upload.payload_too_large",
                        extra={
                            "upload_name": upload.filename,
                            "size_bytes": len(buffer),
                            "limit_bytes": cap,
                        },
                    )
                    raise PayloadTooLargeError(
                        f"{upload.filename or 'upload'} exceeds {cap} bytes"
                    )
        except PayloadTooLargeError:
            raise
        except Exception as exc:  # pragma: no cover - broken client stream
            logger.error("ingest.upload.read_failed", exc_info=exc)
            raise UploadReadError(str(exc)) from exc
        finally:
            await upload.close()
        return bytes(buffer)
