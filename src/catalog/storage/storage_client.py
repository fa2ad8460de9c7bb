"""S3-compatible object storage client.

Uploads pick a strategy by size: payloads below :data:`SINGLE_PUT_THRESHOLD_BYTES`
go out as one ``put_object``; larger ones use the multipart protocol (create,
upload parts concurrently, complete) and abort the session on any failure so a
partial object never becomes visible.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
import uuid
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .storage_errors import MultipartUploadError, StorageError, StorageTransportError
from .storage_models import UploadOutcome, UploadPayload

logger = logging.getLogger(__name__)

SINGLE_PUT_THRESHOLD_BYTES = 5 * 1024 * 1024
MULTIPART_PART_SIZE_BYTES = 5 * 1024 * 1024
DEFAULT_SIGNED_URL_TTL_SECONDS = 86_400
MAX_SIGNED_URL_TTL_SECONDS = 7 * 24 * 3600

_ABSENT_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchUpload"}


def multipart_part_count(size_bytes: int) -> int:
    """Number of parts for a multipart upload of ``size_bytes``."""
    return max(1, math.ceil(size_bytes / MULTIPART_PART_SIZE_BYTES))


def split_parts(data: bytes) -> Iterator[tuple[int, bytes]]:
    """Yield ``(part_number, chunk)`` pairs, 1-indexed, last chunk may be short."""
    for index in range(multipart_part_count(len(data))):
        start = index * MULTIPART_PART_SIZE_BYTES
        yield index + 1, data[start : start + MULTIPART_PART_SIZE_BYTES]


@dataclass(slots=True)
class StorageSettings:
    endpoint: str
    bucket: str
    region: str
    access_key_id: str
    secret_access_key: str
    force_path_style: bool = True
    timeout_seconds: float = 60.0
    signed_url_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS


class ObjectStorageClient:
    """Upload, sign and delete objects in one bucket."""

    def __init__(
        self,
        settings: StorageSettings,
        *,
        session: Any | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self._session = session or aioboto3.Session()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._config = Config(
            signature_version="s3v4",
            connect_timeout=settings.timeout_seconds,
            read_timeout=settings.timeout_seconds,
            s3={"addressing_style": "path" if settings.force_path_style else "virtual"},
        )
        self._logger = logger

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def object_key_for(self, folder: str, entity_id: str, filename: str) -> str:
        """Generate a fresh key; keys are never reused so objects are never overwritten."""
        safe_name = filename.replace("/", "_").replace("\\", "_") or "upload.bin"
        millis = int(self._clock().timestamp() * 1000)
        prefix = "/".join(part.strip("/") for part in (folder, entity_id) if part.strip("/"))
        return f"{prefix}/{millis}_{uuid.uuid4().hex[:8]}_{safe_name}"

    async def signed_url(self, object_key: str, ttl_seconds: int | None = None) -> str:
        """Time-limited GET URL for ``object_key``; regenerable at any time."""
        urls = await self.signed_urls([object_key], ttl_seconds)
        return urls[0]

    async def signed_urls(
        self, object_keys: Sequence[str], ttl_seconds: int | None = None
    ) -> list[str]:
        """Sign several keys with one client; order follows ``object_keys``."""
        ttl = self._resolve_ttl(ttl_seconds)
        async with self._client() as client:
            return [await self._presign(client, key, ttl) for key in object_keys]

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def put(
        self,
        payload: UploadPayload,
        folder: str,
        entity_id: str,
        *,
        object_key: str | None = None,
    ) -> UploadOutcome:
        """Store ``payload`` and return the outcome; storage errors never raise."""
        key = object_key or self.object_key_for(folder, entity_id, payload.filename)
        content_type = payload.resolved_content_type()
        multipart = payload.size_bytes >= SINGLE_PUT_THRESHOLD_BYTES
        started = time.monotonic()

        try:
            async with self._client() as client:
                if multipart:
                    await self._put_multipart(client, key, payload.data, content_type)
                else:
                    await self._put_single(client, key, payload.data, content_type)
                await self._make_public(client, key)
                url = await self._presign(client, key, self.settings.signed_url_ttl_seconds)
        except StorageError as exc:
            self._logger.warning(
                "storage.put.failed",
                extra={
                    "object_key": key,
                    "upload_name": payload.filename,
                    "size_bytes": payload.size_bytes,
                    "multipart": multipart,
                    "error": str(exc),
                },
            )
            return UploadOutcome.failure(payload.filename, str(exc))

        self._logger.info(
            "storage.put.done",
            extra={
                "object_key": key,
                "size_bytes": payload.size_bytes,
                "multipart": multipart,
                "duration_seconds": round(time.monotonic() - started, 3),
            },
        )
        return UploadOutcome.success(
            payload.filename,
            object_key=key,
            url=url,
            content_type=content_type,
        )

    async def bulk_put(
        self,
        files: Sequence[UploadPayload],
        folder: str,
        entity_id: str,
        *,
        object_keys: Sequence[str] | None = None,
    ) -> list[UploadOutcome]:
        """Upload all ``files`` concurrently; outcomes keep the input order."""
        if object_keys is not None and len(object_keys) != len(files):
            raise ValueError("object_keys must match files one to one")
        keys: Sequence[str | None] = object_keys if object_keys is not None else [None] * len(files)
        outcomes = await asyncio.gather(
            *(
                self.put(payload, folder, entity_id, object_key=key)
                for payload, key in zip(files, keys)
            )
        )
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        self._logger.info(
            "storage.bulk_put.summary",
            extra={
                "folder": folder,
                "entity_id": entity_id,
                "succeeded": len(outcomes) - failed,
                "failed": failed,
            },
        )
        return list(outcomes)

    async def _put_single(self, client: Any, key: str, data: bytes, content_type: str) -> None:
        await self._call(
            client.put_object,
            "put object",
            Bucket=self.settings.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )

    async def _put_multipart(self, client: Any, key: str, data: bytes, content_type: str) -> None:
        created = await self._call(
            client.create_multipart_upload,
            "create multipart upload",
            Bucket=self.settings.bucket,
            Key=key,
            ContentType=content_type,
        )
        upload_id = created.get("UploadId")
        if not upload_id:
            raise StorageTransportError("create multipart upload returned no UploadId")
        total_parts = multipart_part_count(len(data))
        self._logger.info(
            "storage.multipart.initiated",
            extra={"object_key": key, "upload_id": upload_id, "parts": total_parts},
        )
        try:
            results = await asyncio.gather(
                *(
                    self._upload_part(client, key, upload_id, part_number, chunk)
                    for part_number, chunk in split_parts(data)
                ),
                return_exceptions=True,
            )
            errors = [result for result in results if isinstance(result, BaseException)]
            if errors:
                for error in errors:
                    if not isinstance(error, Exception):
                        raise error
                raise MultipartUploadError(
                    f"{len(errors)} of {total_parts} parts failed: {errors[0]}",
                    upload_id=upload_id,
                ) from errors[0]
            parts = sorted(results, key=lambda part: part["PartNumber"])  # type: ignore[index]
            await self._call(
                client.complete_multipart_upload,
                "complete multipart upload",
                Bucket=self.settings.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except asyncio.CancelledError:
            await self._abort_multipart(client, key, upload_id)
            raise
        except StorageError as exc:
            await self._abort_multipart(client, key, upload_id)
            if isinstance(exc, MultipartUploadError):
                raise
            status_code = exc.status_code if isinstance(exc, StorageTransportError) else None
            raise MultipartUploadError(str(exc), upload_id=upload_id, status_code=status_code) from exc
        except Exception as exc:
            await self._abort_multipart(client, key, upload_id)
            raise MultipartUploadError(
                f"multipart upload failed: {exc}", upload_id=upload_id
            ) from exc
        self._logger.info(
            "storage.multipart.completed",
            extra={"object_key": key, "upload_id": upload_id, "parts": total_parts},
        )

    async def _upload_part(
        self,
        client: Any,
        key: str,
        upload_id: str,
        part_number: int,
        chunk: bytes,
    ) -> dict[str, Any]:
        response = await self._call(
            client.upload_part,
            f"upload part {part_number}",
            Bucket=self.settings.bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=chunk,
        )
        etag = response.get("ETag")
        if not etag:
            raise StorageTransportError(f"upload part {part_number} returned no ETag")
        return {"PartNumber": part_number, "ETag": etag}

    async def _abort_multipart(self, client: Any, key: str, upload_id: str) -> None:
        try:
            await self._call(
                client.abort_multipart_upload,
                "abort multipart upload",
                Bucket=self.settings.bucket,
                Key=key,
                UploadId=upload_id,
            )
        except StorageTransportError as exc:
            if exc.code not in _ABSENT_CODES:
                self._logger.error(
                    "storage.multipart.abort_failed",
                    extra={"object_key": key, "upload_id": upload_id, "error": str(exc)},
                )
                return
        self._logger.warning(
            "storage.multipart.aborted",
            extra={"object_key": key, "upload_id": upload_id},
        )

    async def _make_public(self, client: Any, key: str) -> None:
        """Ask for a public-read ACL; signed URLs keep working if the store refuses."""
        try:
            await self._call(
                client.put_object_acl,
                "set object acl",
                Bucket=self.settings.bucket,
                Key=key,
                ACL="public-read",
            )
        except StorageError as exc:
            self._logger.warning(
                "storage.acl.failed", extra={"object_key": key, "error": str(exc)}
            )

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    async def delete(self, object_key: str) -> None:
        """Delete ``object_key``; a missing object counts as deleted."""
        try:
            async with self._client() as client:
                await self._call(
                    client.delete_object,
                    "delete object",
                    Bucket=self.settings.bucket,
                    Key=object_key,
                )
        except StorageTransportError as exc:
            if exc.code not in _ABSENT_CODES:
                raise
            self._logger.info("storage.delete.absent", extra={"object_key": object_key})
            return
        self._logger.info("storage.delete.done", extra={"object_key": object_key})

    async def delete_many(self, object_keys: Sequence[str]) -> list[str]:
        """Best-effort concurrent delete; returns keys that could not be removed."""
        results = await asyncio.gather(
            *(self.delete(key) for key in object_keys), return_exceptions=True
        )
        leftovers: list[str] = []
        for key, result in zip(object_keys, results):
            if isinstance(result, Exception):
                leftovers.append(key)
                self._logger.error(
                    "storage.delete.failed",
                    extra={"object_key": key, "error": str(result)},
                )
            elif isinstance(result, BaseException):
                raise result
        return leftovers

    # ------------------------------------------------------------------
    # SDK plumbing
    # ------------------------------------------------------------------

    def _client(self) -> Any:
        return self._session.client(
            "s3",
            endpoint_url=self.settings.endpoint,
            region_name=self.settings.region,
            aws_access_key_id=self.settings.access_key_id,
            aws_secret_access_key=self.settings.secret_access_key,
            config=self._config,
        )

    def _resolve_ttl(self, ttl_seconds: int | None) -> int:
        ttl = ttl_seconds if ttl_seconds is not None else self.settings.signed_url_ttl_seconds
        if not 1 <= ttl <= MAX_SIGNED_URL_TTL_SECONDS:
            raise ValueError(f"ttl_seconds must be between 1 and {MAX_SIGNED_URL_TTL_SECONDS}")
        return ttl

    async def _presign(self, client: Any, key: str, ttl: int) -> str:
        return await client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.settings.bucket, "Key": key},
            ExpiresIn=ttl,
        )

    @staticmethod
    async def _call(operation: Callable[..., Any], action: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return await operation(**kwargs)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = error.get("Code")
            status_code = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            detail = error.get("Message") or code or "unknown error"
            raise StorageTransportError(
                f"{action} failed: {detail}", status_code=status_code, code=code
            ) from exc
        except BotoCoreError as exc:
            raise StorageTransportError(f"{action} failed: {exc}") from exc


__all__ = [
    "DEFAULT_SIGNED_URL_TTL_SECONDS",
    "MAX_SIGNED_URL_TTL_SECONDS",
    "MULTIPART_PART_SIZE_BYTES",
    "ObjectStorageClient",
    "SINGLE_PUT_THRESHOLD_BYTES",
    "StorageSettings",
    "multipart_part_count",
    "split_parts",
]
