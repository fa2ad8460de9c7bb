"""Bulk ingestion of catalog items and their media."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from ..exceptions import IntegrityConstraintViolation, NotFoundError, RepositoryError
from ..media.filename_convention import MediaDescriptor, parse_media_filename
from ..records.records_models import CatalogRecord, MediaAsset, MediaKind
from ..records.records_repository import CatalogRepository
from ..storage.storage_client import ObjectStorageClient
from ..storage.storage_models import UploadOutcome, UploadPayload
from .ingest_errors import (
    DuplicateRecordError,
    IngestError,
    IngestValidationError,
    ItemDeadlineExceededError,
    PartialUploadError,
    UnknownRecordError,
    UnresolvedReferenceError,
    UploadTransportError,
)
from .ingest_models import (
    FailureReason,
    IngestReport,
    ItemAttempt,
    ItemFailure,
    ItemSuccess,
)
from .ingest_schemas import ItemDescriptor, MediaUpdateDescriptor

logger = logging.getLogger(__name__)

RawItem = Mapping[str, Any] | ItemDescriptor | MediaUpdateDescriptor
ItemHandler = Callable[[int, Any, Sequence[UploadPayload]], Awaitable[ItemSuccess | ItemFailure]]


@dataclass(slots=True)
class MatchedMedia:
    payload: UploadPayload
    descriptor: MediaDescriptor


@dataclass(slots=True)
class BulkIngestService:
    """Creates catalog records with their media, one independent unit per item.

    An item either ends up as a record with every one of its media objects
    stored, or leaves nothing behind: the draft record and any object written
    for it are removed before the failure is reported.
    """

    repo: CatalogRepository
    storage: ObjectStorageClient
    max_workers: int = 4
    item_deadline_seconds: float = 120.0
    media_folder: str = "categories"
    log: logging.Logger = field(default_factory=lambda: logger)

    async def ingest_batch(
        self,
        items: Sequence[Mapping[str, Any] | ItemDescriptor],
        media: Sequence[UploadPayload],
    ) -> IngestReport:
        """Process every manifest entry on a bounded pool and report per item."""
        return await self._run_batch("ingest.batch", items, media, self.ingest_item)

    async def replace_media_batch(
        self,
        items: Sequence[Mapping[str, Any] | MediaUpdateDescriptor],
        media: Sequence[UploadPayload],
    ) -> IngestReport:
        """Replace colour-group media of existing records, one unit per entry."""
        return await self._run_batch("ingest.media_update", items, media, self.replace_item_media)

    async def ingest_item(
        self,
        index: int,
        raw: Mapping[str, Any] | ItemDescriptor,
        media: Sequence[UploadPayload],
    ) -> ItemSuccess | ItemFailure:
        """Run one item end to end; every error becomes an :class:`ItemFailure`."""
        attempt = _attempt_for(index, raw)
        return await self._guarded(attempt, self._run_item(attempt, raw, media))

    async def replace_item_media(
        self,
        index: int,
        raw: Mapping[str, Any] | MediaUpdateDescriptor,
        media: Sequence[UploadPayload],
    ) -> ItemSuccess | ItemFailure:
        """Upload new objects for an existing record, then swap its references.

        On failure only the objects uploaded here are removed; the record and
        its previous media stay as they were.
        """
        attempt = _attempt_for(index, raw)
        return await self._guarded(attempt, self._run_media_update(attempt, raw, media))

    async def _run_batch(
        self,
        event: str,
        items: Sequence[RawItem],
        media: Sequence[UploadPayload],
        handler: ItemHandler,
    ) -> IngestReport:
        semaphore = asyncio.Semaphore(max(1, self.max_workers))
        self.log.info(
            f"{event}.start",
            extra={"items": len(items), "media_files": len(media), "workers": self.max_workers},
        )

        async def _bounded(index: int, raw: RawItem):
            async with semaphore:
                return await handler(index, raw, media)

        results = await asyncio.gather(
            *(_bounded(index, raw) for index, raw in enumerate(items))
        )

        report = IngestReport()
        for result in results:
            if isinstance(result, ItemSuccess):
                report.successful.append(result)
            else:
                report.failed.append(result)
        self.log.info(
            f"{event}.done",
            extra={"successful": len(report.successful), "failed": len(report.failed)},
        )
        return report

    async def _guarded(
        self, attempt: ItemAttempt, work: Awaitable[ItemSuccess]
    ) -> ItemSuccess | ItemFailure:
        try:
            return await work
        except IngestError as exc:
            await self._rollback(attempt)
            return self._failure(attempt, str(exc), exc.reason)
        except Exception as exc:
            self.log.exception(
                "ingest.item.unexpected_error",
                extra={"external_id": attempt.label, "index": attempt.index},
            )
            await self._rollback(attempt)
            return self._failure(attempt, f"Unexpected error: {exc}", FailureReason.INTERNAL_ERROR)

    async def _run_item(
        self,
        attempt: ItemAttempt,
        raw: Mapping[str, Any] | ItemDescriptor,
        media: Sequence[UploadPayload],
    ) -> ItemSuccess:
        deadline = asyncio.get_running_loop().time() + self.item_deadline_seconds

        descriptor = _validate(ItemDescriptor, raw)
        attempt.external_id = descriptor.external_id

        if await asyncio.to_thread(self.repo.external_id_exists, descriptor.external_id):
            raise DuplicateRecordError(f"Duplicate productId: {descriptor.external_id}")

        if not await asyncio.to_thread(
            self.repo.references_exist, descriptor.category_id, descriptor.subcategory_id
        ):
            raise UnresolvedReferenceError(
                f"Invalid subCategoryId: {descriptor.subcategory_id} "
                f"or categoryId: {descriptor.category_id}"
            )

        record_id = uuid.uuid4().hex
        try:
            await asyncio.to_thread(
                self.repo.create_draft, descriptor.to_new_record(), record_id=record_id
            )
        except IntegrityConstraintViolation as exc:
            raise DuplicateRecordError(f"Duplicate productId: {descriptor.external_id}") from exc
        attempt.record_id = record_id
        self.log.info(
            "ingest.item.draft_created",
            extra={"external_id": descriptor.external_id, "record_id": record_id},
        )

        matched = select_media_for(descriptor.external_id, media)
        primaries = [item for item in matched if item.descriptor.is_primary]
        if not primaries:
            raise IngestValidationError(
                f"No primary image found for productId: {descriptor.external_id}"
            )
        if len(primaries) > 1:
            names = ", ".join(item.payload.filename for item in primaries)
            raise IngestValidationError(
                f"Multiple primary images for productId: {descriptor.external_id} ({names})"
            )

        folder = f"{self.media_folder}/{descriptor.category_id}/{descriptor.subcategory_id}"
        outcomes = await self._store_media(attempt, matched, folder, record_id, deadline)

        assets = build_media_assets(matched, outcomes)
        record = await asyncio.to_thread(self.repo.attach_media, record_id, assets)
        return self._success(record, event="ingest.item.completed")

    async def _run_media_update(
        self,
        attempt: ItemAttempt,
        raw: Mapping[str, Any] | MediaUpdateDescriptor,
        media: Sequence[UploadPayload],
    ) -> ItemSuccess:
        deadline = asyncio.get_running_loop().time() + self.item_deadline_seconds

        descriptor = _validate(MediaUpdateDescriptor, raw)
        attempt.external_id = descriptor.external_id

        try:
            record = await asyncio.to_thread(self.repo.get_by_external_id, descriptor.external_id)
        except NotFoundError as exc:
            raise UnknownRecordError(f"Item not found for productId: {descriptor.external_id}") from exc

        matched: list[MatchedMedia] = []
        for item in select_media_for(descriptor.external_id, media):
            if descriptor.declares(item.descriptor.color_group):
                matched.append(item)
            else:
                self.log.info(
                    "ingest.media_update.file_skipped",
                    extra={"external_id": descriptor.external_id, "upload_name": item.payload.filename},
                )
        if not matched:
            raise IngestValidationError(
                f"No media found for the declared colors of productId: {descriptor.external_id}"
            )

        folder = f"{self.media_folder}/{record.category_id}/{record.subcategory_id}"
        outcomes = await self._store_media(attempt, matched, folder, record.id, deadline)

        assets = build_media_assets(matched, outcomes)
        try:
            updated, superseded = await asyncio.to_thread(
                self.repo.replace_group_media,
                record.id,
                [color.color_id for color in descriptor.colors],
                assets,
            )
        except NotFoundError as exc:
            raise UnknownRecordError(f"Item not found for productId: {descriptor.external_id}") from exc

        if superseded:
            leftovers = await self.storage.delete_many(superseded)
            if leftovers:
                self.log.error(
                    "ingest.media_update.objects_left",
                    extra={"external_id": descriptor.external_id, "object_keys": leftovers},
                )
        return self._success(updated, event="ingest.media_update.completed")

    async def _store_media(
        self,
        attempt: ItemAttempt,
        matched: Sequence[MatchedMedia],
        folder: str,
        record_id: str,
        deadline: float,
    ) -> list[UploadOutcome]:
        """Upload ``matched`` within the time left before ``deadline``; all or nothing."""
        payloads = [item.payload for item in matched]
        keys = [
            self.storage.object_key_for(folder, record_id, payload.filename)
            for payload in payloads
        ]
        attempt.attempted_keys.extend(keys)

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise ItemDeadlineExceededError(
                f"Deadline of {self.item_deadline_seconds:g}s exceeded before upload"
            )
        try:
            outcomes = await asyncio.wait_for(
                self.storage.bulk_put(payloads, folder, record_id, object_keys=keys),
                timeout=remaining,
            )
        except asyncio.TimeoutError as exc:
            raise ItemDeadlineExceededError(
                f"Media upload did not finish within {self.item_deadline_seconds:g}s"
            ) from exc
        self._ensure_all_stored(outcomes)
        return outcomes

    def _success(self, record: CatalogRecord, *, event: str) -> ItemSuccess:
        primary = record.primary_media
        self.log.info(
            event,
            extra={
                "external_id": record.external_id,
                "record_id": record.id,
                "media_count": len(record.media),
            },
        )
        return ItemSuccess(
            external_id=record.external_id,
            record_id=record.id,
            primary_image_url=primary.url if primary else None,
            media_count=len(record.media),
        )

    @staticmethod
    def _ensure_all_stored(outcomes: Sequence[UploadOutcome]) -> None:
        failed = [outcome for outcome in outcomes if not outcome.ok]
        if not failed:
            return
        names = ", ".join(outcome.filename for outcome in failed)
        message = f"Failed to upload {len(failed)} media files: {names}"
        if len(failed) < len(outcomes):
            raise PartialUploadError(message)
        raise UploadTransportError(message)

    async def _rollback(self, attempt: ItemAttempt) -> None:
        """Undo an item's side effects; object deletion is best-effort."""
        if attempt.attempted_keys:
            leftovers = await self.storage.delete_many(attempt.attempted_keys)
            if leftovers:
                self.log.error(
                    "ingest.rollback.objects_left",
                    extra={"external_id": attempt.label, "object_keys": leftovers},
                )
        if attempt.record_id is not None:
            try:
                await asyncio.to_thread(self.repo.delete_record, attempt.record_id)
            except RepositoryError:
                self.log.exception(
                    "ingest.rollback.record_delete_failed",
                    extra={"external_id": attempt.label, "record_id": attempt.record_id},
                )
        if attempt.attempted_keys or attempt.record_id:
            self.log.warning(
                "ingest.rollback.done",
                extra={
                    "external_id": attempt.label,
                    "record_id": attempt.record_id,
                    "object_keys": len(attempt.attempted_keys),
                },
            )

    def _failure(self, attempt: ItemAttempt, error: str, reason: FailureReason) -> ItemFailure:
        self.log.warning(
            "ingest.item.failed",
            extra={"external_id": attempt.label, "index": attempt.index, "reason": reason.value, "error": error},
        )
        return ItemFailure(external_id=attempt.label, error=error, reason=reason)


def _attempt_for(index: int, raw: object) -> ItemAttempt:
    attempt = ItemAttempt(index=index)
    if isinstance(raw, Mapping):
        candidate = raw.get("productId") or raw.get("externalId")
        attempt.external_id = str(candidate) if candidate else None
    return attempt


def _validate(model: type[ItemDescriptor] | type[MediaUpdateDescriptor], raw: object):
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise IngestValidationError(format_validation_error(exc)) from exc


def select_media_for(external_id: str, media: Sequence[UploadPayload]) -> list[MatchedMedia]:
    """Pool files whose decoded external id matches, case-insensitively."""
    matched: list[MatchedMedia] = []
    for payload in media:
        descriptor = parse_media_filename(payload.filename)
        if descriptor is not None and descriptor.matches(external_id):
            matched.append(MatchedMedia(payload=payload, descriptor=descriptor))
    return matched


def build_media_assets(
    matched: Sequence[MatchedMedia], outcomes: Sequence[UploadOutcome]
) -> list[MediaAsset]:
    """Primary first, then by color group and ascending ordinal."""
    pairs = list(zip(matched, outcomes))
    pairs.sort(
        key=lambda pair: (
            not pair[0].descriptor.is_primary,
            (pair[0].descriptor.color_group or "").lower(),
            pair[0].descriptor.ordinal,
            pair[0].payload.filename,
        )
    )
    assets: list[MediaAsset] = []
    for item, outcome in pairs:
        if outcome.object_key is None or outcome.url is None:
            raise UploadTransportError(f"Missing stored object for {item.payload.filename}")
        assets.append(
            MediaAsset(
                object_key=outcome.object_key,
                url=outcome.url,
                priority=0 if item.descriptor.is_primary else max(1, item.descriptor.ordinal),
                kind=MediaKind.from_content_type(outcome.content_type),
                color_group=item.descriptor.color_group,
            )
        )
    return assets


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "item"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid item: " + "; ".join(parts)


__all__ = [
    "BulkIngestService",
    "build_media_assets",
    "format_validation_error",
    "select_media_for",
]
