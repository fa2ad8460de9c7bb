"""HTTP routes for bulk catalog ingestion."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status

from ..storage.storage_models import UploadPayload
from .ingest_errors import ManifestError, PayloadTooLargeError, UploadReadError
from .ingest_models import FailureReason, IngestReport
from .ingest_schemas import IngestReportSchema, ItemFailureSchema, ItemSuccessSchema
from .ingest_service import BulkIngestService
from .validation import UploadReader

router = APIRouter(prefix="/api/catalog", tags=["ingest"])
logger = logging.getLogger(__name__)


def get_bulk_ingest_service(request: Request) -> BulkIngestService:
    """Fetch ingest service from application state."""
    try:
        return request.app.state.bulk_ingest_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - app wiring error
        raise RuntimeError("BulkIngestService is not configured") from exc


def get_upload_reader(request: Request) -> UploadReader:
    try:
        return request.app.state.upload_reader  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - app wiring error
        raise RuntimeError("UploadReader is not configured") from exc


@router.post("/bulk-upload", response_model=IngestReportSchema)
async def bulk_upload(
    json_file: UploadFile = File(..., alias="jsonFile"),
    media: list[UploadFile] | None = File(default=None),
    service: BulkIngestService = Depends(get_bulk_ingest_service),
    reader: UploadReader = Depends(get_upload_reader),
) -> IngestReportSchema:
    """Ingest a manifest plus media pool; per-item failures still return 200."""
    items, payloads = await read_request(reader, json_file, media)
    logger.info(
        "ingest.request.accepted",
        extra={"items": len(items), "media_files": len(payloads)},
    )
    report = await service.ingest_batch(items, payloads)
    return to_report_schema(report)


@router.post("/item-details/bulk-upload", response_model=IngestReportSchema)
async def bulk_replace_media(
    json_file: UploadFile = File(..., alias="jsonFile"),
    media: list[UploadFile] | None = File(default=None),
    service: BulkIngestService = Depends(get_bulk_ingest_service),
    reader: UploadReader = Depends(get_upload_reader),
) -> IngestReportSchema:
    """Replace colour-group media of existing records found by productId."""
    items, payloads = await read_request(reader, json_file, media)
    logger.info(
        "ingest.media_update.accepted",
        extra={"items": len(items), "media_files": len(payloads)},
    )
    report = await service.replace_media_batch(items, payloads)
    return to_report_schema(report)


async def read_request(
    reader: UploadReader,
    json_file: UploadFile,
    media: list[UploadFile] | None,
) -> tuple[list[Any], list[UploadPayload]]:
    """Read manifest and media, mapping reader errors to HTTP errors."""
    try:
        items = await reader.read_manifest(json_file)
        payloads = await reader.read_media(media or [])
    except ManifestError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "status": "error",
                "failure_reason": FailureReason.INVALID_MANIFEST.value,
                "details": str(exc),
            },
        ) from exc
    except PayloadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "status": "error",
                "failure_reason": FailureReason.PAYLOAD_TOO_LARGE.value,
                "details": str(exc),
            },
        ) from exc
    except UploadReadError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "status": "error",
                "failure_reason": FailureReason.INVALID_REQUEST.value,
            },
        ) from exc
    return items, payloads


def to_report_schema(report: IngestReport) -> IngestReportSchema:
    return IngestReportSchema(
        successful=[
            ItemSuccessSchema(
                external_id=item.external_id,
                item_id=item.record_id,
                primary_image_url=item.primary_image_url,
                media_count=item.media_count,
            )
            for item in report.successful
        ],
        failed=[
            ItemFailureSchema(
                external_id=item.external_id,
                error=item.error,
                reason=item.reason.value,
            )
            for item in report.failed
        ],
    )
