"""Catalog record routes: lookup, publication transitions, URL refresh."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..exceptions import InvalidScheduleError, InvalidTransitionError, NotFoundError
from ..ingest.ingest_models import FailureReason
from ..scheduler.schedule_fields import ScheduleRequest
from .records_schemas import CatalogRecordResponse
from .records_service import RecordsService

router = APIRouter(prefix="/api/catalog/records", tags=["records"])


def get_records_service(request: Request) -> RecordsService:
    try:
        return request.app.state.records_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - app wiring error
        raise RuntimeError("RecordsService is not configured") from exc


@router.get("/{record_id}")
def fetch_record(
    record_id: str,
    service: RecordsService = Depends(get_records_service),
) -> CatalogRecordResponse:
    try:
        record = service.get(record_id)
    except NotFoundError:
        raise _not_found() from None
    return CatalogRecordResponse.from_record(record)


@router.post("/{record_id}/schedule")
def schedule_record(
    record_id: str,
    payload: ScheduleRequest,
    service: RecordsService = Depends(get_records_service),
) -> CatalogRecordResponse:
    try:
        record = service.schedule(record_id, payload)
    except InvalidScheduleError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "status": "error",
                "failure_reason": FailureReason.INVALID_SCHEDULE.value,
                "details": str(exc),
            },
        ) from exc
    except NotFoundError:
        raise _not_found() from None
    except InvalidTransitionError as exc:
        raise _conflict(exc) from exc
    return CatalogRecordResponse.from_record(record)


@router.post("/{record_id}/cancel-schedule")
def cancel_schedule(
    record_id: str,
    service: RecordsService = Depends(get_records_service),
) -> CatalogRecordResponse:
    try:
        record = service.cancel_schedule(record_id)
    except NotFoundError:
        raise _not_found() from None
    except InvalidTransitionError as exc:
        raise _conflict(exc) from exc
    return CatalogRecordResponse.from_record(record)


@router.post("/{record_id}/publish")
def publish_record(
    record_id: str,
    service: RecordsService = Depends(get_records_service),
) -> CatalogRecordResponse:
    try:
        record = service.publish(record_id)
    except NotFoundError:
        raise _not_found() from None
    except InvalidTransitionError as exc:
        raise _conflict(exc) from exc
    return CatalogRecordResponse.from_record(record)


@router.post("/{record_id}/refresh-media-urls")
async def refresh_media_urls(
    record_id: str,
    service: RecordsService = Depends(get_records_service),
) -> CatalogRecordResponse:
    try:
        record = await service.refresh_media_urls(record_id)
    except NotFoundError:
        raise _not_found() from None
    return CatalogRecordResponse.from_record(record)


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "status": "error",
            "failure_reason": FailureReason.RECORD_NOT_FOUND.value,
        },
    )


def _conflict(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "status": "error",
            "failure_reason": FailureReason.INVALID_TRANSITION.value,
            "details": str(exc),
        },
    )
