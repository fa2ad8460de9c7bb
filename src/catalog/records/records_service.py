"""Publication transitions and media URL maintenance for catalog records."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..exceptions import InvalidScheduleError
from ..scheduler.schedule_fields import ScheduleRequest, ensure_in_future
from ..storage.storage_client import ObjectStorageClient
from ..utils.clock import utcnow
from .records_models import CatalogRecord
from .records_repository import CatalogRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordsService:
    repo: CatalogRepository
    storage: ObjectStorageClient
    clock: Callable[[], datetime] = utcnow
    log: logging.Logger = field(default_factory=lambda: logger)

    def get(self, record_id: str) -> CatalogRecord:
        return self.repo.get_record(record_id)

    def schedule(self, record_id: str, request: ScheduleRequest) -> CatalogRecord:
        """Move a draft (or re-schedule a scheduled record) to ``scheduled``."""
        now = self.clock()
        try:
            publish_at = request.resolve_publish_at()
            ensure_in_future(publish_at, now=now)
        except ValueError as exc:
            raise InvalidScheduleError(str(exc)) from exc
        scheduled_date, scheduled_time = request.date_and_time()
        record = self.repo.schedule(
            record_id,
            publish_at=publish_at,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            now=now,
        )
        self.log.info(
            "records.scheduled",
            extra={"record_id": record_id, "publish_at": publish_at.isoformat()},
        )
        return record

    def cancel_schedule(self, record_id: str) -> CatalogRecord:
        record = self.repo.cancel_schedule(record_id, now=self.clock())
        self.log.info("records.schedule_cancelled", extra={"record_id": record_id})
        return record

    def publish(self, record_id: str) -> CatalogRecord:
        record = self.repo.publish(record_id, now=self.clock())
        self.log.info("records.published", extra={"record_id": record_id})
        return record

    async def refresh_media_urls(
        self, record_id: str, *, ttl_seconds: int | None = None
    ) -> CatalogRecord:
        """Re-sign every stored object key; nothing is re-uploaded."""
        record = await asyncio.to_thread(self.repo.get_record, record_id)
        assets = [asset for asset in record.media if asset.id is not None]
        if not assets:
            return record
        signed = await self.storage.signed_urls(
            [asset.object_key for asset in assets], ttl_seconds
        )
        urls = {asset.id: url for asset, url in zip(assets, signed)}
        refreshed = await asyncio.to_thread(
            self.repo.update_media_urls, record_id, urls, refreshed_at=self.clock()
        )
        self.log.info(
            "records.media_urls_refreshed",
            extra={"record_id": record_id, "assets": len(urls)},
        )
        return refreshed

    async def refresh_all_media_urls(
        self, *, ttl_seconds: int | None = None, dry_run: bool = False
    ) -> tuple[int, int]:
        """Refresh URLs for every record; returns ``(records, assets)`` touched."""
        records = 0
        assets = 0
        for record_id in await asyncio.to_thread(self.repo.list_record_ids):
            record = await asyncio.to_thread(self.repo.get_record, record_id)
            if not record.media:
                continue
            records += 1
            assets += len(record.media)
            if not dry_run:
                await self.refresh_media_urls(record_id, ttl_seconds=ttl_seconds)
        return records, assets


__all__ = ["RecordsService"]
