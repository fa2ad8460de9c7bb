"""Dependency wiring helpers."""

from fastapi import FastAPI

from .config import AppConfig
from .ingest.ingest_api import router as ingest_router
from .ingest.ingest_service import BulkIngestService
from .ingest.validation import UploadReader
from .records.records_api import router as records_router
from .records.records_repository import CatalogRepository
from .records.records_service import RecordsService
from .scheduler.publish_scheduler import PublishScheduler
from .scheduler.scheduler_api import router as scheduler_router
from .storage.storage_client import ObjectStorageClient


def include_routers(
    app: FastAPI,
    config: AppConfig,
    *,
    storage: ObjectStorageClient | None = None,
) -> None:
    """Mount module routers and attach services."""
    repo = CatalogRepository(config.session_factory)
    storage_client = storage or ObjectStorageClient(config.storage)

    app.state.config = config
    app.state.catalog_repo = repo
    app.state.storage_client = storage_client
    app.state.upload_reader = UploadReader(config.ingest_limits)
    app.state.bulk_ingest_service = BulkIngestService(
        repo=repo,
        storage=storage_client,
        max_workers=config.ingest_limits.max_workers,
        item_deadline_seconds=config.ingest_limits.item_deadline_seconds,
    )
    app.state.records_service = RecordsService(repo=repo, storage=storage_client)
    app.state.publish_scheduler = PublishScheduler(
        repo=repo,
        interval_seconds=config.scheduler.interval_seconds,
    )

    app.include_router(ingest_router)
    app.include_router(records_router)
    app.include_router(scheduler_router)
