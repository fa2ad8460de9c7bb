"""FastAPI application entry point."""

from fastapi import FastAPI

from .config import AppConfig, load_config
from .dependencies import include_routers
from .lifecycle import lifespan
from .logging import configure_logging
from .storage.storage_client import ObjectStorageClient


def create_app(
    config: AppConfig | None = None,
    *,
    storage: ObjectStorageClient | None = None,
) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="Catalog Ingest", lifespan=lifespan)
    include_routers(app, cfg, storage=storage)
    return app
