"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db
from .storage.storage_client import DEFAULT_SIGNED_URL_TTL_SECONDS, StorageSettings


@dataclass(slots=True)
class IngestLimits:
    max_workers: int
    item_deadline_seconds: float
    max_file_bytes: int
    max_media_files: int
    chunk_size_bytes: int


@dataclass(slots=True)
class SchedulerSettings:
    enabled: bool
    interval_seconds: float


@dataclass(slots=True)
class AppConfig:
    storage: StorageSettings
    ingest_limits: IngestLimits
    scheduler: SchedulerSettings
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_storage_settings() -> StorageSettings:
    return StorageSettings(
        endpoint=os.getenv("S3_ENDPOINT", "http://localhost:9000"),
        bucket=os.getenv("S3_BUCKET", "catalog-media"),
        region=os.getenv("S3_REGION", "us-east-1"),
        access_key_id=os.getenv("S3_ACCESS_KEY_ID", ""),
        secret_access_key=os.getenv("S3_SECRET_ACCESS_KEY", ""),
        force_path_style=_env_bool("S3_FORCE_PATH_STYLE", True),
        timeout_seconds=float(os.getenv("S3_TIMEOUT_SECONDS", 60)),
        signed_url_ttl_seconds=int(
            os.getenv("SIGNED_URL_TTL_SECONDS", DEFAULT_SIGNED_URL_TTL_SECONDS)
        ),
    )


def load_config() -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    load_dotenv(".env.local")
    load_dotenv(".env", override=False)

    ingest_limits = IngestLimits(
        max_workers=max(1, int(os.getenv("INGEST_MAX_WORKERS", 4))),
        item_deadline_seconds=float(os.getenv("INGEST_ITEM_DEADLINE_SECONDS", 120)),
        max_file_bytes=int(os.getenv("INGEST_MAX_FILE_BYTES", 10 * 1024 * 1024)),
        max_media_files=int(os.getenv("INGEST_MAX_MEDIA_FILES", 500)),
        chunk_size_bytes=int(os.getenv("INGEST_CHUNK_SIZE_BYTES", 1 * 1024 * 1024)),
    )
    scheduler = SchedulerSettings(
        enabled=_env_bool("PUBLISH_SCHEDULER_ENABLED", True),
        interval_seconds=float(os.getenv("PUBLISH_SWEEP_INTERVAL_SECONDS", 60)),
    )

    database_url = os.getenv("DATABASE_URL", "sqlite:///catalog.db")
    engine = create_engine(database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    init_db(engine)

    return AppConfig(
        storage=load_storage_settings(),
        ingest_limits=ingest_limits,
        scheduler=scheduler,
        database_url=database_url,
        engine=engine,
        session_factory=session_factory,
    )
