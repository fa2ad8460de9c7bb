"""Smoke tests for the Alembic migration of the catalog schema."""

from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def migration_config(database_url: str) -> Config:
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def test_upgrade_head_creates_catalog_tables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    database_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    config = migration_config(database_url)

    command.upgrade(config, "head")

    engine = create_engine(database_url)
    try:
        inspector = inspect(engine)
        assert {"category", "subcategory", "catalog_record", "media_asset"}.issubset(
            inspector.get_table_names()
        )
        record_indexes = {index["name"] for index in inspector.get_indexes("catalog_record")}
        assert {"ix_catalog_record_status", "ix_catalog_record_publish_at"}.issubset(record_indexes)
        media_keys = inspector.get_foreign_keys("media_asset")
        assert [key["referred_table"] for key in media_keys] == ["catalog_record"]
    finally:
        engine.dispose()


def test_downgrade_base_drops_catalog_tables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    database_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    config = migration_config(database_url)

    command.upgrade(config, "head")
    command.downgrade(config, "base")

    engine = create_engine(database_url)
    try:
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
