from __future__ import annotations

import os
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from src.catalog.db.db_init import init_db, seed_categories
from src.catalog.records.records_repository import CatalogRepository
from tests.mocks.object_store import FakeObjectStore

os.environ.setdefault("PUBLISH_SCHEDULER_ENABLED", "false")
os.environ.setdefault("S3_ENDPOINT", "http://s3.test")
os.environ.setdefault("S3_BUCKET", "catalog")
os.environ.setdefault("S3_ACCESS_KEY_ID", "test-access")
os.environ.setdefault("S3_SECRET_ACCESS_KEY", "test-secret")

CATEGORIES = [
    {
        "id": "cat-1",
        "name": "Shoes",
        "subcategories": [
            {"id": "sub-1", "name": "Sneakers"},
            {"id": "sub-2", "name": "Boots"},
        ],
    },
    {
        "id": "cat-2",
        "name": "Bags",
        "subcategories": [{"id": "sub-9", "name": "Backpacks"}],
    },
]


def build_database(db_path: Path) -> tuple[Engine, sessionmaker[Session]]:
    # file database so worker threads share one schema
    engine = create_engine(f"sqlite:///{db_path}", future=True)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine)
    seed_categories(session_factory, CATEGORIES)
    return engine, session_factory


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    _, factory = build_database(tmp_path / "catalog.db")
    return factory


@pytest.fixture
def repo(session_factory: sessionmaker[Session]) -> CatalogRepository:
    return CatalogRepository(session_factory)


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()
