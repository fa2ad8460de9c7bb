"""Database initialization helpers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db_models import Base, CategoryModel, SubCategoryModel


def init_db(engine: Engine) -> None:
    """Create tables if they do not exist yet."""
    Base.metadata.create_all(engine)


def seed_categories(
    session_factory: sessionmaker[Session],
    categories: Iterable[Mapping[str, Any]],
) -> int:
    """Insert missing categories/subcategories, return number of rows added.

    Each entry looks like ``{"id", "name", "subcategories": [{"id", "name"}]}``.
    Existing ids are left untouched.
    """
    added = 0
    with session_factory() as session:
        for category in categories:
            category_id = str(category["id"])
            if session.get(CategoryModel, category_id) is None:
                session.add(CategoryModel(id=category_id, name=str(category["name"])))
                added += 1
            for sub in category.get("subcategories") or []:
                sub_id = str(sub["id"])
                if session.get(SubCategoryModel, sub_id) is not None:
                    continue
                session.add(
                    SubCategoryModel(
                        id=sub_id,
                        category_id=category_id,
                        name=str(sub["name"]),
                    )
                )
                added += 1
        session.commit()
    return added
