"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..utils.clock import utcnow


class Base(DeclarativeBase):
    """Base declarative class."""


class CategoryModel(Base):
    __tablename__ = "category"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    subcategories: Mapped[list["SubCategoryModel"]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
    )


class SubCategoryModel(Base):
    __tablename__ = "subcategory"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    category_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("category.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    category: Mapped[CategoryModel] = relationship(back_populates="subcategories")


class CatalogRecordModel(Base):
    __tablename__ = "catalog_record"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    # upper-cased external_id; carries the case-insensitive uniqueness guarantee
    external_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[float | None] = mapped_column(Float)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    brand: Mapped[str | None] = mapped_column(String(255))
    category_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("category.id"), nullable=False, index=True
    )
    subcategory_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("subcategory.id"), nullable=False, index=True
    )
    filters_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    attributes_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft", index=True)
    scheduled_date: Mapped[str | None] = mapped_column(String(10))
    scheduled_time: Mapped[str | None] = mapped_column(String(5))
    publish_at: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    media: Mapped[list["MediaAssetModel"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="MediaAssetModel.position",
    )


class MediaAssetModel(Base):
    __tablename__ = "media_asset"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    record_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("catalog_record.id", ondelete="CASCADE"), nullable=False, index=True
    )
    object_key: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    color_group: Mapped[str | None] = mapped_column(String(64))
    kind: Mapped[str] = mapped_column(String(8), nullable=False)  # image|video
    url_refreshed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    record: Mapped[CatalogRecordModel] = relationship(back_populates="media")
