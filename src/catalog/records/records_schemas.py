"""Pydantic responses for catalog record routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from .records_models import CatalogRecord


class MediaAssetResponse(BaseModel):
    id: str | None
    object_key: str
    url: str
    priority: int
    kind: str
    color_group: str | None = None


class CatalogRecordResponse(BaseModel):
    id: str
    external_id: str
    name: str
    category_id: str
    subcategory_id: str
    status: str
    description: str | None = None
    price: float | None = None
    stock: int = 0
    brand: str | None = None
    filters: list[dict[str, str]]
    attributes: dict[str, Any]
    media: list[MediaAssetResponse]
    scheduled_date: str | None = None
    scheduled_time: str | None = None
    publish_at: datetime | None = None
    published_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: CatalogRecord) -> "CatalogRecordResponse":
        return cls(
            id=record.id,
            external_id=record.external_id,
            name=record.name,
            category_id=record.category_id,
            subcategory_id=record.subcategory_id,
            status=record.status.value,
            description=record.description,
            price=record.price,
            stock=record.stock,
            brand=record.brand,
            filters=record.filters,
            attributes=record.attributes,
            media=[
                MediaAssetResponse(
                    id=asset.id,
                    object_key=asset.object_key,
                    url=asset.url,
                    priority=asset.priority,
                    kind=asset.kind.value,
                    color_group=asset.color_group,
                )
                for asset in record.media
            ],
            scheduled_date=record.scheduled_date,
            scheduled_time=record.scheduled_time,
            publish_at=record.publish_at,
            published_at=record.published_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
