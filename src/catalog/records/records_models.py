"""Domain structures for catalog records and their media."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class RecordStatus(StrEnum):
    """Publication lifecycle of a catalog record."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class MediaKind(StrEnum):
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def from_content_type(cls, content_type: str | None) -> "MediaKind":
        if content_type and content_type.lower().startswith("video/"):
            return cls.VIDEO
        return cls.IMAGE


@dataclass(slots=True)
class MediaAsset:
    """One stored object attached to a record."""

    object_key: str
    url: str
    priority: int
    kind: MediaKind = MediaKind.IMAGE
    color_group: str | None = None
    id: str | None = None

    @property
    def is_primary(self) -> bool:
        return self.priority == 0


@dataclass(slots=True)
class NewCatalogRecord:
    """Normalised input for creating a draft record."""

    external_id: str
    name: str
    category_id: str
    subcategory_id: str
    description: str | None = None
    price: float | None = None
    stock: int = 0
    brand: str | None = None
    filters: list[dict[str, str]] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class CatalogRecord:
    """Persisted catalog record."""

    id: str
    external_id: str
    name: str
    category_id: str
    subcategory_id: str
    status: RecordStatus
    description: str | None = None
    price: float | None = None
    stock: int = 0
    brand: str | None = None
    filters: list[dict[str, str]] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    media: list[MediaAsset] = field(default_factory=list)
    scheduled_date: str | None = None
    scheduled_time: str | None = None
    publish_at: datetime | None = None
    published_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def primary_media(self) -> MediaAsset | None:
        return next((asset for asset in self.media if asset.is_primary), None)
