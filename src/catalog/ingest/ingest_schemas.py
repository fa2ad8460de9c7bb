"""Pydantic schemas for manifest items and ingest responses."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from ..records.records_models import NewCatalogRecord


class FilterPair(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    key: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)


class ItemDescriptor(BaseModel):
    """One manifest entry; unknown fields are rejected."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    # underscores would make the id unreachable from media filenames
    external_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern=r"^[^_]+$",
        validation_alias=AliasChoices("productId", "externalId"),
    )
    name: str = Field(..., min_length=1, max_length=255)
    category_id: str = Field(..., min_length=1, alias="categoryId")
    subcategory_id: str = Field(..., min_length=1, alias="subCategoryId")
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    brand: str | None = None
    filters: list[FilterPair] = Field(default_factory=list)
    sizes: list[dict[str, Any]] | None = None
    variants: list[dict[str, Any]] | None = None
    tags: list[str] | None = None

    def to_new_record(self) -> NewCatalogRecord:
        attributes = {
            name: value
            for name, value in (
                ("sizes", self.sizes),
                ("variants", self.variants),
                ("tags", self.tags),
            )
            if value is not None
        }
        return NewCatalogRecord(
            external_id=self.external_id,
            name=self.name,
            category_id=self.category_id,
            subcategory_id=self.subcategory_id,
            description=self.description,
            price=self.price,
            stock=self.stock,
            brand=self.brand,
            filters=[pair.model_dump() for pair in self.filters],
            attributes=attributes,
        )


class ColorEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    color_id: str = Field(..., min_length=1, max_length=64, pattern=r"^[^_]+$", alias="colorId")
    color_name: str | None = Field(default=None, alias="colorName")


class MediaUpdateDescriptor(BaseModel):
    """Colour groups whose media replace those of an existing record."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    external_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern=r"^[^_]+$",
        validation_alias=AliasChoices("productId", "externalId"),
    )
    colors: list[ColorEntry] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_colors(self) -> "MediaUpdateDescriptor":
        groups = [color.color_id.lower() for color in self.colors]
        if len(groups) != len(set(groups)):
            raise ValueError("colorId must be unique within colors")
        return self

    def declares(self, color_group: str | None) -> bool:
        if color_group is None:
            return False
        return color_group.lower() in {color.color_id.lower() for color in self.colors}


class ItemSuccessSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_id: str = Field(..., serialization_alias="productId")
    item_id: str = Field(..., serialization_alias="itemId")
    primary_image_url: str | None = Field(default=None, serialization_alias="primaryImageUrl")
    media_count: int = Field(..., serialization_alias="mediaCount")


class ItemFailureSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_id: str = Field(..., serialization_alias="productId")
    error: str
    reason: str


class IngestReportSchema(BaseModel):
    successful: list[ItemSuccessSchema]
    failed: list[ItemFailureSchema]
