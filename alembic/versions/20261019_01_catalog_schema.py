"""Catalog records, media assets and category reference tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "category",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "subcategory",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "category_id",
            sa.String(length=64),
            sa.ForeignKey("category.id"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_subcategory_category_id", "subcategory", ["category_id"])

    op.create_table(
        "catalog_record",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("external_key", sa.String(length=128), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("price", sa.Float()),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("brand", sa.String(length=255)),
        sa.Column(
            "category_id",
            sa.String(length=64),
            sa.ForeignKey("category.id"),
            nullable=False,
        ),
        sa.Column(
            "subcategory_id",
            sa.String(length=64),
            sa.ForeignKey("subcategory.id"),
            nullable=False,
        ),
        sa.Column("filters_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("attributes_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("scheduled_date", sa.String(length=10)),
        sa.Column("scheduled_time", sa.String(length=5)),
        sa.Column("publish_at", sa.DateTime()),
        sa.Column("published_at", sa.DateTime()),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_catalog_record_category_id", "catalog_record", ["category_id"])
    op.create_index("ix_catalog_record_subcategory_id", "catalog_record", ["subcategory_id"])
    op.create_index("ix_catalog_record_status", "catalog_record", ["status"])
    op.create_index("ix_catalog_record_publish_at", "catalog_record", ["publish_at"])

    op.create_table(
        "media_asset",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "record_id",
            sa.String(length=32),
            sa.ForeignKey("catalog_record.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("object_key", sa.String(length=1024), nullable=False, unique=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("color_group", sa.String(length=64)),
        sa.Column("kind", sa.String(length=8), nullable=False),
        sa.Column(
            "url_refreshed_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_media_asset_record_id", "media_asset", ["record_id"])


def downgrade() -> None:
    op.drop_index("ix_media_asset_record_id", table_name="media_asset")
    op.drop_table("media_asset")
    op.drop_index("ix_catalog_record_publish_at", table_name="catalog_record")
    op.drop_index("ix_catalog_record_status", table_name="catalog_record")
    op.drop_index("ix_catalog_record_subcategory_id", table_name="catalog_record")
    op.drop_index("ix_catalog_record_category_id", table_name="catalog_record")
    op.drop_table("catalog_record")
    op.drop_index("ix_subcategory_category_id", table_name="subcategory")
    op.drop_table("subcategory")
    op.drop_table("category")
