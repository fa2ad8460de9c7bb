"""Persistence layer for catalog records and their media assets."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..db.db_models import (
    CatalogRecordModel,
    MediaAssetModel,
    SubCategoryModel,
)
from ..exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ensure_found,
    handle_sqlalchemy_errors,
)
from ..utils.clock import utcnow
from .records_models import (
    CatalogRecord,
    MediaAsset,
    MediaKind,
    NewCatalogRecord,
    RecordStatus,
)

_CLEARED_SCHEDULE = {
    "publish_at": None,
    "scheduled_date": None,
    "scheduled_time": None,
}


class CatalogRepository:
    """Store catalog records; every status change is a single conditional UPDATE."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def external_id_exists(self, external_id: str) -> bool:
        with self._session_factory() as session:
            row = session.execute(
                select(CatalogRecordModel.id).where(
                    CatalogRecordModel.external_key == _external_key(external_id)
                )
            ).first()
            return row is not None

    def references_exist(self, category_id: str, subcategory_id: str) -> bool:
        """Subcategory must exist and belong to ``category_id``."""
        with self._session_factory() as session:
            row = session.execute(
                select(SubCategoryModel.id).where(
                    SubCategoryModel.id == subcategory_id,
                    SubCategoryModel.category_id == category_id,
                )
            ).first()
            return row is not None

    def get_record(self, record_id: str) -> CatalogRecord:
        with self._session_factory() as session:
            model = ensure_found(
                session.get(CatalogRecordModel, record_id),
                entity="Catalog record",
                identifier=record_id,
            )
            return self._to_domain(model)

    def get_by_external_id(self, external_id: str) -> CatalogRecord:
        with self._session_factory() as session:
            model = session.execute(
                select(CatalogRecordModel).where(
                    CatalogRecordModel.external_key == _external_key(external_id)
                )
            ).scalar_one_or_none()
            if model is None:
                raise NotFoundError(f"Catalog record with external id '{external_id}' not found")
            return self._to_domain(model)

    def list_record_ids(self) -> list[str]:
        with self._session_factory() as session:
            return list(
                session.execute(
                    select(CatalogRecordModel.id).order_by(CatalogRecordModel.created_at)
                ).scalars()
            )

    def list_due_ids(self, now: datetime) -> list[str]:
        """Ids of scheduled records whose ``publish_at`` has passed."""
        with self._session_factory() as session:
            return list(
                session.execute(
                    select(CatalogRecordModel.id)
                    .where(
                        CatalogRecordModel.status == RecordStatus.SCHEDULED.value,
                        CatalogRecordModel.publish_at.is_not(None),
                        CatalogRecordModel.publish_at <= now,
                    )
                    .order_by(CatalogRecordModel.publish_at)
                ).scalars()
            )

    # ------------------------------------------------------------------
    # Ingest writes
    # ------------------------------------------------------------------

    def create_draft(
        self,
        record: NewCatalogRecord,
        *,
        record_id: str | None = None,
    ) -> CatalogRecord:
        """Insert a draft record without media.

        Raises :class:`IntegrityConstraintViolation` when the external id is
        already taken (the unique column is case-insensitive).
        """
        record_id = record_id or uuid.uuid4().hex
        now = utcnow()
        with handle_sqlalchemy_errors(entity="catalog_record"), self._session_factory() as session:
            model = CatalogRecordModel(
                id=record_id,
                external_id=record.external_id,
                external_key=_external_key(record.external_id),
                name=record.name,
                description=record.description,
                price=record.price,
                stock=record.stock,
                brand=record.brand,
                category_id=record.category_id,
                subcategory_id=record.subcategory_id,
                filters_json=json.dumps(record.filters),
                attributes_json=json.dumps(record.attributes),
                status=RecordStatus.DRAFT.value,
                created_at=now,
                updated_at=now,
            )
            session.add(model)
            session.commit()
            return self._to_domain(model)

    def attach_media(self, record_id: str, assets: Sequence[MediaAsset]) -> CatalogRecord:
        """Append ``assets`` in the given order to the record's media list."""
        now = utcnow()
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            model = session.get(CatalogRecordModel, record_id)
            if model is None:
                raise NotFoundError(f"Catalog record '{record_id}' not found")
            offset = len(model.media)
            for index, asset in enumerate(assets):
                asset_id = asset.id or uuid.uuid4().hex
                model.media.append(
                    MediaAssetModel(
                        id=asset_id,
                        object_key=asset.object_key,
                        url=asset.url,
                        priority=asset.priority,
                        position=offset + index,
                        color_group=asset.color_group,
                        kind=MediaKind(asset.kind).value,
                        url_refreshed_at=now,
                    )
                )
            model.updated_at = now
            session.commit()
            session.refresh(model)
            return self._to_domain(model)

    def replace_group_media(
        self,
        record_id: str,
        color_groups: Sequence[str],
        assets: Sequence[MediaAsset],
    ) -> tuple[CatalogRecord, list[str]]:
        """Swap the secondary media of ``color_groups`` for ``assets``.

        The primary asset and other groups stay. Returns the updated record and
        the object keys that are no longer referenced.
        """
        groups = {group.lower() for group in color_groups}
        now = utcnow()
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            model = ensure_found(
                session.get(CatalogRecordModel, record_id),
                entity="Catalog record",
                identifier=record_id,
            )
            superseded = [
                asset
                for asset in model.media
                if asset.priority != 0 and (asset.color_group or "").lower() in groups
            ]
            for asset in superseded:
                model.media.remove(asset)
            for asset in assets:
                model.media.append(
                    MediaAssetModel(
                        id=asset.id or uuid.uuid4().hex,
                        object_key=asset.object_key,
                        url=asset.url,
                        priority=asset.priority,
                        position=0,
                        color_group=asset.color_group,
                        kind=MediaKind(asset.kind).value,
                        url_refreshed_at=now,
                    )
                )
            ordered = sorted(
                model.media,
                key=lambda item: (
                    item.priority != 0,
                    (item.color_group or "").lower(),
                    item.priority,
                ),
            )
            for position, asset in enumerate(ordered):
                asset.position = position
            model.updated_at = now
            session.commit()
            session.refresh(model)
            return self._to_domain(model), [asset.object_key for asset in superseded]

    def delete_record(self, record_id: str) -> bool:
        """Delete the record and its media rows; ``False`` when already absent."""
        with handle_sqlalchemy_errors(entity="catalog_record"), self._session_factory() as session:
            model = session.get(CatalogRecordModel, record_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True

    def update_media_urls(
        self,
        record_id: str,
        urls: Mapping[str, str],
        *,
        refreshed_at: datetime | None = None,
    ) -> CatalogRecord:
        """Replace stored URLs by asset id; object keys are never touched."""
        now = refreshed_at or utcnow()
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            model = session.get(CatalogRecordModel, record_id)
            if model is None:
                raise NotFoundError(f"Catalog record '{record_id}' not found")
            for asset in model.media:
                url = urls.get(asset.id)
                if url is not None:
                    asset.url = url
                    asset.url_refreshed_at = now
            session.commit()
            session.refresh(model)
            return self._to_domain(model)

    # ------------------------------------------------------------------
    # Publication state machine
    # ------------------------------------------------------------------

    def schedule(
        self,
        record_id: str,
        *,
        publish_at: datetime,
        scheduled_date: str | None,
        scheduled_time: str | None,
        now: datetime | None = None,
    ) -> CatalogRecord:
        """draft|scheduled -> scheduled."""
        return self._transition(
            record_id,
            allowed=(RecordStatus.DRAFT, RecordStatus.SCHEDULED),
            values={
                "status": RecordStatus.SCHEDULED.value,
                "publish_at": publish_at,
                "scheduled_date": scheduled_date,
                "scheduled_time": scheduled_time,
                "updated_at": now or utcnow(),
            },
            require_primary=True,
        )

    def cancel_schedule(self, record_id: str, *, now: datetime | None = None) -> CatalogRecord:
        """scheduled -> draft."""
        return self._transition(
            record_id,
            allowed=(RecordStatus.SCHEDULED,),
            values={
                "status": RecordStatus.DRAFT.value,
                **_CLEARED_SCHEDULE,
                "updated_at": now or utcnow(),
            },
        )

    def publish(self, record_id: str, *, now: datetime | None = None) -> CatalogRecord:
        """draft|scheduled -> published."""
        current = now or utcnow()
        return self._transition(
            record_id,
            allowed=(RecordStatus.DRAFT, RecordStatus.SCHEDULED),
            values={
                "status": RecordStatus.PUBLISHED.value,
                "published_at": current,
                **_CLEARED_SCHEDULE,
                "updated_at": current,
            },
            require_primary=True,
        )

    def promote_if_due(self, record_id: str, now: datetime) -> bool:
        """Publish a scheduled record whose time has come.

        Returns ``False`` when the record is gone, no longer scheduled or not
        yet due; the condition is evaluated by the database so concurrent
        sweeps cannot publish the same record twice.
        """
        with handle_sqlalchemy_errors(entity="catalog_record"), self._session_factory() as session:
            result = session.execute(
                update(CatalogRecordModel)
                .where(
                    CatalogRecordModel.id == record_id,
                    CatalogRecordModel.status == RecordStatus.SCHEDULED.value,
                    CatalogRecordModel.publish_at.is_not(None),
                    CatalogRecordModel.publish_at <= now,
                )
                .values(
                    status=RecordStatus.PUBLISHED.value,
                    published_at=now,
                    updated_at=now,
                    **_CLEARED_SCHEDULE,
                )
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount == 1

    def _transition(
        self,
        record_id: str,
        *,
        allowed: tuple[RecordStatus, ...],
        values: dict[str, object],
        require_primary: bool = False,
    ) -> CatalogRecord:
        conditions = [
            CatalogRecordModel.id == record_id,
            CatalogRecordModel.status.in_([status.value for status in allowed]),
        ]
        if require_primary:
            conditions.append(
                select(MediaAssetModel.id)
                .where(
                    MediaAssetModel.record_id == CatalogRecordModel.id,
                    MediaAssetModel.priority == 0,
                )
                .correlate(CatalogRecordModel)
                .exists()
            )

        with handle_sqlalchemy_errors(entity="catalog_record"), self._session_factory() as session:
            result = session.execute(
                update(CatalogRecordModel)
                .where(*conditions)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            if result.rowcount == 1:
                model = session.get(CatalogRecordModel, record_id, populate_existing=True)
                if model is None:  # pragma: no cover - deleted in between
                    raise NotFoundError(f"Catalog record '{record_id}' not found")
                return self._to_domain(model)

            model = session.get(CatalogRecordModel, record_id)
            if model is None:
                raise NotFoundError(f"Catalog record '{record_id}' not found")
            if model.status not in {status.value for status in allowed}:
                raise InvalidTransitionError(
                    f"Catalog record '{record_id}' is {model.status}; "
                    f"expected one of {', '.join(status.value for status in allowed)}"
                )
            raise InvalidTransitionError(
                f"Catalog record '{record_id}' has no primary media"
            )

    @staticmethod
    def _to_domain(model: CatalogRecordModel) -> CatalogRecord:
        return CatalogRecord(
            id=model.id,
            external_id=model.external_id,
            name=model.name,
            category_id=model.category_id,
            subcategory_id=model.subcategory_id,
            status=RecordStatus(model.status),
            description=model.description,
            price=model.price,
            stock=model.stock,
            brand=model.brand,
            filters=json.loads(model.filters_json or "[]"),
            attributes=json.loads(model.attributes_json or "{}"),
            media=[
                MediaAsset(
                    id=asset.id,
                    object_key=asset.object_key,
                    url=asset.url,
                    priority=asset.priority,
                    kind=MediaKind(asset.kind),
                    color_group=asset.color_group,
                )
                for asset in sorted(model.media, key=lambda item: item.position)
            ],
            scheduled_date=model.scheduled_date,
            scheduled_time=model.scheduled_time,
            publish_at=model.publish_at,
            published_at=model.published_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


def _external_key(external_id: str) -> str:
    return external_id.strip().upper()


__all__ = ["CatalogRepository"]
