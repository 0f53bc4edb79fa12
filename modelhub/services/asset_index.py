"""
Durable index of asset records.

All reads and writes of the ``assets`` table go through ``AssetIndex``.
Callers outside this module only ever see projected dictionaries from
``query``, or ORM rows that the API layer serializes through the public
schemas, so storage keys and uploader addresses never leave the service.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, update as sql_update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modelhub.core.errors import NotFound, PersistenceFailure, ValidationError
from modelhub.models.orm import Asset, AssetTag
from modelhub.models.schemas import AssetFormat, SortKey

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("views", "downloads", "upload_count")

PUBLIC_FIELDS = (
    "id",
    "name",
    "public_url",
    "thumbnail_url",
    "format",
    "size",
    "tags",
    "is_public",
    "views",
    "downloads",
    "upload_count",
    "created_at",
    "updated_at",
)

MIN_LIMIT = 1
MAX_LIMIT = 100

_SORT_COLUMNS = {
    SortKey.created_at: Asset.created_at,
    SortKey.name: Asset.name,
    SortKey.views: Asset.views,
    SortKey.downloads: Asset.downloads,
    SortKey.size: Asset.size,
}


def normalize_tags(values: Optional[Iterable[str]]) -> List[str]:
    tags: List[str] = []
    for value in values or ():
        tag = str(value).strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return 10
    return max(MIN_LIMIT, min(MAX_LIMIT, int(limit)))


@dataclass
class QuerySpec:
    public_only: bool = True
    format: Optional[AssetFormat] = None
    tag: Optional[str] = None
    search: Optional[str] = None
    sort: SortKey = SortKey.created_at
    descending: bool = True
    offset: int = 0
    limit: int = 10
    fields: Sequence[str] = PUBLIC_FIELDS


def project(asset: Asset, fields: Sequence[str] = PUBLIC_FIELDS) -> Dict[str, Any]:
    return {name: getattr(asset, name) for name in fields}


class AssetIndex:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Asset index %s failed: %s", action, e)
            raise PersistenceFailure(f"Failed to {action} asset record") from e

    def create(self, asset: Asset) -> Asset:
        self.db.add(asset)
        self._commit("create")
        self.db.refresh(asset)
        return asset

    def get(self, asset_id: str) -> Asset:
        asset = self.db.get(Asset, asset_id)
        if asset is None:
            raise NotFound("Model not found")
        return asset

    def exists(self, asset_id: str) -> bool:
        return self.db.query(Asset.id).filter(Asset.id == asset_id).first() is not None

    def increment_field(self, asset_id: str, field: str, delta: int = 1) -> Asset:
        """
        Atomically add ``delta`` to a counter and return the refreshed record.

        The increment is a single ``UPDATE ... SET field = field + delta`` so
        concurrent increments of the same record are serialized by the
        database and none are lost.
        """
        if field not in COUNTER_FIELDS:
            raise ValidationError.for_field("field", f"Unknown counter '{field}'", field)
        if delta < 1:
            raise ValidationError.for_field("delta", "Counters can only be incremented", delta)

        column = getattr(Asset, field)
        result = self.db.execute(
            sql_update(Asset)
            .where(Asset.id == asset_id)
            .values({column: column + delta})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFound("Model not found")
        self._commit("increment")

        asset = self.db.get(Asset, asset_id)
        if asset is None:
            raise NotFound("Model not found")
        self.db.refresh(asset)
        return asset

    def update(
        self,
        asset_id: str,
        name: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        is_public: Optional[bool] = None,
    ) -> Asset:
        asset = self.get(asset_id)
        if name is not None:
            name = name.strip()
            if not 1 <= len(name) <= 100:
                raise ValidationError.for_field("name", "Name must be between 1 and 100 characters", name)
            asset.name = name
        if tags is not None:
            asset.tags = normalize_tags(tags)
        if is_public is not None:
            asset.is_public = bool(is_public)
        self._commit("update")
        self.db.refresh(asset)
        return asset

    def delete(self, asset_id: str) -> Asset:
        asset = self.get(asset_id)
        self.db.delete(asset)
        self._commit("delete")
        return asset

    def _filtered(self, spec: QuerySpec):
        query = self.db.query(Asset)
        if spec.public_only:
            query = query.filter(Asset.is_public.is_(True))
        if spec.format is not None:
            query = query.filter(Asset.format == AssetFormat(spec.format).value)
        if spec.tag:
            query = query.filter(Asset.tag_rows.any(AssetTag.tag == spec.tag.strip().lower()))
        if spec.search:
            term = spec.search.strip().lower()
            query = query.filter(
                or_(
                    func.lower(Asset.name).contains(term, autoescape=True),
                    Asset.tag_rows.any(func.lower(AssetTag.tag).contains(term, autoescape=True)),
                )
            )
        return query

    def query(self, spec: QuerySpec) -> Tuple[List[Dict[str, Any]], int]:
        """
        Run a filtered, sorted, paginated query.

        Returns the projected page and the number of records matching the
        filter (independent of the page window).
        """
        unknown = [f for f in spec.fields if f not in PUBLIC_FIELDS]
        if unknown:
            raise ValidationError.for_field("fields", f"Fields not available: {', '.join(unknown)}", unknown)

        query = self._filtered(spec)
        total = query.count()

        column = _SORT_COLUMNS[SortKey(spec.sort)]
        order = [column.desc() if spec.descending else column.asc()]
        if column is not Asset.created_at:
            order.append(Asset.created_at.desc())
        order.append(Asset.id.asc())

        rows = (
            query.order_by(*order)
            .offset(max(0, int(spec.offset)))
            .limit(clamp_limit(spec.limit))
            .all()
        )
        return [project(row, spec.fields) for row in rows], total
