"""
Catalog query engine: listings, search and statistics over the asset index.

The global summary attached to every listing is cached in Redis for
``STATS_CACHE_TTL`` seconds. Writes that change asset counts or sizes call
``invalidate_summary``; view/download counters simply age out of the cache.
"""
import json
import logging
import math
from typing import Dict, List, Optional, Tuple

import redis
from sqlalchemy import func
from sqlalchemy.orm import Session

from modelhub.core.config import settings
from modelhub.core.errors import ValidationError
from modelhub.models.orm import Asset
from modelhub.models.schemas import (
    AssetFormat,
    AssetListResponse,
    AssetSummary,
    CatalogStats,
    CatalogSummary,
    FormatBreakdown,
    SortKey,
)
from modelhub.services.asset_index import AssetIndex, QuerySpec, clamp_limit

logger = logging.getLogger(__name__)

SUMMARY_CACHE_KEY = "modelhub:catalog:summary"

_SORT_ALIASES = {
    "createdat": SortKey.created_at,
    "created_at": SortKey.created_at,
    "name": SortKey.name,
    "views": SortKey.views,
    "downloads": SortKey.downloads,
    "size": SortKey.size,
}

TOP_FIELDS = {
    "views": Asset.views,
    "downloads": Asset.downloads,
    "created_at": Asset.created_at,
    "size": Asset.size,
}


def parse_sort(sort: Optional[str]) -> Tuple[SortKey, bool]:
    """``"-createdAt"`` -> (created_at, descending)."""
    if not sort:
        return SortKey.created_at, True
    descending = sort.startswith("-")
    key = _SORT_ALIASES.get(sort.lstrip("-+").lower())
    if key is None:
        raise ValidationError.for_field("sort", "Invalid sort parameter", sort)
    return key, descending


def parse_format(value: Optional[str]) -> Optional[AssetFormat]:
    if not value:
        return None
    try:
        return AssetFormat(value.upper())
    except ValueError:
        raise ValidationError.for_field("format", "Invalid format parameter", value)


class CatalogQueryEngine:
    def __init__(self, db: Session, cache: Optional[redis.Redis] = None, cache_ttl: Optional[int] = None):
        self.db = db
        self.index = AssetIndex(db)
        self.cache = cache
        self.cache_ttl = settings.STATS_CACHE_TTL if cache_ttl is None else cache_ttl

    def list_assets(
        self,
        page: int = 1,
        limit: int = 10,
        sort: Optional[str] = "-createdAt",
        format: Optional[str] = None,
        search: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> AssetListResponse:
        page = max(1, int(page or 1))
        limit = clamp_limit(limit)
        sort_key, descending = parse_sort(sort)

        if search is not None:
            search = search.strip()
            if len(search) > 50:
                raise ValidationError.for_field("search", "Search query must be between 1 and 50 characters", search)

        spec = QuerySpec(
            format=parse_format(format),
            tag=tag or None,
            search=search or None,
            sort=sort_key,
            descending=descending,
            offset=(page - 1) * limit,
            limit=limit,
        )
        rows, total = self.index.query(spec)
        total_pages = math.ceil(total / limit)

        return AssetListResponse(
            count=len(rows),
            total=total,
            total_pages=total_pages,
            current_page=page,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1,
            summary=self.summary(),
            data=[AssetSummary.model_validate(row) for row in rows],
        )

    def aggregate(self) -> CatalogSummary:
        count, total_bytes, avg_bytes, views, downloads = self.db.query(
            func.count(Asset.id),
            func.coalesce(func.sum(Asset.size), 0),
            func.avg(Asset.size),
            func.coalesce(func.sum(Asset.views), 0),
            func.coalesce(func.sum(Asset.downloads), 0),
        ).one()
        return CatalogSummary(
            asset_count=count or 0,
            total_bytes=int(total_bytes or 0),
            average_bytes=round(float(avg_bytes or 0), 2),
            total_views=int(views or 0),
            total_downloads=int(downloads or 0),
        )

    def summary(self) -> CatalogSummary:
        """The aggregate, served from cache when one is configured."""
        if self.cache is None or self.cache_ttl <= 0:
            return self.aggregate()

        try:
            cached = self.cache.get(SUMMARY_CACHE_KEY)
            if cached:
                return CatalogSummary.model_validate(json.loads(cached))
        except (redis.RedisError, ValueError) as e:
            logger.warning("Catalog summary cache read failed: %s", e)

        summary = self.aggregate()
        try:
            self.cache.setex(SUMMARY_CACHE_KEY, self.cache_ttl, summary.model_dump_json())
        except redis.RedisError as e:
            logger.warning("Catalog summary cache write failed: %s", e)
        return summary

    def invalidate_summary(self) -> None:
        if self.cache is None:
            return
        try:
            self.cache.delete(SUMMARY_CACHE_KEY)
        except redis.RedisError as e:
            logger.warning("Catalog summary cache invalidation failed: %s", e)

    def breakdown_by_format(self) -> Dict[str, FormatBreakdown]:
        rows = (
            self.db.query(
                Asset.format,
                func.count(Asset.id),
                func.coalesce(func.sum(Asset.size), 0),
                func.avg(Asset.views),
            )
            .group_by(Asset.format)
            .order_by(Asset.format)
            .all()
        )
        return {
            fmt: FormatBreakdown(
                count=count,
                total_bytes=int(total_bytes or 0),
                average_views=round(float(avg_views or 0), 2),
            )
            for fmt, count, total_bytes, avg_views in rows
        }

    def top_by_field(self, field: str, n: int = 5) -> List[AssetSummary]:
        """Public assets ranked by ``field`` descending, newest first on ties."""
        column = TOP_FIELDS.get(field)
        if column is None:
            raise ValidationError.for_field("field", f"Cannot rank by '{field}'", field)
        rows = (
            self.db.query(Asset)
            .filter(Asset.is_public.is_(True))
            .order_by(column.desc(), Asset.created_at.desc(), Asset.id.asc())
            .limit(max(0, int(n)))
            .all()
        )
        return [AssetSummary.model_validate(row) for row in rows]

    def stats(self) -> CatalogStats:
        return CatalogStats(
            overall=self.aggregate(),
            by_format=self.breakdown_by_format(),
            recent=self.top_by_field("created_at", 5),
            popular=self.top_by_field("views", 5),
        )
