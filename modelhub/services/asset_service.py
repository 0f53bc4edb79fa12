"""
Per-asset operations exposed to clients: view, download, edit and delete.
"""
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from modelhub.core.errors import NotFound, StorageReclamationFailure
from modelhub.models.orm import Asset
from modelhub.services.asset_index import AssetIndex
from modelhub.services.content_store import ContentStore

logger = logging.getLogger(__name__)


class AssetService:
    def __init__(self, db: Session, store: ContentStore):
        self.db = db
        self.index = AssetIndex(db)
        self.store = store

    def view_asset(self, asset_id: str) -> Asset:
        return self.index.increment_field(asset_id, "views", 1)

    def download_asset(self, asset_id: str) -> Tuple[Asset, Path]:
        """
        Resolve the stored file for a download and count it.

        Missing bytes are reported as ``NotFound`` without touching the counter.
        """
        asset = self.index.get(asset_id)
        if not self.store.exists(asset.storage_key):
            logger.error("Stored file missing for asset %s (%s)", asset.id, asset.storage_key)
            raise NotFound("Model file not found")
        asset = self.index.increment_field(asset_id, "downloads", 1)
        return asset, self.store.resolve_path(asset.storage_key)

    def update_asset(
        self,
        asset_id: str,
        name: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        is_public: Optional[bool] = None,
    ) -> Asset:
        return self.index.update(asset_id, name=name, tags=tags, is_public=is_public)

    def delete_asset(self, asset_id: str) -> Asset:
        """
        Delete the record, then release its stored bytes.

        The index deletion is authoritative; a file that cannot be removed is
        logged and left for manual cleanup.
        """
        asset = self.index.delete(asset_id)
        try:
            self.store.delete(asset.storage_key)
        except StorageReclamationFailure as e:
            logger.error("Deleted asset %s but kept its file: %s", asset_id, e)
        logger.info("Deleted asset %s (%s)", asset_id, asset.name)
        return asset
