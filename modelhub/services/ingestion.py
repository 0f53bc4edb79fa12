"""
Ingestion pipeline for uploaded model files.

Validates an upload, stores its bytes, and indexes it. A successful ingest
leaves exactly one stored file and one asset record; any failure after the
bytes are written removes them again before the error is reported.
"""
import logging
import os
import re
from typing import BinaryIO, Iterable, List, Optional, Union

from modelhub.core.config import settings
from modelhub.core.errors import (
    ModelHubError,
    PersistenceFailure,
    StorageReclamationFailure,
    TooLarge,
    UnsupportedExtension,
    UnsupportedType,
    ValidationError,
)
from modelhub.models.orm import Asset
from modelhub.models.schemas import AssetFormat
from modelhub.services.asset_index import AssetIndex, normalize_tags
from modelhub.services.content_store import ContentStore
from modelhub.services.thumbnails import ThumbnailProvider

logger = logging.getLogger(__name__)

FORMAT_BY_EXTENSION = {
    ".glb": AssetFormat.GLB,
    ".gltf": AssetFormat.GLTF,
}


def derive_tags(name: str) -> List[str]:
    """Lowercase words longer than two characters, first occurrence kept."""
    words = re.split(r"[\s\-_]+", (name or "").lower())
    return normalize_tags(w for w in words if len(w) > 2)


def _payload_size(data: Union[bytes, BinaryIO]) -> Optional[int]:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return len(data)
    try:
        pos = data.tell()
        data.seek(0, os.SEEK_END)
        end = data.tell()
        data.seek(pos)
        return end - pos
    except (AttributeError, OSError, ValueError):
        return None


class IngestionPipeline:
    def __init__(
        self,
        index: AssetIndex,
        store: ContentStore,
        thumbnails: ThumbnailProvider,
        max_file_size: Optional[int] = None,
        allowed_types: Optional[Iterable[str]] = None,
    ):
        self.index = index
        self.store = store
        self.thumbnails = thumbnails
        self.max_file_size = max_file_size if max_file_size is not None else settings.MAX_FILE_SIZE
        self.allowed_types = list(allowed_types if allowed_types is not None else settings.allowed_file_types)

    def validate(self, file_name: str, mime_type: Optional[str], size: Optional[int]) -> AssetFormat:
        if mime_type not in self.allowed_types:
            raise UnsupportedType()

        extension = os.path.splitext(file_name or "")[1].lower()
        if extension not in FORMAT_BY_EXTENSION:
            raise UnsupportedExtension()

        if size is not None:
            if size > self.max_file_size:
                raise TooLarge(f"File too large. Maximum size is {self.max_file_size // (1024 * 1024)}MB.")
            if size < 1:
                raise ValidationError.for_field("file", "No file uploaded", size)

        return FORMAT_BY_EXTENSION[extension]

    def _reclaim(self, storage_key: str) -> None:
        try:
            self.store.delete(storage_key)
        except StorageReclamationFailure as e:
            logger.error("Orphaned upload %s could not be removed: %s", storage_key, e)

    def _thumbnail_for(self, storage_key: str) -> str:
        try:
            return self.thumbnails.generate(self.store.resolve_path(storage_key)) or settings.DEFAULT_THUMBNAIL_URL
        except Exception as e:
            logger.warning("Thumbnail generation failed for %s: %s", storage_key, e)
            return settings.DEFAULT_THUMBNAIL_URL

    def ingest(
        self,
        data: Union[bytes, BinaryIO],
        file_name: str,
        mime_type: Optional[str],
        name: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        is_public: Optional[bool] = None,
        client_ip: Optional[str] = None,
    ) -> Asset:
        asset_format = self.validate(file_name, mime_type, _payload_size(data))

        stem = os.path.splitext(os.path.basename(file_name))[0]
        display_name = (name or "").strip() or stem
        if not 1 <= len(display_name) <= 100:
            raise ValidationError.for_field(
                "name", "Name must be between 1 and 100 characters", display_name
            )

        storage_key = self.store.put(data, file_name, max_bytes=self.max_file_size)

        try:
            size = self.store.size(storage_key)
            if size < 1:
                raise ValidationError.for_field("file", "No file uploaded", size)

            asset = Asset(
                name=display_name,
                storage_key=storage_key,
                public_url=f"{settings.PUBLIC_URL_PREFIX.rstrip('/')}/{storage_key}",
                thumbnail_url=self._thumbnail_for(storage_key),
                format=asset_format.value,
                size=size,
                uploader_ip=client_ip or "127.0.0.1",
                is_public=True if is_public is None else bool(is_public),
                meta={"original_name": file_name, "mime_type": mime_type},
            )
            asset.tags = normalize_tags(derive_tags(display_name) + normalize_tags(tags))
            asset = self.index.create(asset)
        except ModelHubError as e:
            self._reclaim(storage_key)
            if isinstance(e, ValidationError):
                raise
            raise PersistenceFailure("Failed to upload model") from e
        except Exception as e:
            self._reclaim(storage_key)
            logger.exception("Unexpected failure while indexing %s", storage_key)
            raise PersistenceFailure("Failed to upload model") from e

        try:
            asset = self.index.increment_field(asset.id, "upload_count", 1)
        except Exception as e:
            logger.error("Finalizing upload %s failed, rolling back: %s", asset.id, e)
            try:
                self.index.delete(asset.id)
            except ModelHubError:
                logger.exception("Could not remove half-ingested record %s", asset.id)
            self._reclaim(storage_key)
            raise PersistenceFailure("Failed to upload model") from e

        logger.info("Ingested %s as %s (%s, %d bytes)", file_name, asset.id, asset.format, asset.size)
        return asset
