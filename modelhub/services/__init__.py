from modelhub.services.asset_index import AssetIndex, QuerySpec
from modelhub.services.asset_service import AssetService
from modelhub.services.catalog import CatalogQueryEngine
from modelhub.services.content_store import ContentStore
from modelhub.services.ingestion import IngestionPipeline
from modelhub.services.profile_store import ProfileStore
from modelhub.services.templates import TemplateRegistry
from modelhub.services.thumbnails import PlaceholderThumbnailProvider, ThumbnailProvider

__all__ = [
    "AssetIndex",
    "AssetService",
    "CatalogQueryEngine",
    "ContentStore",
    "IngestionPipeline",
    "PlaceholderThumbnailProvider",
    "ProfileStore",
    "QuerySpec",
    "TemplateRegistry",
    "ThumbnailProvider",
]
