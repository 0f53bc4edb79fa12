import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from modelhub.api.deps import get_catalog, get_client_ip, get_content_store, get_thumbnail_provider
from modelhub.core.database import get_db
from modelhub.core.errors import ValidationError
from modelhub.models.schemas import AssetDetail, AssetListResponse, AssetSummary, AssetUpdate, CatalogStats
from modelhub.services import (
    AssetIndex,
    AssetService,
    CatalogQueryEngine,
    ContentStore,
    IngestionPipeline,
    ThumbnailProvider,
)

router = APIRouter(prefix="/api/v1/models", tags=["models"])


def _parse_tags(raw: Optional[str]) -> Optional[List[str]]:
    """Accept a JSON list or a comma separated string."""
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except ValueError:
            raise ValidationError.for_field("tags", "Tags must be an array", raw)
        if not isinstance(parsed, list):
            raise ValidationError.for_field("tags", "Tags must be an array", raw)
        return [str(t) for t in parsed]
    return [t.strip() for t in raw.split(",") if t.strip()]


@router.post("/upload", response_model=AssetSummary, status_code=201)
def upload_model(
    request: Request,
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    is_public: Optional[bool] = Form(None),
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store),
    thumbnails: ThumbnailProvider = Depends(get_thumbnail_provider),
    catalog: CatalogQueryEngine = Depends(get_catalog),
):
    pipeline = IngestionPipeline(AssetIndex(db), store, thumbnails)
    try:
        asset = pipeline.ingest(
            file.file,
            file_name=file.filename or "",
            mime_type=file.content_type,
            name=name,
            tags=_parse_tags(tags),
            is_public=is_public,
            client_ip=get_client_ip(request),
        )
    finally:
        file.file.close()
    catalog.invalidate_summary()
    return asset


@router.get("/", response_model=AssetListResponse)
def list_models(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("-createdAt"),
    format: Optional[str] = Query(None),
    search: Optional[str] = Query(None, min_length=1, max_length=50),
    tag: Optional[str] = Query(None),
    catalog: CatalogQueryEngine = Depends(get_catalog),
):
    return catalog.list_assets(page=page, limit=limit, sort=sort, format=format, search=search, tag=tag)


@router.get("/stats", response_model=CatalogStats)
def model_stats(catalog: CatalogQueryEngine = Depends(get_catalog)):
    return catalog.stats()


@router.get("/{model_id}", response_model=AssetDetail)
def get_model(
    model_id: str,
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store),
):
    return AssetService(db, store).view_asset(model_id)


@router.get("/{model_id}/download")
def download_model(
    model_id: str,
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store),
):
    asset, path = AssetService(db, store).download_asset(model_id)
    return FileResponse(
        str(path),
        filename=f"{asset.name}.{asset.format.lower()}",
        media_type="application/octet-stream",
    )


@router.put("/{model_id}", response_model=AssetSummary)
def update_model(
    model_id: str,
    payload: AssetUpdate,
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store),
):
    return AssetService(db, store).update_asset(
        model_id, name=payload.name, tags=payload.tags, is_public=payload.is_public
    )


@router.delete("/{model_id}")
def delete_model(
    model_id: str,
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store),
    catalog: CatalogQueryEngine = Depends(get_catalog),
):
    asset = AssetService(db, store).delete_asset(model_id)
    catalog.invalidate_summary()
    return {
        "success": True,
        "message": "Model deleted successfully",
        "data": {"id": asset.id, "name": asset.name},
    }
