from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from modelhub.api.deps import SESSION_HEADER, get_session_id
from modelhub.core.database import get_db
from modelhub.models.schemas import (
    ProfileAsset,
    ProfileImportRequest,
    ProfileResponse,
    TemplateInstantiateRequest,
    TemplateSummary,
)
from modelhub.services import ProfileStore, TemplateRegistry

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


def _profile(profile, asset=None) -> Dict[str, Any]:
    response = ProfileResponse.model_validate(profile)
    if asset is not None:
        response = response.model_copy(update={"asset": ProfileAsset.model_validate(asset)})
    return response.model_dump(mode="json")


@router.post("/", status_code=201)
def save_settings(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    session_id: str = Depends(get_session_id),
):
    profile = ProfileStore(db).save(payload, session_id=session_id)
    return {"success": True, "message": "Settings saved successfully", "data": _profile(profile)}


@router.get("/latest")
def get_latest_settings(
    db: Session = Depends(get_db),
    session_id: str = Depends(get_session_id),
):
    store = ProfileStore(db)
    profile = store.latest_for_session(session_id)
    if profile is None:
        return {
            "success": True,
            "message": "Using default settings",
            "is_default_fallback": True,
            "data": _profile(store.get_or_create_default()),
        }
    return {"success": True, "is_default_fallback": False, "data": _profile(profile, store.asset_for(profile))}


@router.get("/session/all")
def get_session_settings(
    db: Session = Depends(get_db),
    session_id: str = Depends(get_session_id),
):
    profiles = ProfileStore(db).list_for_session(session_id)
    return {"success": True, "count": len(profiles), "data": [_profile(p) for p in profiles]}


@router.get("/export")
def export_settings(
    db: Session = Depends(get_db),
    session_id: str = Depends(get_session_id),
):
    snapshot = ProfileStore(db).export_snapshot(session_id)
    return JSONResponse(
        content=snapshot.model_dump(mode="json"),
        headers={
            "Content-Disposition": 'attachment; filename="3d-viewer-settings.json"',
            SESSION_HEADER: session_id,
        },
    )


@router.post("/import", status_code=201)
def import_settings(
    payload: ProfileImportRequest,
    db: Session = Depends(get_db),
    session_id: str = Depends(get_session_id),
):
    profile = ProfileStore(db).import_snapshot(payload.settings, session_id)
    return {"success": True, "message": "Settings imported successfully", "data": _profile(profile)}


@router.get("/templates", response_model=List[TemplateSummary])
def get_templates(db: Session = Depends(get_db)):
    return TemplateRegistry(db).list()


@router.post("/templates/{template_name}", status_code=201)
def create_from_template(
    template_name: str,
    payload: Optional[TemplateInstantiateRequest] = None,
    db: Session = Depends(get_db),
    session_id: str = Depends(get_session_id),
):
    asset_id = payload.asset_id if payload else None
    profile = TemplateRegistry(db).instantiate(template_name, session_id, asset_id=asset_id)
    return {
        "success": True,
        "message": f"Settings created from template '{template_name}'",
        "data": _profile(profile),
    }


@router.get("/{settings_id}")
def get_settings(settings_id: str, db: Session = Depends(get_db)):
    store = ProfileStore(db)
    profile = store.get(settings_id)
    return {"success": True, "data": _profile(profile, store.asset_for(profile))}


@router.put("/{settings_id}")
def update_settings(
    settings_id: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    profile = ProfileStore(db).update(settings_id, payload)
    return {"success": True, "message": "Settings updated successfully", "data": _profile(profile)}


@router.delete("/{settings_id}")
def delete_settings(settings_id: str, db: Session = Depends(get_db)):
    profile = ProfileStore(db).delete(settings_id)
    return {
        "success": True,
        "message": "Settings deleted successfully",
        "data": {"id": profile.id, "session_id": profile.session_id},
    }
