"""
Viewer profile store.

Profiles are grouped by an opaque session id supplied by the caller. Input is
validated with the pydantic schemas before anything is written, so a bad
colour or out-of-range camera value never reaches the database.
"""
import logging
import secrets
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from modelhub.core.errors import AssetNotFound, NotFound, PersistenceFailure, ValidationError
from modelhub.models.orm import Asset, ViewerProfile, utcnow
from modelhub.models.schemas import (
    RENDER_FIELDS,
    ProfileCreate,
    ProfileSnapshot,
    ProfileUpdate,
    RenderOptions,
)
from modelhub.services.asset_index import AssetIndex

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0.0"

# Fields that identify a stored profile rather than describe how it renders
IDENTITY_FIELDS = (
    "id",
    "_id",
    "session_id",
    "sessionId",
    "created_at",
    "updated_at",
    "last_accessed",
    "shareable_link",
    "is_default",
    "is_template",
    "template_name",
    "export_date",
    "exportDate",
    "version",
)

_default_lock = threading.Lock()


def validation_error_from(exc: PydanticValidationError) -> ValidationError:
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "__root__",
            "message": err["msg"],
            "value": err.get("input") if isinstance(err.get("input"), (str, int, float, bool, type(None))) else None,
        }
        for err in exc.errors()
    ]
    return ValidationError("Validation failed", errors=errors)


def _parse(schema, data: Union[Mapping[str, Any], BaseModel]):
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(dict(data))
    except PydanticValidationError as e:
        raise validation_error_from(e)


def new_shareable_link() -> str:
    return f"/view/{secrets.token_urlsafe(6)}"


def render_fields(profile: ViewerProfile) -> Dict[str, Any]:
    return {name: getattr(profile, name) for name in RENDER_FIELDS}


class ProfileStore:
    def __init__(self, db: Session):
        self.db = db
        self.assets = AssetIndex(db)

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Profile store %s failed: %s", action, e)
            raise PersistenceFailure(f"Failed to {action} settings") from e

    def _check_asset(self, asset_id: Optional[str]) -> None:
        if asset_id and not self.assets.exists(asset_id):
            raise AssetNotFound("Model not found")

    def _build(self, options: RenderOptions, **extra) -> ViewerProfile:
        values = options.model_dump(mode="json", include=set(RENDER_FIELDS))
        profile = ViewerProfile(**values, **extra)
        if profile.is_template and not profile.shareable_link:
            profile.shareable_link = new_shareable_link()
        now = utcnow()
        profile.created_at = now
        profile.last_accessed = now
        return profile

    def save(self, data: Union[Mapping[str, Any], BaseModel], session_id: Optional[str] = None) -> ViewerProfile:
        payload = _parse(ProfileCreate, data)
        self._check_asset(payload.asset_id)

        profile = self._build(
            payload,
            session_id=session_id,
            asset_id=payload.asset_id,
            is_template=payload.is_template,
            template_name=payload.template_name if payload.is_template else None,
        )
        self.db.add(profile)
        self._commit("save")
        self.db.refresh(profile)
        return profile

    def asset_for(self, profile: ViewerProfile) -> Optional[Asset]:
        """The referenced asset, or None when unset or since deleted."""
        if not profile.asset_id:
            return None
        return self.db.get(Asset, profile.asset_id)

    def get(self, profile_id: str) -> ViewerProfile:
        profile = self.db.get(ViewerProfile, profile_id)
        if profile is None:
            raise NotFound("Settings not found")
        profile.last_accessed = utcnow()
        self._commit("touch")
        self.db.refresh(profile)
        return profile

    def _session_query(self, session_id: str):
        return (
            self.db.query(ViewerProfile)
            .filter(ViewerProfile.session_id == session_id, ViewerProfile.is_template.is_(False))
            .order_by(ViewerProfile.created_at.desc(), ViewerProfile.id.desc())
        )

    def latest_for_session(self, session_id: str) -> Optional[ViewerProfile]:
        if not session_id:
            return None
        return self._session_query(session_id).first()

    def list_for_session(self, session_id: str) -> List[ViewerProfile]:
        if not session_id:
            return []
        return self._session_query(session_id).all()

    def update(self, profile_id: str, data: Union[Mapping[str, Any], BaseModel]) -> ViewerProfile:
        payload = _parse(ProfileUpdate, data)
        changes = payload.model_dump(mode="json", exclude_unset=True)

        profile = self.db.get(ViewerProfile, profile_id)
        if profile is None:
            raise NotFound("Settings not found")
        if "asset_id" in changes:
            self._check_asset(changes["asset_id"])

        is_template = changes.get("is_template", profile.is_template)
        template_name = changes.get("template_name", profile.template_name)
        if is_template and not template_name:
            raise ValidationError.for_field(
                "template_name", "template_name is required when is_template is true"
            )

        for key, value in changes.items():
            setattr(profile, key, value)
        if not profile.is_template:
            profile.template_name = None
        elif not profile.shareable_link:
            profile.shareable_link = new_shareable_link()
        profile.last_accessed = utcnow()

        self._commit("update")
        self.db.refresh(profile)
        return profile

    def delete(self, profile_id: str) -> ViewerProfile:
        profile = self.db.get(ViewerProfile, profile_id)
        if profile is None:
            raise NotFound("Settings not found")
        self.db.delete(profile)
        self._commit("delete")
        return profile

    def _find_default(self) -> Optional[ViewerProfile]:
        return self.db.query(ViewerProfile).filter(ViewerProfile.is_default.is_(True)).first()

    def get_or_create_default(self) -> ViewerProfile:
        """
        Return the single default profile, creating it on first use.

        Creation runs under a process-wide lock; across processes the partial
        unique index on ``is_default`` rejects a second default and the loser
        re-reads the winner's row.
        """
        profile = self._find_default()
        if profile is not None:
            return profile

        with _default_lock:
            profile = self._find_default()
            if profile is not None:
                return profile

            profile = self._build(RenderOptions(), is_default=True, template_name="Default")
            self.db.add(profile)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("Default settings created concurrently, reusing existing row")
                profile = self._find_default()
                if profile is None:
                    raise PersistenceFailure("Failed to create default settings")
                return profile
            except SQLAlchemyError as e:
                self.db.rollback()
                raise PersistenceFailure("Failed to create default settings") from e

            self.db.refresh(profile)
            logger.info("Created default settings %s", profile.id)
            return profile

    def export_snapshot(self, session_id: str) -> ProfileSnapshot:
        profile = self.latest_for_session(session_id)
        if profile is None:
            raise NotFound("No settings found to export")
        return ProfileSnapshot(
            **render_fields(profile),
            asset_id=profile.asset_id,
            export_date=datetime.now(timezone.utc),
            version=SNAPSHOT_VERSION,
        )

    def import_snapshot(self, snapshot: Union[Mapping[str, Any], BaseModel], session_id: str) -> ViewerProfile:
        if isinstance(snapshot, BaseModel):
            snapshot = snapshot.model_dump(mode="json")
        if not snapshot:
            raise ValidationError.for_field("settings", "No settings data provided")

        data = {k: v for k, v in dict(snapshot).items() if k not in IDENTITY_FIELDS}
        return self.save(data, session_id=session_id)
