import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from modelhub.core.errors import TemplateNotFound
from modelhub.models.orm import ViewerProfile
from modelhub.models.schemas import RenderOptions, TemplateSummary
from modelhub.services.profile_store import ProfileStore, render_fields

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "Default"


def default_template_summary() -> TemplateSummary:
    """Display-only entry for the built-in look; it is never persisted."""
    baseline = RenderOptions()
    return TemplateSummary(
        template_name=DEFAULT_TEMPLATE_NAME,
        background_color=baseline.background_color,
        material_color=baseline.material_color,
        environment=baseline.environment,
        is_default=True,
    )


class TemplateRegistry:
    def __init__(self, db: Session):
        self.db = db
        self.profiles = ProfileStore(db)

    def _templates(self):
        return self.db.query(ViewerProfile).filter(ViewerProfile.is_template.is_(True))

    def list(self) -> List[TemplateSummary]:
        templates = self._templates().order_by(ViewerProfile.created_at.desc()).all()
        return [default_template_summary()] + [TemplateSummary.model_validate(t) for t in templates]

    def find(self, template_name: str) -> Optional[ViewerProfile]:
        if not template_name:
            return None
        return (
            self._templates()
            .filter(func.lower(ViewerProfile.template_name) == template_name.strip().lower())
            .order_by(ViewerProfile.created_at.desc())
            .first()
        )

    def instantiate(self, template_name: str, session_id: str, asset_id: Optional[str] = None) -> ViewerProfile:
        """
        Clone a stored template into a new profile bound to ``session_id``.

        Identity, timestamps, the shareable link and the template flags are
        not carried over; the template itself is left untouched.
        """
        template = self.find(template_name)
        if template is None:
            raise TemplateNotFound(f"Template '{template_name}' not found")

        data = render_fields(template)
        data["asset_id"] = asset_id
        profile = self.profiles.save(data, session_id=session_id)
        logger.info("Created settings %s from template '%s'", profile.id, template.template_name)
        return profile
