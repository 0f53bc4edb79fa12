"""
Error taxonomy shared by the catalog and profile services.

Every error carries a stable ``kind`` and an HTTP-ish ``status_code`` so the
API layer can render it without knowing which service raised it.
"""
from typing import Any, Dict, List, Optional


class ModelHubError(Exception):
    kind = "internal_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "errors": self.errors,
        }


class ValidationError(ModelHubError):
    kind = "validation_error"
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str, value: Any = None) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message, "value": value}])


class UnsupportedType(ModelHubError):
    kind = "unsupported_type"
    status_code = 415
    default_message = "Invalid file type. Only GLB and GLTF files are allowed."


class UnsupportedExtension(ModelHubError):
    kind = "unsupported_extension"
    status_code = 400
    default_message = "Invalid file extension. Only .glb and .gltf files are allowed."


class TooLarge(ModelHubError):
    kind = "too_large"
    status_code = 413
    default_message = "File too large"


class NotFound(ModelHubError):
    kind = "not_found"
    status_code = 404
    default_message = "Resource not found"


class AssetNotFound(NotFound):
    kind = "asset_not_found"
    default_message = "Model not found"


class TemplateNotFound(NotFound):
    kind = "template_not_found"
    default_message = "Template not found"


class PersistenceFailure(ModelHubError):
    kind = "persistence_failure"
    status_code = 500
    default_message = "Failed to persist data"


class StorageReclamationFailure(ModelHubError):
    kind = "storage_reclamation_failure"
    status_code = 500
    default_message = "Failed to remove stored file"
