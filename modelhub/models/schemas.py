from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, JsonValue, computed_field, field_validator, model_validator
from typing import Dict, List, Optional

HEX_COLOR_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


def format_bytes(size: int, decimals: int = 2) -> str:
    if not size:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(size / 1024 ** i, decimals)
    return f"{value:g} {units[i]}"


def format_relative(moment: datetime, now: Optional[datetime] = None) -> str:
    """Render a naive-UTC timestamp as "Just now", "3 hours ago" or a short date."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    minutes = int((now - moment).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    if days < 7:
        return f"{days} day{'s' if days > 1 else ''} ago"
    return f"{moment:%b} {moment.day}, {moment.year}"


class AssetFormat(str, Enum):
    GLB = "GLB"
    GLTF = "GLTF"


class SortKey(str, Enum):
    created_at = "created_at"
    name = "name"
    views = "views"
    downloads = "downloads"
    size = "size"


class Environment(str, Enum):
    city = "city"
    sunset = "sunset"
    night = "night"
    warehouse = "warehouse"
    studio = "studio"
    park = "park"


# Assets

class AssetSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    public_url: str
    thumbnail_url: str
    format: AssetFormat
    size: int
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True
    views: int = 0
    downloads: int = 0
    upload_count: int = 0
    created_at: datetime

    @computed_field
    @property
    def formatted_size(self) -> str:
        return format_bytes(self.size)


class AssetDetail(AssetSummary):
    meta: Dict[str, JsonValue] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @field_validator("meta", mode="before")
    @classmethod
    def _none_meta(cls, v):
        return v or {}


class AssetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class CatalogSummary(BaseModel):
    asset_count: int = 0
    total_bytes: int = 0
    average_bytes: float = 0.0
    total_views: int = 0
    total_downloads: int = 0


class FormatBreakdown(BaseModel):
    count: int
    total_bytes: int
    average_views: float


class AssetListResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    total_pages: int
    current_page: int
    limit: int
    has_next: bool
    has_prev: bool
    summary: CatalogSummary
    data: List[AssetSummary]


class CatalogStats(BaseModel):
    overall: CatalogSummary
    by_format: Dict[str, FormatBreakdown]
    recent: List[AssetSummary]
    popular: List[AssetSummary]


# Viewer profiles

class Vector3(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Lights(BaseModel):
    ambient_intensity: float = Field(0.5, ge=0, le=1)
    directional_intensity: float = Field(1.0, ge=0, le=2)
    directional_position: Vector3 = Field(default_factory=lambda: Vector3(x=10, y=10, z=5))


class Annotation(BaseModel):
    position: Vector3
    title: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    color: str = Field("#ff4757", pattern=HEX_COLOR_PATTERN)
    visible: bool = True

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class RenderOptions(BaseModel):
    """Rendering fields shared by saved profiles, templates and exports."""

    background_color: str = Field("#f8fafc", pattern=HEX_COLOR_PATTERN)
    material_color: str = Field("#3b82f6", pattern=HEX_COLOR_PATTERN)
    wireframe_mode: bool = False
    show_grid: bool = True
    environment: Optional[Environment] = None
    camera_position: Vector3 = Field(default_factory=lambda: Vector3(x=5, y=5, z=5))
    camera_fov: float = Field(50, ge=10, le=120)
    lights: Lights = Field(default_factory=Lights)
    show_axes: bool = False
    show_stats: bool = False
    auto_rotate: bool = False
    auto_rotate_speed: float = Field(2.0, ge=0.1, le=10)
    annotations: List[Annotation] = Field(default_factory=list)
    custom_settings: Dict[str, JsonValue] = Field(default_factory=dict)


RENDER_FIELDS = tuple(RenderOptions.model_fields)


class ProfileCreate(RenderOptions):
    asset_id: Optional[str] = None
    is_template: bool = False
    template_name: Optional[str] = Field(None, min_length=1, max_length=100)

    @model_validator(mode="after")
    def _template_needs_name(self):
        if self.is_template and not self.template_name:
            raise ValueError("template_name is required when is_template is true")
        return self


# Only these may be cleared with an explicit null on update
NULLABLE_UPDATE_FIELDS = ("asset_id", "environment", "template_name")


class ProfileUpdate(BaseModel):
    """Partial update; only fields explicitly sent are applied."""

    asset_id: Optional[str] = None
    background_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    material_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    wireframe_mode: Optional[bool] = None
    show_grid: Optional[bool] = None
    environment: Optional[Environment] = None
    camera_position: Optional[Vector3] = None
    camera_fov: Optional[float] = Field(None, ge=10, le=120)
    lights: Optional[Lights] = None
    show_axes: Optional[bool] = None
    show_stats: Optional[bool] = None
    auto_rotate: Optional[bool] = None
    auto_rotate_speed: Optional[float] = Field(None, ge=0.1, le=10)
    annotations: Optional[List[Annotation]] = None
    custom_settings: Optional[Dict[str, JsonValue]] = None
    is_template: Optional[bool] = None
    template_name: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("*")
    @classmethod
    def _reject_null(cls, v, info):
        if v is None and info.field_name not in NULLABLE_UPDATE_FIELDS:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class ProfileAsset(BaseModel):
    """The referenced model, embedded when a single profile is read."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    public_url: str
    thumbnail_url: str
    format: AssetFormat


class ProfileResponse(RenderOptions):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: Optional[str] = None
    asset_id: Optional[str] = None
    asset: Optional[ProfileAsset] = None
    is_default: bool = False
    is_template: bool = False
    template_name: Optional[str] = None
    shareable_link: Optional[str] = None
    last_accessed: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def last_accessed_formatted(self) -> str:
        return format_relative(self.last_accessed)


class ProfileSnapshot(RenderOptions):
    asset_id: Optional[str] = None
    export_date: Optional[datetime] = None
    version: str = "1.0.0"


class TemplateSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    template_name: str
    background_color: str
    material_color: str
    environment: Optional[Environment] = None
    is_default: bool = False
    shareable_link: Optional[str] = None
    created_at: Optional[datetime] = None


class TemplateInstantiateRequest(BaseModel):
    asset_id: Optional[str] = None


class ProfileImportRequest(BaseModel):
    settings: Dict[str, JsonValue]
