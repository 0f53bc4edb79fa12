import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, JSON, Float, Index, text
from sqlalchemy.orm import relationship
from modelhub.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Asset(Base):
    __tablename__ = "assets"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    storage_key = Column(String, nullable=False, unique=True)
    public_url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=False)
    format = Column(String, nullable=False, index=True)  # GLB, GLTF
    size = Column(Integer, nullable=False)
    uploader_ip = Column(String, default="127.0.0.1")
    meta = Column(JSON, nullable=True)
    is_public = Column(Boolean, default=True, nullable=False, index=True)
    views = Column(Integer, default=0, nullable=False, index=True)
    downloads = Column(Integer, default=0, nullable=False)
    upload_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tag_rows = relationship(
        "AssetTag",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="AssetTag.position",
        lazy="selectin",
    )

    @property
    def tags(self):
        return [row.tag for row in self.tag_rows]

    @tags.setter
    def tags(self, values):
        self.tag_rows = [AssetTag(tag=tag, position=i) for i, tag in enumerate(values)]


class AssetTag(Base):
    __tablename__ = "asset_tags"

    asset_id = Column(String, ForeignKey("assets.id", ondelete="CASCADE"), primary_key=True)
    tag = Column(String, primary_key=True, index=True)
    position = Column(Integer, default=0, nullable=False)

    asset = relationship("Asset", back_populates="tag_rows")


class ViewerProfile(Base):
    __tablename__ = "viewer_profiles"
    __table_args__ = (
        # at most one row may carry is_default
        Index(
            "uq_viewer_profiles_single_default",
            "is_default",
            unique=True,
            sqlite_where=text("is_default = 1"),
            postgresql_where=text("is_default"),
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String, nullable=True, index=True)
    asset_id = Column(String, nullable=True, index=True)  # not a FK: deleting an asset never cascades
    background_color = Column(String, default="#f8fafc", nullable=False)
    material_color = Column(String, default="#3b82f6", nullable=False)
    wireframe_mode = Column(Boolean, default=False, nullable=False)
    show_grid = Column(Boolean, default=True, nullable=False)
    environment = Column(String, nullable=True)
    camera_position = Column(JSON, nullable=False)
    camera_fov = Column(Float, default=50, nullable=False)
    lights = Column(JSON, nullable=False)
    show_axes = Column(Boolean, default=False, nullable=False)
    show_stats = Column(Boolean, default=False, nullable=False)
    auto_rotate = Column(Boolean, default=False, nullable=False)
    auto_rotate_speed = Column(Float, default=2, nullable=False)
    annotations = Column(JSON, nullable=False, default=list)
    custom_settings = Column(JSON, nullable=False, default=dict)
    is_default = Column(Boolean, default=False, nullable=False)
    is_template = Column(Boolean, default=False, nullable=False, index=True)
    template_name = Column(String, nullable=True)
    shareable_link = Column(String, nullable=True)
    last_accessed = Column(DateTime, default=utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
