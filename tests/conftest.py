import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from modelhub.api.deps import get_content_store, get_stats_cache, get_thumbnail_provider
from modelhub.core.database import get_db, make_engine
from modelhub.core.errors import StorageReclamationFailure
from modelhub.main import app
from modelhub.models.orm import Base
from modelhub.services import AssetIndex, ContentStore, IngestionPipeline

GLB_MIME = "model/gltf-binary"
GLTF_MIME = "model/gltf+json"
ALLOWED_TYPES = [GLB_MIME, GLTF_MIME, "application/octet-stream"]
GLB_BYTES = b"glTF\x02\x00\x00\x00" + b"\x00" * 248
THUMBNAIL_URL = "https://thumbs.test/preview.png"


class FixedThumbnails:
    def generate(self, file_location):
        return THUMBNAIL_URL


class BrokenThumbnails:
    def generate(self, file_location):
        raise RuntimeError("renderer offline")


class StuckDeleteStore(ContentStore):
    def delete(self, storage_key):
        raise StorageReclamationFailure(f"Failed to remove {storage_key}: permission denied")


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'modelhub_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(tmp_path):
    return ContentStore(tmp_path / "uploads")


@pytest.fixture
def pipeline(db, store):
    return IngestionPipeline(
        AssetIndex(db),
        store,
        FixedThumbnails(),
        max_file_size=1024 * 1024,
        allowed_types=ALLOWED_TYPES,
    )


@pytest.fixture
def make_asset(pipeline):
    def _make(name=None, file_name="model.glb", data=GLB_BYTES, mime_type=GLB_MIME, **kwargs):
        return pipeline.ingest(data, file_name, mime_type, name=name, **kwargs)

    return _make


@pytest.fixture
def client(session_factory, store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_store] = lambda: store
    app.dependency_overrides[get_stats_cache] = lambda: None
    app.dependency_overrides[get_thumbnail_provider] = FixedThumbnails
    yield TestClient(app)
    app.dependency_overrides.clear()
