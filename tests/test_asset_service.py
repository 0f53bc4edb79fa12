import pytest

from modelhub.core.errors import NotFound
from modelhub.models.orm import Asset
from modelhub.services import AssetIndex, AssetService, IngestionPipeline

from conftest import ALLOWED_TYPES, GLB_BYTES, GLB_MIME, FixedThumbnails, StuckDeleteStore


@pytest.fixture
def stuck_store(tmp_path):
    return StuckDeleteStore(tmp_path / "stuck")


@pytest.fixture
def stuck_asset(db, stuck_store):
    pipeline = IngestionPipeline(
        AssetIndex(db), stuck_store, FixedThumbnails(), max_file_size=1024 * 1024, allowed_types=ALLOWED_TYPES
    )
    return pipeline.ingest(GLB_BYTES, "chair.glb", GLB_MIME, name="Old Red Chair")


def test_delete_removes_record_and_bytes(db, store, make_asset):
    asset = make_asset("Old Red Chair")
    key = asset.storage_key

    deleted = AssetService(db, store).delete_asset(asset.id)

    assert deleted.name == "Old Red Chair"
    assert db.query(Asset).count() == 0
    assert not store.exists(key)


def test_delete_survives_stuck_file(db, stuck_store, stuck_asset, caplog):
    asset_id, key = stuck_asset.id, stuck_asset.storage_key

    deleted = AssetService(db, stuck_store).delete_asset(asset_id)

    assert deleted.id == asset_id
    assert db.query(Asset).count() == 0
    assert stuck_store.exists(key)
    assert "kept its file" in caplog.text
    with pytest.raises(NotFound):
        AssetService(db, stuck_store).view_asset(asset_id)


def test_download_missing_bytes_does_not_count(db, store, make_asset):
    asset = make_asset("Old Red Chair")
    store.delete(asset.storage_key)

    with pytest.raises(NotFound):
        AssetService(db, store).download_asset(asset.id)

    db.refresh(asset)
    assert asset.downloads == 0
