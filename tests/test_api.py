from conftest import GLB_BYTES, GLB_MIME

SESSION = {"X-Session-Id": "session-api"}


def _upload(client, name="Old Red Chair", file_name="chair.glb", data=GLB_BYTES, mime=GLB_MIME, **form):
    if name is not None:
        form["name"] = name
    return client.post(
        "/api/v1/models/upload",
        files={"file": (file_name, data, mime)},
        data=form,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_upload_and_fetch_model(client, store):
    response = _upload(client, tags='["Furniture"]')
    assert response.status_code == 201
    body = response.json()
    assert body["format"] == "GLB"
    assert body["tags"] == ["old", "red", "chair", "furniture"]
    assert body["size"] == len(GLB_BYTES)
    assert body["formatted_size"] == "256 Bytes"
    assert "storage_key" not in body and "uploader_ip" not in body

    detail = client.get(f"/api/v1/models/{body['id']}")
    assert detail.status_code == 200
    assert detail.json()["views"] == 1
    assert detail.json()["meta"]["original_name"] == "chair.glb"
    assert client.get(f"/api/v1/models/{body['id']}").json()["views"] == 2


def test_upload_rejections(client, store):
    bad_ext = _upload(client, file_name="chair.obj")
    assert bad_ext.status_code == 400
    assert bad_ext.json()["kind"] == "unsupported_extension"

    bad_mime = _upload(client, mime="image/png")
    assert bad_mime.status_code == 415
    assert bad_mime.json()["kind"] == "unsupported_type"
    assert bad_mime.json()["success"] is False

    bad_tags = _upload(client, tags='["unterminated"')
    assert bad_tags.status_code == 400
    assert bad_tags.json()["kind"] == "validation_error"

    assert list(store.root.iterdir()) == []


def test_list_models_with_pagination_and_summary(client):
    for i in range(3):
        assert _upload(client, name=f"Crate {i}").status_code == 201
    assert _upload(client, name="Secret Crate", is_public="false").status_code == 201

    page = client.get("/api/v1/models/", params={"limit": 2, "sort": "-createdAt"}).json()

    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert page["count"] == 2
    assert page["has_next"] is True
    assert page["summary"]["asset_count"] == 4
    assert [m["name"] for m in page["data"]] == ["Crate 2", "Crate 1"]

    bad = client.get("/api/v1/models/", params={"sort": "uploaderIp"})
    assert bad.status_code == 400
    assert bad.json()["kind"] == "validation_error"


def test_download_counts_and_streams_bytes(client):
    model_id = _upload(client).json()["id"]

    response = client.get(f"/api/v1/models/{model_id}/download")

    assert response.status_code == 200
    assert response.content == GLB_BYTES
    assert "Old Red Chair.glb" in response.headers["content-disposition"]
    assert client.get("/api/v1/models/stats").json()["overall"]["total_downloads"] == 1


def test_download_with_missing_bytes(client, store):
    body = _upload(client).json()
    key = body["public_url"].rsplit("/", 1)[-1]
    store.delete(key)

    response = client.get(f"/api/v1/models/{body['id']}/download")

    assert response.status_code == 404
    assert response.json()["message"] == "Model file not found"


def test_update_and_delete_model(client, store):
    body = _upload(client).json()
    key = body["public_url"].rsplit("/", 1)[-1]

    updated = client.put(f"/api/v1/models/{body['id']}", json={"name": "Blue Stool", "is_public": False})
    assert updated.status_code == 200
    assert updated.json()["name"] == "Blue Stool"
    assert updated.json()["tags"] == ["old", "red", "chair"]
    assert updated.json()["is_public"] is False

    deleted = client.delete(f"/api/v1/models/{body['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["data"] == {"id": body["id"], "name": "Blue Stool"}
    assert not store.exists(key)

    missing = client.get(f"/api/v1/models/{body['id']}")
    assert missing.status_code == 404
    assert missing.json()["kind"] == "not_found"


def test_stats_endpoint(client):
    _upload(client, name="Old Red Chair")
    _upload(client, name="Blue Chair")

    stats = client.get("/api/v1/models/stats").json()

    assert stats["overall"]["asset_count"] == 2
    assert stats["by_format"]["GLB"]["count"] == 2
    assert [m["name"] for m in stats["recent"]] == ["Blue Chair", "Old Red Chair"]


def test_settings_session_flow(client):
    fallback = client.get("/api/v1/settings/latest", headers=SESSION)
    assert fallback.json()["is_default_fallback"] is True
    assert fallback.json()["data"]["is_default"] is True
    assert fallback.headers["X-Session-Id"] == "session-api"

    saved = client.post("/api/v1/settings/", json={"background_color": "#000000"}, headers=SESSION)
    assert saved.status_code == 201
    profile = saved.json()["data"]
    assert profile["session_id"] == "session-api"

    latest = client.get("/api/v1/settings/latest", headers=SESSION).json()
    assert latest["is_default_fallback"] is False
    assert latest["data"]["id"] == profile["id"]

    updated = client.put(f"/api/v1/settings/{profile['id']}", json={"show_grid": False}).json()
    assert updated["data"]["show_grid"] is False

    listing = client.get("/api/v1/settings/session/all", headers=SESSION).json()
    assert listing["count"] == 1

    assert client.delete(f"/api/v1/settings/{profile['id']}").status_code == 200
    assert client.get(f"/api/v1/settings/{profile['id']}").status_code == 404


def test_session_minted_when_absent(client):
    response = client.post("/api/v1/settings/", json={})

    minted = response.headers["X-Session-Id"]
    assert minted.startswith("session_")
    assert response.json()["data"]["session_id"] == minted


def test_invalid_color_rejected(client):
    response = client.post("/api/v1/settings/", json={"background_color": "red"}, headers=SESSION)

    assert response.status_code == 400
    body = response.json()
    assert body["kind"] == "validation_error"
    assert body["errors"][0]["field"] == "background_color"
    assert client.get("/api/v1/settings/session/all", headers=SESSION).json()["count"] == 0


def test_profile_referencing_missing_asset(client):
    response = client.post("/api/v1/settings/", json={"asset_id": "ghost"}, headers=SESSION)

    assert response.status_code == 404
    assert response.json()["kind"] == "asset_not_found"


def test_export_and_import(client):
    client.post("/api/v1/settings/", json={"material_color": "#ff0000", "camera_fov": 70}, headers=SESSION)

    exported = client.get("/api/v1/settings/export", headers=SESSION)
    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    snapshot = exported.json()
    assert snapshot["version"] == "1.0.0"

    imported = client.post(
        "/api/v1/settings/import", json={"settings": snapshot}, headers={"X-Session-Id": "other"}
    )
    assert imported.status_code == 201
    data = imported.json()["data"]
    assert data["session_id"] == "other"
    assert data["material_color"] == "#ff0000"
    assert data["camera_fov"] == 70

    empty = client.get("/api/v1/settings/export", headers={"X-Session-Id": "nobody"})
    assert empty.status_code == 404


def test_templates(client):
    client.post(
        "/api/v1/settings/",
        json={"is_template": True, "template_name": "Studio", "environment": "studio"},
        headers={"X-Session-Id": "curator"},
    )

    templates = client.get("/api/v1/settings/templates").json()
    assert [t["template_name"] for t in templates] == ["Default", "Studio"]

    created = client.post("/api/v1/settings/templates/studio", json={}, headers=SESSION)
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["environment"] == "studio"
    assert data["session_id"] == "session-api"
    assert data["shareable_link"] is None

    missing = client.post("/api/v1/settings/templates/Nope", headers=SESSION)
    assert missing.status_code == 404
    assert missing.json()["kind"] == "template_not_found"


def test_null_update_rejected_and_profile_stays_readable(client):
    profile = client.post("/api/v1/settings/", json={}, headers=SESSION).json()["data"]

    for body in ({"lights": None}, {"background_color": None}):
        response = client.put(f"/api/v1/settings/{profile['id']}", json=body)
        assert response.status_code == 400
        assert response.json()["kind"] == "validation_error"

    fetched = client.get(f"/api/v1/settings/{profile['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["lights"]["ambient_intensity"] == 0.5
    assert fetched.json()["data"]["last_accessed_formatted"] == "Just now"
    assert client.get("/api/v1/settings/latest", headers=SESSION).status_code == 200


def test_profile_reads_embed_referenced_model(client):
    model = _upload(client).json()
    profile = client.post("/api/v1/settings/", json={"asset_id": model["id"]}, headers=SESSION).json()["data"]
    assert profile["asset"] is None

    embedded = client.get(f"/api/v1/settings/{profile['id']}").json()["data"]["asset"]
    assert embedded == {
        "id": model["id"],
        "name": "Old Red Chair",
        "public_url": model["public_url"],
        "thumbnail_url": model["thumbnail_url"],
        "format": "GLB",
    }
    latest = client.get("/api/v1/settings/latest", headers=SESSION).json()["data"]
    assert latest["asset"]["id"] == model["id"]

    client.delete(f"/api/v1/models/{model['id']}")
    orphaned = client.get(f"/api/v1/settings/{profile['id']}").json()["data"]
    assert orphaned["asset_id"] == model["id"]
    assert orphaned["asset"] is None


def test_blank_name_upload_uses_file_stem(client):
    response = _upload(client, name="", file_name="lamp.glb")

    assert response.status_code == 201
    assert response.json()["name"] == "lamp"
