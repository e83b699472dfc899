"""分类与项目管理的集成测试。"""

import pytest
from fastapi.testclient import TestClient

from app.packages.portfolio.core.config import get_settings
from app.packages.portfolio.core.exceptions import AppException
from app.packages.portfolio.crud.folder import folder_crud
from app.packages.portfolio.crud.media import media_crud
from app.packages.portfolio.db.init_db import init_db
from app.packages.portfolio.services.folder_service import folder_service


def _category_id(client: TestClient, name: str) -> int:
    resp = client.get("/api/v1/folders/categories")
    assert resp.status_code == 200
    for item in resp.json()["data"]:
        if item["name"] == name:
            return item["id"]
    raise AssertionError(f"category {name} not found")


def _create_project(client: TestClient, name: str, parent_id: int) -> dict:
    resp = client.post("/api/v1/folders/projects", json={"name": name, "parent_id": parent_id})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _upload(client: TestClient, folder_id: int, *names: str) -> dict:
    files = [("files", (name, b"binary-" + name.encode(), "image/jpeg")) for name in names]
    resp = client.post(f"/api/v1/media/folders/{folder_id}", files=files)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def test_protected_categories_are_seeded(client: TestClient):
    resp = client.get("/api/v1/folders/categories")
    assert resp.status_code == 200
    data = resp.json()["data"]
    names = [item["name"] for item in data]
    assert set(get_settings().protected_categories) <= set(names)
    assert names == sorted(names)
    assert all(item["is_protected"] for item in data)


def test_seeding_is_idempotent_and_flags_existing_categories(db_session_fixture):
    db = db_session_fixture
    editorial = folder_crud.get_category_by_name(db, "Editorial")
    editorial.is_protected = False
    db.commit()
    before = len(folder_crud.list_categories(db))

    init_db()

    db.expire_all()
    assert len(folder_crud.list_categories(db)) == before
    assert folder_crud.get_category_by_name(db, "Editorial").is_protected is True


def test_create_category_rejects_duplicate_slug(db_session_fixture):
    folder_service.create_category(db_session_fixture, name="Archive")
    with pytest.raises(AppException) as exc_info:
        folder_service.create_category(db_session_fixture, name="  archive ")
    assert exc_info.value.status_code == 409


def test_create_project_derives_slug_and_appends_ordering(client: TestClient):
    editorial = _category_id(client, "Editorial")

    first = _create_project(client, "  Summer Shoot 2024  ", editorial)
    assert first["name"] == "Summer Shoot 2024"
    assert first["slug"] == "summer-shoot-2024"
    assert first["parent_id"] == editorial
    assert first["is_active"] is True
    assert first["is_category"] is False
    assert first["ordering"] == 0

    second = _create_project(client, "Café Noir", editorial)
    assert second["slug"] == "caf-noir"
    assert second["ordering"] == 1


def test_duplicate_slug_in_same_category_is_rejected(client: TestClient, db_session_fixture):
    editorial = _category_id(client, "Editorial")
    beauty = _category_id(client, "Beauty")
    _create_project(client, "Shoot A", editorial)

    dup = client.post("/api/v1/folders/projects", json={"name": "shoot   a", "parent_id": editorial})
    assert dup.status_code == 409
    assert dup.json()["code"] == 409

    # 同名项目允许出现在其他分类下
    _create_project(client, "Shoot A", beauty)

    projects = folder_crud.list_by_parent(db_session_fixture, editorial)
    assert [p.name for p in projects] == ["Shoot A"]


def test_create_project_requires_existing_category(client: TestClient):
    resp = client.post("/api/v1/folders/projects", json={"name": "Orphan", "parent_id": 99999})
    assert resp.status_code == 404

    blank = client.post("/api/v1/folders/projects", json={"name": "   ", "parent_id": 1})
    assert blank.status_code == 422

    symbols = client.post(
        "/api/v1/folders/projects",
        json={"name": "!!!", "parent_id": _category_id(client, "Editorial")},
    )
    assert symbols.status_code == 400


def test_protected_category_cannot_be_renamed_or_deleted(client: TestClient, asset_host):
    editorial = _category_id(client, "Editorial")
    project = _create_project(client, "Shoot A", editorial)

    rename = client.patch(f"/api/v1/folders/{editorial}/name", json={"name": "Editorials"})
    assert rename.status_code == 403

    delete = client.delete(f"/api/v1/folders/{editorial}")
    assert delete.status_code == 403

    # 拒绝发生在任何副作用之前
    still_there = client.get(f"/api/v1/folders/{project['id']}")
    assert still_there.status_code == 200
    assert asset_host.deleted == []


def test_rename_project_updates_slug(client: TestClient, monkeypatch):
    editorial = _category_id(client, "Editorial")
    project = _create_project(client, "Shoot A", editorial)
    _create_project(client, "Shoot B", editorial)

    resp = client.patch(f"/api/v1/folders/{project['id']}/name", json={"name": "Spring Lookbook"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Spring Lookbook"
    assert data["slug"] == "spring-lookbook"

    monkeypatch.setattr(get_settings(), "folder_rename_unique_slug", True)
    clash = client.patch(f"/api/v1/folders/{project['id']}/name", json={"name": "Shoot B"})
    assert clash.status_code == 409


def test_rename_to_sibling_name_is_allowed_by_default(client: TestClient):
    editorial = _category_id(client, "Editorial")
    first = _create_project(client, "Shoot A", editorial)
    second = _create_project(client, "Shoot B", editorial)
    assert get_settings().folder_rename_unique_slug is False

    resp = client.patch(f"/api/v1/folders/{first['id']}/name", json={"name": "Shoot B"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["slug"] == second["slug"] == "shoot-b"

    projects = client.get(f"/api/v1/folders/categories/{editorial}/projects").json()["data"]
    assert [item["name"] for item in projects] == ["Shoot B", "Shoot B"]


def test_active_toggle_is_idempotent_and_projects_only(client: TestClient):
    editorial = _category_id(client, "Editorial")
    project = _create_project(client, "Shoot A", editorial)

    off = client.patch(f"/api/v1/folders/{project['id']}/active", json={"is_active": False})
    assert off.status_code == 200
    assert off.json()["data"]["is_active"] is False

    again = client.patch(f"/api/v1/folders/{project['id']}/active", json={"is_active": False})
    assert again.status_code == 200
    assert again.json()["data"]["is_active"] is False

    category = client.patch(f"/api/v1/folders/{editorial}/active", json={"is_active": False})
    assert category.status_code == 400


def test_hero_image_set_clear_and_upload(client: TestClient, asset_host):
    editorial = _category_id(client, "Editorial")
    project = _create_project(client, "Shoot A", editorial)

    set_resp = client.patch(
        f"/api/v1/folders/{project['id']}/hero-image",
        json={"url": "https://cdn.example.test/hero.jpg"},
    )
    assert set_resp.json()["data"]["hero_image_url"] == "https://cdn.example.test/hero.jpg"

    clear_resp = client.patch(f"/api/v1/folders/{project['id']}/hero-image", json={"url": ""})
    assert clear_resp.json()["data"]["hero_image_url"] is None

    upload_resp = client.post(
        f"/api/v1/folders/{project['id']}/hero-image/upload",
        files={"file": ("cover.PNG", b"png-bytes", "image/png")},
    )
    assert upload_resp.status_code == 200, upload_resp.text
    hero_url = upload_resp.json()["data"]["hero_image_url"]
    assert hero_url.startswith("https://assets.example.test/")
    uploaded_name = asset_host.uploads[-1][0]
    assert uploaded_name.startswith("hero-image-")
    assert uploaded_name.endswith(".png")


def test_related_projects_validation_and_partial_update(client: TestClient):
    editorial = _category_id(client, "Editorial")
    a = _create_project(client, "Shoot A", editorial)
    b = _create_project(client, "Shoot B", editorial)
    c = _create_project(client, "Shoot C", editorial)

    self_ref = client.patch(f"/api/v1/folders/{a['id']}/related", json={"related_project_1_id": a["id"]})
    assert self_ref.status_code == 400

    same = client.patch(
        f"/api/v1/folders/{a['id']}/related",
        json={"related_project_1_id": b["id"], "related_project_2_id": b["id"]},
    )
    assert same.status_code == 400

    missing = client.patch(f"/api/v1/folders/{a['id']}/related", json={"related_project_1_id": 99999})
    assert missing.status_code == 400

    to_category = client.patch(f"/api/v1/folders/{a['id']}/related", json={"related_project_1_id": editorial})
    assert to_category.status_code == 400

    ok = client.patch(
        f"/api/v1/folders/{a['id']}/related",
        json={"related_project_1_id": b["id"], "related_project_2_id": c["id"]},
    )
    assert ok.status_code == 200
    data = ok.json()["data"]
    assert data["related_project_1"]["id"] == b["id"]
    assert data["related_project_2"]["id"] == c["id"]

    # 只传一个槽位时另一个保持不变
    partial = client.patch(f"/api/v1/folders/{a['id']}/related", json={"related_project_1_id": None})
    assert partial.status_code == 200
    data = partial.json()["data"]
    assert data["related_project_1_id"] is None
    assert data["related_project_2_id"] == c["id"]


def test_cascade_delete_removes_media_and_clears_inbound_links(
    client: TestClient, asset_host, db_session_fixture
):
    editorial = _category_id(client, "Editorial")
    target = _create_project(client, "Shoot A", editorial)
    other = _create_project(client, "Shoot B", editorial)
    uploaded = _upload(client, target["id"], "one.jpg", "two.jpg", "three.jpg")
    asset_ids = [r["media"]["asset_id"] for r in uploaded["results"]]

    link = client.patch(f"/api/v1/folders/{other['id']}/related", json={"related_project_2_id": target["id"]})
    assert link.status_code == 200

    # 一个远端资源删除失败不应阻止数据库删除
    asset_host.fail_deletes.add(asset_ids[1])

    resp = client.delete(f"/api/v1/folders/{target['id']}")
    assert resp.status_code == 200, resp.text
    summary = resp.json()["data"]
    assert summary["deleted_folders"] == 1
    assert summary["deleted_media"] == 3
    assert summary["remote_failures"] == [asset_ids[1]]
    assert sorted(asset_host.deleted) == sorted([asset_ids[0], asset_ids[2]])

    assert client.get(f"/api/v1/folders/{target['id']}").status_code == 404
    assert media_crud.count_by_folder(db_session_fixture, target["id"]) == 0

    related = client.get(f"/api/v1/folders/{other['id']}/related").json()["data"]
    assert related["related_project_2_id"] is None
    assert related["related_project_2"] is None


def test_unprotected_category_delete_cascades_to_projects(client: TestClient, db_session_fixture):
    category = folder_service.create_category(db_session_fixture, name="Archive")
    project = _create_project(client, "Old Work", category.id)
    _upload(client, project["id"], "old.jpg")

    resp = client.delete(f"/api/v1/folders/{category.id}")
    assert resp.status_code == 200
    summary = resp.json()["data"]
    assert summary["deleted_folders"] == 2
    assert summary["deleted_media"] == 1

    db_session_fixture.expire_all()
    assert folder_crud.get(db_session_fixture, project["id"]) is None


def test_tree_grouped_and_first_image_views(client: TestClient):
    editorial = _category_id(client, "Editorial")
    a = _create_project(client, "Shoot A", editorial)
    b = _create_project(client, "Shoot B", editorial)

    files = [
        ("files", ("clip.mp4", b"video", "video/mp4")),
        ("files", ("still.jpg", b"image", "image/jpeg")),
    ]
    assert client.post(f"/api/v1/media/folders/{a['id']}", files=files).status_code == 200

    tree = client.get("/api/v1/folders/tree").json()["data"]
    node = next(item for item in tree if item["id"] == editorial)
    assert [p["name"] for p in node["projects"]] == ["Shoot A", "Shoot B"]
    assert node["projects"][0]["media_count"] == 2
    assert node["projects"][1]["media_count"] == 0
    assert node["total_media_count"] == 2

    grouped = client.get("/api/v1/folders/grouped").json()["data"]
    group = next(item for item in grouped if item["parent_id"] == editorial)
    assert group["parent_name"] == "Editorial"
    assert [p["id"] for p in group["projects"]] == [a["id"], b["id"]]

    selection = client.get("/api/v1/folders/projects").json()["data"]
    assert {a["id"], b["id"]} <= {p["id"] for p in selection}

    thumbs = client.get(f"/api/v1/folders/categories/{editorial}/projects/first-image").json()["data"]
    by_id = {item["id"]: item for item in thumbs}
    assert by_id[a["id"]]["first_image_url"].endswith("still.jpg")
    assert by_id[b["id"]]["first_image_url"] is None


def test_project_reorder_swaps_positions(client: TestClient):
    editorial = _category_id(client, "Editorial")
    a = _create_project(client, "Shoot A", editorial)
    b = _create_project(client, "Shoot B", editorial)
    c = _create_project(client, "Shoot C", editorial)

    resp = client.post("/api/v1/folders/reorder", json={"dragged_id": a["id"], "target_id": c["id"]})
    assert resp.status_code == 200
    items = resp.json()["data"]["items"]
    assert [item["id"] for item in items] == [c["id"], b["id"], a["id"]]

    listed = client.get(f"/api/v1/folders/categories/{editorial}/projects").json()["data"]
    assert [item["id"] for item in listed] == [c["id"], b["id"], a["id"]]

    beauty = _category_id(client, "Beauty")
    d = _create_project(client, "Shoot D", beauty)
    cross = client.post("/api/v1/folders/reorder", json={"dragged_id": a["id"], "target_id": d["id"]})
    assert cross.status_code == 400


def test_editorial_scenario(client: TestClient, asset_host):
    """新建两个项目、上传媒体、交换顺序、删除其中一个项目的完整流程。"""
    editorial = _category_id(client, "Editorial")
    shoot_a = _create_project(client, "Shoot A", editorial)
    shoot_b = _create_project(client, "Shoot B", editorial)

    _upload(client, shoot_a["id"], "a1.jpg", "a2.jpg")
    _upload(client, shoot_b["id"], "b1.jpg")

    client.post("/api/v1/folders/reorder", json={"dragged_id": shoot_b["id"], "target_id": shoot_a["id"]})
    tree = client.get("/api/v1/folders/tree").json()["data"]
    node = next(item for item in tree if item["id"] == editorial)
    assert [p["name"] for p in node["projects"]] == ["Shoot B", "Shoot A"]
    assert node["total_media_count"] == 3

    assert client.delete(f"/api/v1/folders/{shoot_a['id']}").status_code == 200
    assert len(asset_host.deleted) == 2

    tree = client.get("/api/v1/folders/tree").json()["data"]
    node = next(item for item in tree if item["id"] == editorial)
    assert [p["name"] for p in node["projects"]] == ["Shoot B"]
    assert node["total_media_count"] == 1
