"""媒体上传、排序、布局与起播时间的集成测试。"""

import asyncio

from fastapi.testclient import TestClient

from app.packages.portfolio.core.config import get_settings
from app.packages.portfolio.core.exceptions import AssetHostError


def _project(client: TestClient, name: str = "Shoot A") -> int:
    categories = client.get("/api/v1/folders/categories").json()["data"]
    editorial = next(item["id"] for item in categories if item["name"] == "Editorial")
    resp = client.post("/api/v1/folders/projects", json={"name": name, "parent_id": editorial})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


def _files(*names: str, size: int = 16):
    return [("files", (name, b"x" * size, "image/jpeg")) for name in names]


def test_upload_assigns_consecutive_order_and_default_layout(client: TestClient, asset_host):
    folder_id = _project(client)

    first = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("a.jpg", "b.jpg"))
    assert first.status_code == 200, first.text
    payload = first.json()["data"]
    assert payload["succeeded"] == 2
    assert payload["failed"] == 0
    assert [item["order_index"] for item in payload["items"]] == [0, 1]
    assert all(item["layout"] == get_settings().media_layout_cycle[0] for item in payload["items"])

    second = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("c.jpg"))
    assert second.json()["data"]["items"][-1]["order_index"] == 2

    # 远端文件名为 "<媒体 ID>-<原文件名>"
    media_id = payload["results"][0]["media"]["id"]
    assert asset_host.uploads[0][0] == f"{media_id}-a.jpg"

    listed = client.get(f"/api/v1/media/folders/{folder_id}").json()["data"]
    assert listed["folder_name"] == "Shoot A"
    assert [item["filename"] for item in listed["items"]] == ["a.jpg", "b.jpg", "c.jpg"]


def test_upload_batch_continues_after_single_failure(client: TestClient, asset_host):
    folder_id = _project(client)
    asset_host.fail_uploads["broken"] = AssetHostError("Asset publishing failed with status 500", 500)

    resp = client.post(
        f"/api/v1/media/folders/{folder_id}",
        files=_files("ok-1.jpg", "broken.jpg", "ok-2.jpg"),
    )
    assert resp.status_code == 200
    payload = resp.json()["data"]
    assert payload["succeeded"] == 2
    assert payload["failed"] == 1
    statuses = [(r["filename"], r["status"]) for r in payload["results"]]
    assert statuses == [("ok-1.jpg", "success"), ("broken.jpg", "failure"), ("ok-2.jpg", "success")]
    assert payload["results"][1]["code"] == 502
    # 失败的文件不占用排序位
    assert [item["order_index"] for item in payload["items"]] == [0, 1]


def test_oversized_file_is_rejected_without_network_call(client: TestClient, asset_host, monkeypatch):
    folder_id = _project(client)
    monkeypatch.setattr(get_settings(), "upload_max_size_mb", 0.001)

    resp = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("huge.jpg", size=4096))
    assert resp.status_code == 200
    result = resp.json()["data"]["results"][0]
    assert result["status"] == "failure"
    assert result["code"] == 413
    assert asset_host.uploads == []


def test_upload_to_category_or_missing_folder_is_rejected(client: TestClient):
    categories = client.get("/api/v1/folders/categories").json()["data"]
    assert client.post(f"/api/v1/media/folders/{categories[0]['id']}", files=_files("a.jpg")).status_code == 400
    assert client.post("/api/v1/media/folders/99999", files=_files("a.jpg")).status_code == 404


def test_unsupported_layout_is_rejected(client: TestClient):
    folder_id = _project(client)
    resp = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("a.jpg"), data={"layout": "diagonal"})
    assert resp.status_code == 400


def test_media_reorder_swaps_and_rejects_cross_folder(client: TestClient):
    folder_id = _project(client)
    items = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("a.jpg", "b.jpg", "c.jpg")).json()[
        "data"
    ]["items"]
    a, b, c = (item["id"] for item in items)

    resp = client.post("/api/v1/media/reorder", json={"dragged_id": c, "target_id": a})
    assert resp.status_code == 200
    assert [item["id"] for item in resp.json()["data"]["items"]] == [c, b, a]

    other_folder = _project(client, "Shoot B")
    other = client.post(f"/api/v1/media/folders/{other_folder}", files=_files("z.jpg")).json()["data"]["items"][0]
    cross = client.post("/api/v1/media/reorder", json={"dragged_id": a, "target_id": other["id"]})
    assert cross.status_code == 400

    missing = client.post("/api/v1/media/reorder", json={"dragged_id": a, "target_id": "nope"})
    assert missing.status_code == 404


def test_layout_cycle_returns_to_start(client: TestClient):
    folder_id = _project(client)
    media = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("a.jpg")).json()["data"]["items"][0]
    cycle = get_settings().media_layout_cycle

    seen = []
    for _ in range(len(cycle)):
        resp = client.post(f"/api/v1/media/{media['id']}/layout/cycle")
        assert resp.status_code == 200
        seen.append(resp.json()["data"]["layout"])

    assert seen == list(cycle[1:]) + [cycle[0]]
    assert client.post("/api/v1/media/unknown/layout/cycle").status_code == 404


def test_video_start_time_parsing(client: TestClient):
    folder_id = _project(client)
    media = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("clip.mp4")).json()["data"]["items"][0]

    ok = client.put(f"/api/v1/media/{media['id']}/video-start-time", json={"minutes": "01", "seconds": "30"})
    assert ok.status_code == 200
    assert ok.json()["data"]["video_start_time"] == 90

    bad = client.put(f"/api/v1/media/{media['id']}/video-start-time", json={"minutes": "abc", "seconds": "0"})
    assert bad.status_code == 400

    negative = client.put(f"/api/v1/media/{media['id']}/video-start-time", json={"minutes": 0, "seconds": -5})
    assert negative.status_code == 400

    listed = client.get(f"/api/v1/media/folders/{folder_id}").json()["data"]["items"][0]
    assert listed["video_start_time"] == 90


def test_delete_media_releases_remote_asset(client: TestClient, asset_host):
    folder_id = _project(client)
    items = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("a.jpg", "b.jpg")).json()["data"][
        "items"
    ]

    resp = client.delete(f"/api/v1/media/{items[0]['id']}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["remote_released"] is True
    assert asset_host.deleted == [items[0]["asset_id"]]
    assert [item["id"] for item in data["items"]] == [items[1]["id"]]

    asset_host.fail_deletes.add(items[1]["asset_id"])
    resp = client.delete(f"/api/v1/media/{items[1]['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["remote_released"] is False
    assert resp.json()["data"]["items"] == []

    assert client.delete(f"/api/v1/media/{items[1]['id']}").status_code == 404


def test_upload_after_deletes_appends_at_end(client: TestClient):
    folder_id = _project(client)
    a, b, c = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("a.jpg", "b.jpg", "c.jpg")).json()[
        "data"
    ]["items"]
    assert client.delete(f"/api/v1/media/{a['id']}").status_code == 200
    assert client.delete(f"/api/v1/media/{b['id']}").status_code == 200

    resp = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("d.jpg"))
    assert resp.status_code == 200
    items = resp.json()["data"]["items"]
    assert [(item["filename"], item["order_index"]) for item in items] == [("c.jpg", 2), ("d.jpg", 3)]


def test_uploads_run_outside_event_loop(client: TestClient, asset_host, monkeypatch):
    folder_id = _project(client)
    on_loop = []
    original_upload = asset_host.upload

    def recording_upload(data, filename, content_type=None):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            on_loop.append(False)
        else:
            on_loop.append(True)
        return original_upload(data, filename, content_type)

    monkeypatch.setattr(asset_host, "upload", recording_upload)

    assert client.post(f"/api/v1/media/folders/{folder_id}", files=_files("a.jpg")).status_code == 200
    hero = client.post(
        f"/api/v1/folders/{folder_id}/hero-image/upload",
        files={"file": ("cover.png", b"png-bytes", "image/png")},
    )
    assert hero.status_code == 200
    assert on_loop == [False, False]


def test_video_start_time_requires_both_parts(client: TestClient):
    folder_id = _project(client)
    media = client.post(f"/api/v1/media/folders/{folder_id}", files=_files("clip.mp4")).json()["data"]["items"][0]
    client.put(f"/api/v1/media/{media['id']}/video-start-time", json={"minutes": 1, "seconds": 5})

    missing_seconds = client.put(f"/api/v1/media/{media['id']}/video-start-time", json={"minutes": 2})
    assert missing_seconds.status_code == 422
    missing_minutes = client.put(f"/api/v1/media/{media['id']}/video-start-time", json={"seconds": 2})
    assert missing_minutes.status_code == 422

    listed = client.get(f"/api/v1/media/folders/{folder_id}").json()["data"]["items"][0]
    assert listed["video_start_time"] == 65
