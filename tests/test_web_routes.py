from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fractalmap.stores import TaskStore
from fractalmap.web import create_app


@pytest.fixture
def api(store: TaskStore) -> TestClient:
    return TestClient(create_app(store))


def _create(api: TestClient, title: str, parent_id: int | None = None, **extra) -> dict:
    resp = api.post("/api/nodes", json={"title": title, "parent_id": parent_id, **extra})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_and_list(api: TestClient) -> None:
    root = _create(api, "Root")
    child = _create(api, "Child", root["id"], priority=3)

    rows = api.get("/api/nodes").json()

    assert [row["id"] for row in rows] == [root["id"], child["id"]]
    assert rows[1]["parent_id"] == root["id"]
    assert rows[1]["priority"] == 3
    assert rows[1]["is_completed"] is False
    assert set(rows[0]) >= {"id", "title", "parent_id", "priority", "is_completed", "created_at"}


def test_default_priority_is_one(api: TestClient) -> None:
    assert _create(api, "Root")["priority"] == 1


def test_patch_updates_given_fields(api: TestClient) -> None:
    root = _create(api, "Root")

    resp = api.patch(f"/api/nodes/{root['id']}", json={"is_completed": True})

    assert resp.status_code == 200
    body = resp.json()
    assert body["is_completed"] is True
    assert body["title"] == "Root"

    renamed = api.patch(f"/api/nodes/{root['id']}", json={"title": "Life"}).json()
    assert renamed["title"] == "Life" and renamed["is_completed"] is True


def test_delete_cascades(api: TestClient) -> None:
    root = _create(api, "Root")
    a = _create(api, "A", root["id"])
    a1 = _create(api, "A1", a["id"])
    b = _create(api, "B", root["id"])

    resp = api.delete(f"/api/nodes/{a['id']}")

    assert resp.status_code == 200
    assert resp.json()["deleted"] == [a["id"], a1["id"]]
    ids = [row["id"] for row in api.get("/api/nodes").json()]
    assert ids == [root["id"], b["id"]]


def test_leaves_and_choose(api: TestClient) -> None:
    root = _create(api, "Root")
    low = _create(api, "Low", root["id"], priority=1)
    high = _create(api, "High", root["id"], priority=9)

    leaves = api.get("/api/leaves").json()
    assert [row["id"] for row in leaves] == [high["id"], low["id"]]

    chosen = api.post("/api/choose").json()
    assert chosen["id"] == high["id"]
    assert chosen["score"] >= 90


def test_choose_returns_null_without_actionable_tasks(api: TestClient) -> None:
    resp = api.post("/api/choose")

    assert resp.status_code == 200
    assert resp.json() is None


def test_status_counts(api: TestClient) -> None:
    root = _create(api, "Root")
    _create(api, "Leaf", root["id"])

    body = api.get("/api/status").json()

    assert body["total"] == 2
    assert body["actionable"] == 1
    assert "version" in body


def test_unknown_task_is_404(api: TestClient) -> None:
    assert api.patch("/api/nodes/999", json={"title": "x"}).status_code == 404
    assert api.delete("/api/nodes/999").status_code == 404
    resp = api.post("/api/nodes", json={"title": "orphan", "parent_id": 999})
    assert resp.status_code == 404
    assert "unknown task" in resp.json()["detail"]


def test_bad_input(api: TestClient) -> None:
    assert api.post("/api/nodes", json={"title": "  "}).status_code == 400
    assert api.post("/api/nodes", json={"title": "x", "priority": -2}).status_code == 422
    assert api.post("/api/nodes", json={}).status_code == 422
