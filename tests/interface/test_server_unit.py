import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from starlette.concurrency import run_in_threadpool

from credo.consts import VERSION
from credo.server import app, get_state


@pytest.fixture
def client(app_state):
    app.dependency_overrides[get_state] = lambda: app_state
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version(client):
    response = client.get("/version")
    assert response.json() == {"version": VERSION}


def test_due_cards(client):
    response = client.get("/due")
    assert response.status_code == 200
    keys = [c["credo"]["key"] for c in response.json()]
    assert keys == ["kekich_1", "kekich_2", "kekich_3", "paulism_1", "paulism_2"]


def test_grade_card(client, app_state):
    response = client.post("/cards/paulism_1/grade", json={"quality": 5})
    assert response.status_code == 200
    data = response.json()
    assert data["state"]["interval"] == 1
    assert data["credo"]["rules"] == ["Wake early", "Move"]
    assert app_state.stats.total_reviews == 1

    keys = [c["credo"]["key"] for c in client.get("/due").json()]
    assert "paulism_1" not in keys


@pytest.mark.parametrize("quality", [-1, 6])
def test_grade_rejects_out_of_range(client, app_state, quality):
    response = client.post("/cards/kekich_1/grade", json={"quality": quality})
    assert response.status_code == 422
    assert app_state.cards == {}


def test_grade_unknown_card(client):
    assert client.post("/cards/kekich_99/grade", json={"quality": 4}).status_code == 404


def test_get_card_does_not_persist(client, app_state):
    response = client.get("/cards/kekich_2")
    assert response.status_code == 200
    assert response.json()["state"]["repetitions"] == 0
    assert app_state.cards == {}


def test_stats(client):
    client.post("/cards/kekich_1/grade", json={"quality": 4})
    data = client.get("/stats").json()
    assert data["streak"] == 1
    assert data["total_reviews"] == 1
    assert data["due_count"] == 4
    assert data["catalog_size"] == 5


def test_library_filter(client):
    response = client.get("/library", params={"type": "paulism", "search": "morning"})
    assert [c["credo"]["key"] for c in response.json()] == ["paulism_1"]
    assert client.get("/library", params={"type": "stoic"}).status_code == 400


def test_goal_crud(client):
    response = client.post("/goals", json={"name": "Save more", "linked_credos": ["kekich_3"]})
    assert response.status_code == 201
    goal_id = response.json()["id"]

    response = client.put(f"/goals/{goal_id}", json={"target_date": "2026-12-31"})
    assert response.json()["targetDate"] == "2026-12-31"
    assert response.json()["linkedCredos"] == ["kekich_3"]

    assert [g["name"] for g in client.get("/goals").json()] == ["Save more"]
    assert client.delete(f"/goals/{goal_id}").status_code == 204
    assert client.get("/goals").json() == []
    assert client.delete(f"/goals/{goal_id}").status_code == 404


def test_goal_blank_name(client):
    assert client.post("/goals", json={"name": " "}).status_code == 422


def test_applications(client):
    response = client.post(
        "/applications", json={"credo_type": "kekich", "credo_id": 2, "note": "Went for a walk"}
    )
    assert response.status_code == 201
    assert response.json()["credoText"] == "Small daily habits beat rare heroic effort."
    assert client.get("/applications").json()[0]["note"] == "Went for a walk"


def test_export_import(client, app_state):
    client.post("/cards/kekich_1/grade", json={"quality": 5})
    response = client.get("/export")
    assert "attachment" in response.headers["content-disposition"]
    backup = response.json()

    backup["credo_stats"]["streak"] = 9
    response = client.post("/import", content=json.dumps(backup))
    assert response.json() == {"imported": 2}
    assert app_state.stats.streak == 9


def test_import_invalid(client, app_state):
    response = client.post("/import", content="{nope")
    assert response.status_code == 400
    assert "Invalid backup file" in response.json()["detail"]


def test_import_rejects_non_utf8_body(client, app_state):
    client.post("/goals", json={"name": "Run"})
    response = client.post("/import", content=b'{"credo_goals": [{"id": "g", "name": "R\xffn"}]}')
    assert response.status_code == 400
    assert "not UTF-8" in response.json()["detail"]
    assert [g.name for g in app_state.goals] == ["Run"]
    assert app_state.store.get("goals")[0]["name"] == "Run"


def test_import_runs_in_threadpool(client, app_state):
    with patch("credo.server.run_in_threadpool", wraps=run_in_threadpool) as spy:
        response = client.post("/import", content=json.dumps({"credo_stats": {"streak": 4}}))
    assert response.json() == {"imported": 1}
    spy.assert_called_once()
    assert app_state.stats.streak == 4
