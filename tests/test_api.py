import pytest
from httpx import ASGITransport, AsyncClient

from golfweights.api import create_app
from tests.synthetic import EVENT_ID, TOURNAMENT, write_inputs


@pytest.fixture
async def client(tmp_path, monkeypatch):
    monkeypatch.delenv("GOLFWEIGHTS_DB_PATH", raising=False)
    app = create_app(tmp_path / "api.sqlite")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        yield async_client


def _template_payload() -> dict:
    return {
        "event_id": "555",
        "description": "Custom weights",
        "group_weights": {"Putting": 0.6, "Scoring": 0.4},
        "metric_weights": {"Putting": {"SG Putting": 1.0}, "Scoring": {"SG T2G": 0.5, "Scoring Average": 0.5}},
    }


@pytest.mark.anyio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_builtin_templates_are_seeded(client):
    resp = await client.get("/templates")
    assert resp.status_code == 200
    names = {item["name"] for item in resp.json()}
    assert {"POWER", "TECHNICAL", "BALANCED"} <= names

    resp = await client.get("/templates/POWER")
    assert resp.status_code == 200
    assert resp.json()["metric_weights"]["Putting"] == {"SG Putting": 1.0}


@pytest.mark.anyio
async def test_template_crud(client):
    resp = await client.put("/templates/CUSTOM", json=_template_payload())
    assert resp.status_code == 200
    assert resp.json()["event_id"] == "555"

    resp = await client.get("/templates/CUSTOM")
    assert resp.json()["group_weights"] == {"Putting": 0.6, "Scoring": 0.4}

    resp = await client.delete("/templates/CUSTOM")
    assert resp.status_code == 204

    resp = await client.get("/templates/CUSTOM")
    assert resp.status_code == 404
    resp = await client.delete("/templates/CUSTOM")
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_put_template_requires_group_weights(client):
    payload = _template_payload()
    payload["group_weights"] = {}
    resp = await client.put("/templates/EMPTY", json=payload)
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_run_lifecycle(client, tmp_path):
    write_inputs(tmp_path / "data")
    resp = await client.post(
        "/runs",
        json={
            "event_id": EVENT_ID,
            "tournament": TOURNAMENT,
            "opt_seed": "3",
            "tests": 20,
            "data_dir": str(tmp_path / "data"),
            "output_dir": str(tmp_path / "output"),
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["mode"] == "supervised"
    assert body["recommendation"]

    resp = await client.get("/runs")
    assert [item["run_id"] for item in resp.json()] == [body["run_id"]]

    resp = await client.get(f"/runs/{body['run_id']}")
    assert resp.status_code == 200
    assert resp.json()["report"]["eventId"] == EVENT_ID


@pytest.mark.anyio
async def test_run_with_missing_inputs_is_bad_request(client, tmp_path):
    (tmp_path / "empty").mkdir()
    resp = await client.post(
        "/runs",
        json={"event_id": EVENT_ID, "data_dir": str(tmp_path / "empty"), "output_dir": str(tmp_path / "output")},
    )
    assert resp.status_code == 400
    assert "Configuration Sheet" in resp.json()["detail"]


@pytest.mark.anyio
async def test_unknown_run_is_not_found(client):
    resp = await client.get("/runs/does-not-exist")
    assert resp.status_code == 404
