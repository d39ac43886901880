"""
HTTP tests for the FastAPI surface, with the Gemini collaborators
replaced by in-memory fakes through dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeEditService, make_oversized_png, make_png, open_png

from backend.alphapunch.exceptions import EditServiceError
from backend.alphapunch.jobs.orchestrator import GenerationOrchestrator
from backend.alphapunch.main import app, get_orchestrator
from backend.alphapunch.presets import PRESETS


@pytest.fixture
def edit():
    return FakeEditService()


@pytest.fixture
def orch(edit):
    return GenerationOrchestrator(edit)


@pytest.fixture
def client(orch):
    app.dependency_overrides[get_orchestrator] = lambda: orch
    with TestClient(app) as test_client:
        yield test_client
        test_client.portal.call(orch.aclose)
    app.dependency_overrides.clear()


def _upload(client, data=None, content_type="image/png"):
    data = data if data is not None else make_png(16, 8)
    return client.post("/api/v1/source", files={"file": ("room.png", data, content_type)})


def test_health(client):
    r = client.get("/health")

    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_presets(client):
    r = client.get("/api/v1/presets")

    assert [p["id"] for p in r.json()] == [p.id for p in PRESETS]


def test_initial_state(client):
    body = client.get("/api/v1/state").json()

    assert body["status"] == "IDLE"
    assert body["source_image"] is None
    assert body["prompt"] == PRESETS[0].text
    assert body["high_quality"] is False


def test_generate_without_source(client, edit):
    r = client.post("/api/v1/generate")

    assert r.status_code == 400
    assert edit.calls == []


def test_upload_source(client):
    r = _upload(client)

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "IDLE"
    assert body["target_dimensions"] == {"width": 16, "height": 8}
    assert body["source_image"].startswith("data:image/png;base64,")


def test_upload_garbage(client, orch):
    r = _upload(client, b"not an image")

    assert r.status_code == 400
    assert orch.state.source_image is None


def test_upload_oversized_image(client, orch):
    r = _upload(client, make_oversized_png())

    assert r.status_code == 400
    assert orch.state.source_image is None


def test_generate_success(client):
    _upload(client)

    r = client.post("/api/v1/generate")

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "SUCCESS"
    assert body["error"] is None
    assert body["generated_image"].startswith("data:image/png;base64,")


def test_generate_failure_is_reported_in_state(client, edit):
    edit.error = EditServiceError("Quota exceeded")
    _upload(client)

    body = client.post("/api/v1/generate").json()

    assert body["status"] == "ERROR"
    assert body["error"] == "Quota exceeded"
    assert client.get("/api/v1/history").json()["items"] == []


def test_download_result(client):
    assert client.get("/api/v1/result.png").status_code == 404

    _upload(client)
    client.post("/api/v1/generate")
    r = client.get("/api/v1/result.png")

    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert "alphapunch-" in r.headers["content-disposition"]
    assert open_png(r.content).size == (16, 8)


def test_history_list_and_select(client):
    _upload(client)
    client.post("/api/v1/generate")
    _upload(client, make_png(4, 4))

    history = client.get("/api/v1/history").json()
    assert history["capacity"] == 10
    assert len(history["items"]) == 1
    entry_id = history["items"][0]["id"]

    r = client.post(f"/api/v1/history/{entry_id}/select")

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "SUCCESS"
    assert body["target_dimensions"] == {"width": 16, "height": 8}


def test_select_unknown_history(client):
    r = client.post("/api/v1/history/missing/select")

    assert r.status_code == 404


def test_settings(client, edit):
    r = client.put("/api/v1/settings", data={"preset_id": "remove-bg", "high_quality": "true"})

    assert r.status_code == 200
    assert r.json()["prompt"] == PRESETS[1].text
    assert r.json()["high_quality"] is True

    _upload(client)
    client.post("/api/v1/generate")
    assert edit.calls[0][2:] == (PRESETS[1].text, True)


def test_settings_unknown_preset(client):
    r = client.put("/api/v1/settings", data={"preset_id": "nope"})

    assert r.status_code == 404


def test_settings_empty_prompt(client):
    r = client.put("/api/v1/settings", data={"prompt": "   "})

    assert r.status_code == 400


def test_generate_async_and_conflict(client, orch, edit):
    edit.hold = True
    _upload(client)

    r = client.post("/api/v1/generate_async")
    assert r.status_code == 200
    assert r.json()["status"] == "PROCESSING"

    assert client.post("/api/v1/generate").status_code == 409

    async def finish():
        edit.release()
        await orch.drain()

    client.portal.call(finish)

    assert client.get("/api/v1/state").json()["status"] == "SUCCESS"


def test_metrics(client):
    _upload(client)
    client.post("/api/v1/generate")

    metrics = client.get("/metrics").json()

    assert metrics["generations_started"] == 1
    assert metrics["generations_succeeded"] == 1
