import threading
import time

import pytest
from fastapi.testclient import TestClient

from mhp.main import create_app
from mhp.models.domain.insights_domain import INSIGHT_SECTIONS


def _body(days_builder, **overrides):
    body = {
        "profileId": "p1",
        "profileName": "Pat",
        "dayKey": "2024-01-10",
        "timeZone": "America/New_York",
        "days": days_builder("2024-01-10", 14, sleep_hours=7.2, rhr_bpm=58, steps=8000),
    }
    body.update(overrides)
    return body


def _poll_until_terminal(client, job_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        response = client.get("/insights", params={"jobId": job_id})
        if response.status_code != 202:
            return response
        time.sleep(0.02)
    raise AssertionError("job never left pending")


@pytest.fixture
def app(make_settings, fake_llm):
    return create_app(make_settings(), llm_service=fake_llm)


def test_end_to_end_job_lifecycle(app, fake_llm, days_builder):

    fake_llm.gate = threading.Event()

    with TestClient(app) as client:
        start = client.post("/insights", json=_body(days_builder))

        assert start.status_code == 202
        data = start.json()
        assert data["ok"] is True
        assert data["status"] == "pending"
        job_id = data["jobId"]

        pending = client.get("/insights", params={"jobId": job_id})
        assert pending.status_code == 202
        assert pending.json() == {"ok": True, "jobId": job_id, "status": "pending"}

        fake_llm.gate.set()
        done = _poll_until_terminal(client, job_id)

    assert done.status_code == 200
    payload = done.json()
    assert payload["status"] == "done"
    assert payload["dayKey"] == "2024-01-10"
    assert payload["model"] == "test-model"
    assert payload["analysisVersion"] == 1
    assert set(payload["insights"]) == set(INSIGHT_SECTIONS)
    assert fake_llm.calls[0]["time_zone"] == "America/New_York"


@pytest.mark.parametrize(
    "overrides",
    [
        {"profileId": ""},
        {"profileId": "   "},
        {"dayKey": "2024-13-45"},
        {"dayKey": "Jan 10"},
        {"days": []},
        {"days": "not-a-list"},
        {"days": [{"sleep_hours": 7}]},
        {"days": [{"dayKey": "2024-01-10", "sleep_hours": True}]},
    ],
)
def test_invalid_body_rejected_without_job(app, days_builder, overrides):
    client = TestClient(app)

    response = client.post("/insights", json=_body(days_builder, **overrides))

    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert len(app.state.job_store) == 0


def test_missing_required_field_rejected(app, days_builder):
    body = _body(days_builder)
    del body["profileId"]

    response = TestClient(app).post("/insights", json=body)

    assert response.status_code == 400
    assert "profileId" in response.json()["error"]


def test_non_json_body_rejected(app):
    response = TestClient(app).post(
        "/insights", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_unconfigured_api_key_rejected(make_settings, fake_llm, days_builder):
    fake_llm.configured = False
    app = create_app(make_settings(OPENAI_API_KEY=None), llm_service=fake_llm)

    response = TestClient(app).post("/insights", json=_body(days_builder))

    assert response.status_code == 400
    assert "OPENAI_API_KEY" in response.json()["error"]
    assert len(app.state.job_store) == 0


def test_poll_requires_job_id(app):
    response = TestClient(app).get("/insights")

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "jobId is required"}


def test_poll_unknown_job_is_404(app):
    response = TestClient(app).get("/insights", params={"jobId": "nope"})

    assert response.status_code == 404
    assert response.json()["ok"] is False


def test_expired_job_is_404(app, days_builder):
    with TestClient(app) as client:
        job_id = client.post("/insights", json=_body(days_builder)).json()["jobId"]
        _poll_until_terminal(client, job_id)

        store = app.state.job_store
        store._clock = lambda: time.time() + store.ttl_seconds + 1

        response = client.get("/insights", params={"jobId": job_id})

    assert response.status_code == 404


def test_failed_job_includes_raw_outside_production(app, fake_llm, days_builder):
    fake_llm.response = "I cannot help with that."

    with TestClient(app) as client:
        job_id = client.post("/insights", json=_body(days_builder)).json()["jobId"]
        response = _poll_until_terminal(client, job_id)

    assert response.status_code == 500
    assert response.json() == {
        "ok": False,
        "error": "AI returned an invalid insights payload",
        "raw": "I cannot help with that.",
    }


def test_failed_job_hides_raw_in_production(make_settings, fake_llm, days_builder):
    fake_llm.response = '{"overall": {"title": "x", "body": ""}}'
    app = create_app(
        make_settings(environment="production", MHP_PROXY_SECRET="s3cret"), llm_service=fake_llm
    )
    headers = {"x-mhp-proxy-secret": "s3cret"}

    with TestClient(app, headers=headers) as client:
        job_id = client.post("/insights", json=_body(days_builder)).json()["jobId"]
        response = _poll_until_terminal(client, job_id)

    assert response.status_code == 500
    assert "raw" not in response.json()


def test_boolean_metric_rejected(app, days_builder, fake_llm):
    days = days_builder("2024-01-10", 3, sleep_hours=7.5)
    days[-1]["rhr_bpm"] = False

    response = TestClient(app).post("/insights", json=_body(days_builder, days=days))

    assert response.status_code == 400
    assert "days.2.rhr_bpm" in response.json()["error"]
    assert fake_llm.calls == []
