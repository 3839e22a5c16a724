from fastapi.testclient import TestClient

from mhp.main import create_app


def _body(days_builder):
    return {"profileId": "p1", "dayKey": "2024-01-10", "days": days_builder("2024-01-10", 3)}


def test_valid_secret_accepted(make_settings, fake_llm, days_builder):
    app = create_app(make_settings(MHP_PROXY_SECRET="test-secret"), llm_service=fake_llm)

    with TestClient(app) as client:
        response = client.post(
            "/insights", json=_body(days_builder), headers={"x-mhp-proxy-secret": "test-secret"}
        )

    assert response.status_code == 202


def test_missing_or_wrong_secret_rejected(make_settings, fake_llm, days_builder):
    app = create_app(make_settings(MHP_PROXY_SECRET="test-secret"), llm_service=fake_llm)
    client = TestClient(app)

    missing = client.post("/insights", json=_body(days_builder))
    wrong = client.get("/insights", params={"jobId": "x"}, headers={"x-mhp-proxy-secret": "bad"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert missing.json() == {"ok": False, "error": "Unauthorized"}
    assert len(app.state.job_store) == 0


def test_production_without_secret_fails_closed(make_settings, fake_llm, days_builder):
    app = create_app(make_settings(environment="production"), llm_service=fake_llm)
    client = TestClient(app)

    post = client.post("/insights", json=_body(days_builder))
    get = client.get("/insights", params={"jobId": "x"})

    assert post.status_code == 500
    assert get.status_code == 500
    assert len(app.state.job_store) == 0


def test_development_without_secret_is_open(make_settings, fake_llm):
    app = create_app(make_settings(), llm_service=fake_llm)

    response = TestClient(app).get("/insights", params={"jobId": "x"})

    assert response.status_code == 404
