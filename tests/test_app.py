from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from subscription_service import main
from subscription_service.config import Settings
from subscription_service.main import create_app


def test_swagger_ui_and_document(client):
    ui = client.get("/swagger/index.html")
    assert ui.status_code == 200
    assert "swagger-ui" in ui.text.lower()

    doc = client.get("/swagger/doc.json")
    assert doc.status_code == 200
    paths = doc.json()["paths"]
    assert "/api/v1/subscriptions" in paths
    assert "/api/v1/subscriptions/total" in paths
    assert "/api/v1/subscriptions/{subscription_id}" in paths


def test_swagger_root_redirects(client):
    response = client.get("/swagger", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "/swagger/index.html"


def test_health_reports_database(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"]["dialect"] == "sqlite"


def test_health_degraded_when_store_unreachable(tmp_path):
    settings = Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'missing' / 'nested' / 'x.db'}")
    engine = create_engine(settings.database_url)
    app = create_app(settings, engine=engine)
    # No lifespan: the table is never created and the path cannot be opened.
    client = TestClient(app)
    response = client.get("/api/v1/health")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_unknown_route_uses_error_body(client):
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_unhandled_exception_is_recovered(app, client):
    @app.get("/api/v1/explode")
    def explode():
        raise RuntimeError("kaboom")

    response = client.get("/api/v1/explode")
    assert response.status_code == 500
    assert response.json() == {"error": "internal server error"}
    assert "kaboom" not in response.text


def test_requests_are_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="subscription_service.access"):
        client.get("/api/v1/subscriptions", params={"user_id": "u1"})
    lines = [r.getMessage() for r in caplog.records if r.name == "subscription_service.access"]
    assert any("| GET | /api/v1/subscriptions?user_id=u1 | 200 |" in line for line in lines)


@pytest.mark.parametrize("url", ["not a database url", "nosuchdriver://db/subs"])
def test_run_exits_on_unusable_database_url(monkeypatch, caplog, url):
    monkeypatch.setattr(main, "get_settings", lambda: Settings(DATABASE_URL=url))
    with caplog.at_level(logging.ERROR, logger="subscription_service.main"):
        with pytest.raises(SystemExit) as excinfo:
            main.run()
    assert excinfo.value.code == 1
    assert "failed to connect to database" in caplog.text
