# tests/test_health.py
from fastapi.testclient import TestClient

from conftest import make_loaded_app
from routeviz.api.v1.routes_routing import get_app_model
from routeviz.main import app


client = TestClient(app)


def test_health_check():
    response = client.get("/health/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "app" in data
    assert "version" in data
    assert "environment" in data
    assert "graph" in data


def test_health_reports_loaded_graph():
    model = make_loaded_app()
    app.dependency_overrides[get_app_model] = lambda: model
    try:
        data = client.get("/health/").json()
    finally:
        app.dependency_overrides.clear()

    assert data["graph"] == "grid"
    assert data["graph_loaded"] is True
    assert data["index_ready"] is True
