# tests/test_app.py
from medialib.core.config import settings


def test_root(client):
    body = client.get("/").json()
    assert body["project_name"] == settings.PROJECT_NAME
    assert body["docs_url"] == "/docs"


def test_health_reports_database_and_cache(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"] is True
    assert body["cache"]["backend"] == "memory"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_anonymous_caller_is_forbidden_on_jobs(client):
    client.cookies.clear()
    response = client.post("/tags/check-tags")
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized"}
