"""Tests for application-level endpoints and configuration helpers."""

from src.api.main import _parse_allowed_origins


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["filter_cache_entries"] == 0


def test_api_root(client):
    assert client.get("/api").json()["name"] == "Taskboard API"


def test_allowed_origins(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example ,")
    assert _parse_allowed_origins() == ["https://a.example", "https://b.example"]
    monkeypatch.delenv("ALLOWED_ORIGINS")
    assert _parse_allowed_origins() == []
