"""Tests for the application factory."""

from __future__ import annotations

from fastapi.testclient import TestClient

from vision_relay.app import create_app


def test_root_and_docs(test_settings):
    client = TestClient(create_app(test_settings))

    root = client.get("/")
    assert root.status_code == 200
    assert root.text == "Try API Endpoints using Postman!!!"

    schema = client.get("/openapi.json").json()
    assert {"/api/v1/analyzeImage", "/api/v1/describeImage", "/api/v1/tagImage"} <= set(schema["paths"])
    assert client.get("/docs").status_code == 200


def test_health_reports_downstream_configuration(test_settings):
    client = TestClient(create_app(test_settings))
    assert client.get("/healthz").json() == {"status": "ok", "downstream_configured": True}

    unconfigured = test_settings.model_copy(update={"subscription_key": None})
    client = TestClient(create_app(unconfigured))
    assert client.get("/healthz").json() == {"status": "degraded", "downstream_configured": False}


def test_missing_key_surfaces_as_api_issue(test_settings):
    unconfigured = test_settings.model_copy(update={"subscription_key": None})
    client = TestClient(create_app(unconfigured))

    response = client.post("/api/v1/describeImage", json={"url": "http://x/img.jpg"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "code": "APIissue", "message": "Internal Server Error"}


def test_stored_uploads_are_served(test_settings, tmp_path):
    client = TestClient(create_app(test_settings))
    (tmp_path / "uploads" / "file_1.png").write_bytes(b"png-bytes")

    response = client.get("/uploadImage/file_1.png")

    assert response.status_code == 200
    assert response.content == b"png-bytes"
