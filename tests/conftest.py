"""Shared pytest fixtures for the vision relay tests."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from requests.exceptions import HTTPError

from vision_relay.api.routes import router
from vision_relay.config import DownstreamConfig, LoggingSettings, Settings, UploadSettings, settings_dependency
from vision_relay.errors import register_exception_handlers
from vision_relay.relay import VisionRelay, relay_dependency
from vision_relay.storage import LocalImageStorage

FIXED_MILLIS = 1700000000000


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, invalid_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise HTTPError(f"{self.status_code} Error", response=self)

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session`` and records every outbound call."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.response = FakeResponse(200, {"categories": [{"name": "animal_cat", "score": 0.9}]})
        self.error: Exception | None = None

    def post(self, url, json=None, headers=None, timeout=None, verify=None):  # noqa: A002
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout, "verify": verify})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture()
def test_settings(tmp_path) -> Settings:
    return Settings(
        service_name="vision-relay-test",
        base_url="/api/v1",
        endpoint_url="https://vision.example.com/",
        subscription_key="test-key",
        uploads=UploadSettings(
            directory=str(tmp_path / "uploads"),
            public_base_url="http://localhost:3000",
            mount_path="/uploadImage",
        ),
        logging=LoggingSettings(log_dir=str(tmp_path / "logs")),
    )


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def storage(test_settings) -> LocalImageStorage:
    return LocalImageStorage(test_settings.uploads, clock=lambda: FIXED_MILLIS)


@pytest.fixture()
def relay(test_settings, storage, fake_session) -> VisionRelay:
    return VisionRelay(DownstreamConfig.from_settings(test_settings), storage, session=fake_session)


@pytest.fixture()
def api_app(test_settings, relay) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router, prefix=test_settings.base_url)
    app.dependency_overrides[settings_dependency] = lambda: test_settings
    app.dependency_overrides[relay_dependency] = lambda: relay
    return app


@pytest.fixture()
def api_client(api_app) -> TestClient:
    return TestClient(api_app)
