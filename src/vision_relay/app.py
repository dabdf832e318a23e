"""FastAPI application factory for the vision relay."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from .api.routes import router as api_router
from .config import Settings, get_settings, settings_dependency
from .errors import register_exception_handlers
from .logging import configure_logging
from .monitoring import ensure_metrics_server
from .relay import build_relay, relay_dependency
from .schemas import HealthResponse

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    explicit_settings = settings is not None
    settings = settings or get_settings()
    configure_logging(settings.logging)

    metrics_disabled = os.getenv("VISION_DISABLE_METRICS", "false").lower() in {"1", "true", "yes"}
    if not metrics_disabled:
        ensure_metrics_server(settings.monitoring.prometheus_port)

    app = FastAPI(
        title="Analyze, describe and tag images using the Computer Vision API",
        description="Relays image URLs or uploads to Azure Computer Vision v3.2",
        version=settings.api_version,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.base_url)

    if explicit_settings:
        relay = build_relay(settings)
        app.dependency_overrides[settings_dependency] = lambda: settings
        app.dependency_overrides[relay_dependency] = lambda: relay

    if settings.uploads.backend == "local":
        upload_dir = Path(settings.uploads.directory)
        upload_dir.mkdir(parents=True, exist_ok=True)
        app.mount(settings.uploads.mount_path, StaticFiles(directory=str(upload_dir)), name="uploads")

    if not (settings.endpoint_url and settings.subscription_key):
        logger.warning("Vision endpoint or subscription key not set; relay requests will fail with APIissue")

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root() -> str:
        return "Try API Endpoints using Postman!!!"

    @app.get("/healthz", response_model=HealthResponse)
    async def health() -> HealthResponse:
        configured = bool(settings.endpoint_url and settings.subscription_key)
        return HealthResponse(status="ok" if configured else "degraded", downstream_configured=configured)

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
