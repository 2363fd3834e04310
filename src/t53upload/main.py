"""Main application entrypoint for the T53 upload server."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from t53upload.api.middleware import (
    DoubleSlashRewriteMiddleware,
    HTTPErrorLoggingMiddleware,
    RejectPortsMiddleware,
)
from t53upload.api.v1 import routes_health, routes_home, routes_metrics
from t53upload.api.v1.routes_upload import router as upload_router
from t53upload.core.config import Settings, get_settings
from t53upload.core.logging import setup_logging
from t53upload.core.metrics import ServerMetrics
from t53upload.jobs.scheduler import build_scheduler
from t53upload.uploads.models import UploadPolicy
from t53upload.uploads.pipeline import UploadApi

logger = logging.getLogger(__name__)

# Browser pages that post uploads from another origin
CORS_ALLOWED_ORIGINS = [
    "http://localhost",
    "http://127.0.0.1",
    "https://edit.bsatroop53.com",
]
CORS_ALLOWED_METHODS = ["GET", "OPTIONS", "POST"]


def create_app(
    app_settings: Optional[Settings] = None,
    upload_api: Optional[UploadApi] = None,
    metrics: Optional[ServerMetrics] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use; defaults to get_settings()
        upload_api: Pre-built pipeline, mainly for tests
        metrics: Counters to expose when WEB_METRICS_URL is set

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app_settings = app_settings or get_settings()
    api = upload_api or UploadApi(UploadPolicy.from_settings(app_settings))
    if app_settings.WEB_METRICS_URL is not None:
        metrics = metrics or ServerMetrics()
    else:
        metrics = None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if metrics is not None:
            metrics.attach()
        api.init()
        scheduler = build_scheduler(app_settings, api)
        scheduler.start()
        logger.info("Upload server started")
        try:
            yield
        finally:
            scheduler.shutdown(wait=False)
            logger.info("Upload server stopped")
            if metrics is not None:
                metrics.detach()

    app = FastAPI(
        title=app_settings.SERVICE_NAME,
        version=app_settings.SERVICE_VERSION,
        root_path=app_settings.WEB_BASE_PATH,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.upload_api = api
    app.state.metrics = metrics

    # Last added runs first
    app.add_middleware(HTTPErrorLoggingMiddleware)
    if app_settings.WEB_STRIP_DOUBLE_SLASH:
        app.add_middleware(DoubleSlashRewriteMiddleware)
    if not app_settings.WEB_ALLOW_PORTS:
        app.add_middleware(RejectPortsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_methods=CORS_ALLOWED_METHODS,
    )

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(routes_home.router, tags=["home"])
    app.include_router(upload_router)
    if metrics is not None:
        app.add_api_route(
            app_settings.WEB_METRICS_URL,
            routes_metrics.metrics,
            methods=["GET"],
            include_in_schema=False,
        )

    return app


def build_default_app() -> FastAPI:
    """ASGI factory: ``uvicorn --factory t53upload.main:build_default_app``."""
    app_settings = get_settings()
    setup_logging(app_settings)
    return create_app(app_settings)
