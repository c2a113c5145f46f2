"""
FastAPI application entry point.

This module creates and configures the proxy application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations and backends
- Explicit about initialization order

For local development:
    S3_PROXY_MOCK_MODE=true uvicorn s3_proxy.main:app --reload

For production:
    s3-proxy
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .api.responses import error_response
from .api.routes import health, objects
from .config.settings import Settings, get_settings
from .core.relay.models import StreamFailed
from .core.relay.relay import BackendClient
from .core.routing.models import RouteError
from .infrastructure.storage.client import create_storage_client


def configure_logging(level: str) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
    )


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates the storage client once on startup. Every request shares it;
    nothing about it changes per request.
    """
    settings: Settings = app.state.settings
    proxy_config = app.state.proxy_config

    if proxy_config.bucket:
        logger.info(
            "Hosting content from bucket",
            extra={"bucket": proxy_config.bucket}
        )
    logger.info(
        "Main route mounted",
        extra={"route": proxy_config.route_template}
    )

    problems = settings.validate_required_fields()
    if problems:
        logger.error(
            "Invalid configuration",
            extra={"problems": problems}
        )

    if app.state.backend is None:
        app.state.backend = create_storage_client(
            config=settings.storage_config,
            mock_mode=settings.mock_mode,
        )

    yield

    logger.info("S3 proxy shutting down")


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[BackendClient] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Configuration; loaded from the environment if omitted
        backend: Storage client; created at startup if omitted
    """
    settings = settings or get_settings()

    # Docs routes are disabled: any path may be an object key
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.proxy_config = settings.proxy_config
    app.state.backend = backend

    # Health checks first so they take precedence over the catch-all
    if settings.health_path:
        app.include_router(
            health.router,
            prefix=settings.health_path,
            tags=["Health"],
        )

    app.include_router(objects.router, tags=["Objects"])

    @app.exception_handler(RouteError)
    async def route_error_handler(request: Request, exc: RouteError):
        """Paths that don't map to an object are the client's problem."""
        logger.info(
            "Rejected request path",
            extra={
                "method": request.method,
                "path": exc.path,
                "reason": exc.reason,
            }
        )
        return error_response(status.HTTP_400_BAD_REQUEST, "400 - Bad request")

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return a generic message.

        StreamFailed arrives here after the response has started; the relay
        already logged it and the response below is never sent.
        """
        if isinstance(exc, StreamFailed):
            logger.debug(
                "Response aborted mid-stream",
                extra={"path": request.url.path, "uri": exc.uri}
            )
        else:
            logger.error(
                "Unhandled exception",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "error": str(exc),
                },
                exc_info=exc,
            )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    logger.debug(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
configure_logging(get_settings().log_level)
app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "s3_proxy.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers or os.cpu_count() or 1,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
