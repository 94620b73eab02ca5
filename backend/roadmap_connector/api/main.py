"""FastAPI application exposing the maintenance operations."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from roadmap_connector.api.v1.endpoints import connection
from roadmap_connector.core.config import settings
from roadmap_connector.core.exceptions import (
    ConnectorException,
    IngestionError,
    StoreUnavailable,
    UpstreamUnavailable,
)
from roadmap_connector.core.logging import logger


def _status_code_for(exc: ConnectorException) -> int:
    if isinstance(exc, StoreUnavailable):
        return 503
    if isinstance(exc, (UpstreamUnavailable, IngestionError)):
        return 502
    return 500


def create_app() -> FastAPI:
    """Build the API application."""
    app = FastAPI(title="Roadmap Connector", version="0.1.0")

    @app.exception_handler(ConnectorException)
    async def connector_exception_handler(request: Request, exc: ConnectorException):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=_status_code_for(exc),
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.get("/health")
    async def health() -> dict:
        """Liveness check."""
        return {"status": "healthy", "connector_id": settings.CONNECTOR_ID}

    if settings.MAINTENANCE_API_ENABLED:
        app.include_router(connection.router, tags=["connection"])

    return app


app = create_app()
