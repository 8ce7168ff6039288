"""FastAPI server for lot traceability.

Main entry point for the API server.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.routes import health, lots
from core import __version__
from core.config import get_settings
from core.observability.logging import configure_logging, get_logger, with_correlation


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(
        "Lot traceability API starting up",
        extra_fields={
            "store_backend": settings.store_backend,
            "timeout_seconds": settings.resolve_timeout_seconds,
        },
    )

    yield

    logger.info("Lot traceability API shutting down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json, force=True)

    app = FastAPI(
        title="Lot Traceability API",
        description="Lot lookup and pipeline timeline for fruit export traceability",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlate_request(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        with with_correlation(request_id=request_id, route=request.url.path):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(lots.router, prefix="/lots", tags=["Lots"])

    return app


# Default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=True)
