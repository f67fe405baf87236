"""freshmap REST API — FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from freshmap.api.deps import dispose_refresher, init_refresher
from freshmap.api.errors import register_error_handlers
from freshmap.api.middleware.request_context import RequestContextMiddleware
from freshmap.api.routers import graph
from freshmap.core.config import Settings, load_settings
from freshmap.core.logging import setup_logging


def _make_lifespan(settings: Settings):
    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup: build the refresher and start polling. Shutdown: stop and close."""
        scheduler = init_refresher(settings)
        await scheduler.start()
        yield
        await dispose_refresher()

    return _lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()
    settings = settings or load_settings()

    app = FastAPI(
        title="freshmap",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_make_lifespan(settings),
    )

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(graph.router, prefix="/api/v1/graph", tags=["graph"])

    return app
