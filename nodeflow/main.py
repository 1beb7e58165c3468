"""ASGI application and server entry point."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.dependencies import get_active_runs, get_node_factory
from .core.logging_config import configure_logging
from .db import async_session_factory, init_db
from .db.seed import seed_default_workflows
from .engine.executor import ActiveRuns
from .routes import api_router, stream_router
from .schemas.common import HealthResponse, RootResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()

    await init_db()
    logger.info(f"Database ready at {settings.database_url}")

    factory = get_node_factory()
    logger.info(f"Node types available: {', '.join(factory.get_registered_types())}")

    if settings.seed_default_workflows:
        async with async_session_factory() as session:
            await seed_default_workflows(session)

    logger.info(f"{settings.app_name} v{settings.app_version} listening on {settings.host}:{settings.port}")
    yield
    logger.info(f"{settings.app_name} shutting down")


def create_app() -> FastAPI:
    """Build the FastAPI application with its routers and middleware."""
    app = FastAPI(
        title=settings.app_name,
        description="Node-based workflow orchestration engine",
        version=settings.app_version,
        lifespan=lifespan,
        debug=settings.debug,
    )
    started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(api_router)
    app.include_router(stream_router, tags=["Streaming"])

    @app.get("/", response_model=RootResponse)
    async def root() -> RootResponse:
        return RootResponse(name=settings.app_name, version=settings.app_version, status="running")

    @app.get("/health", response_model=HealthResponse)
    async def health(
        active_runs: Annotated[ActiveRuns, Depends(get_active_runs)],
    ) -> HealthResponse:
        return HealthResponse(
            version=settings.app_version,
            uptime_seconds=round(time.monotonic() - started_at, 3),
            active_runs=len(active_runs.list_ids()),
        )

    return app


app = create_app()


def main() -> None:
    """Run the server with uvicorn."""
    uvicorn.run(
        "nodeflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
