"""Newsdesk HTTP server entry point.

Lifespan loads the RBAC enforcer and configures Celery at startup, and
disposes the database engine on shutdown.

Entry point:
    uvicorn newsdesk.server.main:app --host 0.0.0.0 --port 8000

Or run directly:
    python -m newsdesk.server.main
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from newsdesk.api.errors import register_exception_handlers
from newsdesk.api.router import api_router
from newsdesk.config import settings
from newsdesk.db.session import engine
from newsdesk.jobs.tasks import configure_celery
from newsdesk.security.rbac import init_enforcer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: logging, RBAC enforcer, Celery.  Shutdown: dispose the engine."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Newsdesk server starting up...")

    init_enforcer()
    logger.info("RBAC enforcer ready.")

    configure_celery(settings.redis_url)
    logger.info("Celery configured for maintenance jobs.")

    yield

    logger.info("Newsdesk server shutting down, disposing database engine...")
    await engine.dispose()
    logger.info("Database engine disposed.")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


def custom_generate_unique_id(route: APIRoute) -> str:
    """Deterministic operation IDs such as ``tags-create_tag_endpoint``."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


app = FastAPI(
    title="Newsdesk",
    description="Content management and news aggregation API",
    version="0.1.0",
    lifespan=lifespan,
    generate_unique_id_function=custom_generate_unique_id,
)

register_exception_handlers(app)


@app.get("/health")
async def health() -> JSONResponse:
    """Health check for load balancers and readiness probes."""
    return JSONResponse({"status": "ok", "service": "newsdesk"})


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
