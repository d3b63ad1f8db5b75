"""
FastAPI application for Synapse.

Provides REST API for:
- Knowledge graph import and inspection
- Mastery, progress and weak-concept dashboards
- Session planning (pedagogical directives)
- Daily review queue and graded answers
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from synapse import __version__
from synapse.api.deps import close_service
from synapse.config import configure_logging, get_settings
from synapse.core.exceptions import GraphNotFoundError, GraphValidationError, ItemNotFoundError

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    configure_logging(settings)
    logger.info(f"Synapse API started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info("Shutting down Synapse API...")
    close_service()


app = FastAPI(
    title="Synapse",
    description="""
    Adaptive study orchestration service.

    ## Data Flow

    ```
    answer -> SM-2 update -> mastery update -> XP -> activity log
    signals -> context -> directive -> item generation -> session
    ```
    """,
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========================================
# Error Mapping
# ========================================


@app.exception_handler(GraphNotFoundError)
@app.exception_handler(ItemNotFoundError)
async def not_found_handler(request: Request, exc: KeyError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(GraphValidationError)
async def invalid_graph_handler(request: Request, exc: GraphValidationError) -> JSONResponse:
    logger.warning(f"Rejected graph import: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "node_ids": exc.node_ids},
    )


# ========================================
# Health & Status Endpoints
# ========================================


@app.get("/", tags=["Health"])
def root() -> dict[str, str]:
    """Root endpoint returning service info."""
    return {
        "service": "synapse",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "config": {
            "state_db": str(settings.state_db_path),
            "cycle_policy": settings.cycle_policy,
            "daily_review_limit": settings.daily_review_limit,
        },
    }


# ========================================
# Import and mount routers
# ========================================

from synapse.api.routers import graph_router, session_router  # noqa: E402

app.include_router(graph_router.router, prefix="/graphs", tags=["Graphs"])
app.include_router(session_router.router, prefix="/graphs", tags=["Sessions"])
