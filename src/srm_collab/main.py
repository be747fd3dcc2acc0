"""Main entry point for the SRM Collab application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from srm_collab.api.errors import register_error_handlers
from srm_collab.api.v1 import (
    auth_router,
    matches_router,
    polls_router,
    posts_router,
    profiles_router,
    streak_router,
)
from srm_collab.backend.base import Backend
from srm_collab.core.settings import settings
from srm_collab.services.session import SessionRegistry

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Student feed, matching and chat service layer",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

register_error_handlers(app)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(polls_router, prefix="/api/v1")
app.include_router(profiles_router, prefix="/api/v1")
app.include_router(matches_router, prefix="/api/v1")
app.include_router(streak_router, prefix="/api/v1")


def build_backend() -> Backend:
    """Return the hosted platform client, or the local database when unconfigured."""
    if settings.hosted_backend_enabled:
        from srm_collab.backend.rest import RestBackend

        logger.info("Using hosted backend at %s", settings.backend_url)
        return RestBackend()

    from srm_collab.backend.sql import SqlBackend
    from srm_collab.db.session import create_tables, engine

    logger.info("Using local database %s", engine.url.render_as_string(hide_password=True))
    create_tables(engine)
    return SqlBackend(engine)


@app.on_event("startup")
async def on_startup() -> None:
    backend = build_backend()
    app.state.backend = backend
    app.state.session_registry = SessionRegistry(backend)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    registry: SessionRegistry | None = getattr(app.state, "session_registry", None)
    if registry:
        registry.close_all()
    backend: Backend | None = getattr(app.state, "backend", None)
    if backend:
        await backend.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Student feed, matching and chat service layer",
        "backend": "hosted" if settings.hosted_backend_enabled else "local",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run("srm_collab.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
