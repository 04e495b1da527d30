"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import APIRouter
from fastapi.middleware.cors import CORSMiddleware

from src.config.settings import get_settings


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Disposes pooled database connections on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        Control to the running application.
    """
    from src.db.session import dispose_engine

    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance.
    """
    app = FastAPI(
        title="Booking Workflow Service",
        description="Voice agent webhooks for post-incident medical appointment booking",
        version="0.1.0",
        lifespan=_lifespan,
    )

    settings = get_settings()
    allow_all = "*" in settings.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(_health_router())

    from src.api.event_bus import ws_router
    from src.api.webhooks import router as webhooks_router

    app.include_router(webhooks_router)
    app.include_router(ws_router)

    return app


def _health_router() -> APIRouter:
    """Create health check router.

    Returns:
        Router with health endpoints.
    """
    from fastapi import APIRouter

    router = APIRouter(tags=["health"])

    @router.get("/health")
    async def health() -> dict[str, str]:
        """Return application health status."""
        return {"status": "ok"}

    return router


app = create_app()
