"""FastAPI application exposing the feed and the ingestion triggers."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI
from rich.console import Console

from shortsfeed import __version__
from shortsfeed.api.deps import ServiceContainer, build_container
from shortsfeed.api.errors import register_exception_handlers
from shortsfeed.api.routes import cron, feed
from shortsfeed.db.connection import close_pool


def create_app(container: Optional[ServiceContainer] = None, *, console: Optional[Console] = None) -> FastAPI:
    """Create the application.

    When ``container`` is omitted the production services are built on startup and the
    database pool is closed on shutdown; a supplied container is used as-is.
    """

    console = console or (container.console if container else Console())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        owns_services = getattr(app.state, "services", None) is None
        if owns_services:
            app.state.services = build_container(console=console)
            console.log(f"[green]shortsfeed API {__version__} ready[/green]")
        try:
            yield
        finally:
            if owns_services:
                close_pool()

    app = FastAPI(title="shortsfeed", version=__version__, lifespan=lifespan)
    app.state.services = container
    register_exception_handlers(app, console)
    app.include_router(feed.router)
    app.include_router(cron.router)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


__all__ = ["create_app"]
