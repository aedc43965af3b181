"""
FastAPI application for the sitechat API.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import Settings, configure_logging
from .deps import Container, build_container
from .routes import public_router, router


def create_app(
    container: Optional[Container] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the app. A prebuilt ``container`` is used as-is (tests); otherwise
    one is built on startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build services on startup; release connections on shutdown."""
        if container is not None:
            yield
            return
        resolved = settings or Settings.from_env()
        configure_logging(resolved)
        app.state.container = await build_container(resolved)
        try:
            yield
        finally:
            await app.state.container.aclose()

    app = FastAPI(
        title="sitechat API",
        description="Site-specific retrieval-augmented chatbots",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.include_router(router)
    app.include_router(public_router)
    return app


app = create_app()
