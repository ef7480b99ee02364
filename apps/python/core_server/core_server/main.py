"""FastAPI application serving the test repository tree settings."""

from __future__ import annotations

import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from tree_state_api import router as tree_state_router

from .config import settings


def _configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.info("Logger configured at {level} level", level=settings.log_level)


def create_app() -> FastAPI:
    _configure_logging()
    app = FastAPI(title=settings.api_title, version=settings.api_version)

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("CORS middleware added {origins}", origins=settings.cors_allow_origins)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Simple liveness endpoint for load balancers and probes."""

        return {"status": "ok"}

    app.include_router(tree_state_router)
    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn on ``CORE_HOST``:``CORE_PORT``."""

    uvicorn.run("core_server.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
