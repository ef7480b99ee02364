"""Environment-driven settings for the tree view state server."""

from __future__ import annotations

import os
from typing import List

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

load_dotenv(find_dotenv(usecwd=True))


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _cors_origins_from_env() -> List[str]:
    # Explicit list first, then the web app that renders the tree.
    explicit = os.getenv("CORE_CORS_ALLOW_ORIGINS")
    if explicit:
        return _split_origins(explicit)
    web_app = os.getenv("APP_BASE_URL")
    return [web_app.strip()] if web_app else []


def _log_level_from_env() -> str:
    return (os.getenv("LOG_LEVEL") or os.getenv("LOGURU_LEVEL") or "INFO").upper()


class CoreSettings(BaseModel):
    """Metadata, CORS and logging for the FastAPI app."""

    api_title: str = "Test Repository Tree API"
    api_version: str = "0.1.0"
    cors_allow_origins: List[str] = Field(default_factory=_cors_origins_from_env)
    log_level: str = Field(default_factory=_log_level_from_env)
    host: str = Field(default_factory=lambda: os.getenv("CORE_HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("CORE_PORT", "8000")))


settings = CoreSettings()
