"""Motor connection helpers for the tree view state collection.

Applications can assign a new ``MongoSettings`` instance to ``db.settings``
before the first call to ``get_db`` to override the environment defaults.
"""

from __future__ import annotations

import os
from functools import lru_cache

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import BaseModel, Field


class MongoSettings(BaseModel):
    uri: str = Field(
        default_factory=lambda: os.getenv("MONGO_URI", "mongodb://localhost:27017")
    )
    db_name: str = Field(default_factory=lambda: os.getenv("MONGO_DB_NAME", "test_repo"))


settings = MongoSettings()


@lru_cache
def get_mongo_client() -> AsyncIOMotorClient:
    """Return a cached Motor client for ``settings.uri``."""

    logger.info("Connecting to MongoDB at {uri}", uri=settings.uri)
    return AsyncIOMotorClient(settings.uri)


def get_db() -> AsyncIOMotorDatabase:
    return get_mongo_client()[settings.db_name]
