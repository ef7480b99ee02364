"""Configuration for talking to the test repository API."""

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

# Search for the nearest .env so running from subdirectories still loads root config.
load_dotenv(find_dotenv(usecwd=True))


class TestRepoApiSettings(BaseModel):
    """Endpoints and timeouts used by ``TestRepoClient``."""

    __test__ = False

    api_url: str = Field(
        default_factory=lambda: os.getenv("TEST_REPO_API_URL", "http://localhost:3000")
    )
    timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("TEST_REPO_TIMEOUT_SECONDS", "5.0"))
    )
    reorder_path: str = Field(
        default_factory=lambda: os.getenv("TEST_REPO_REORDER_PATH", "/api/test-repo/reorder")
    )
    entities_path: str = Field(
        default_factory=lambda: os.getenv("TEST_REPO_ENTITIES_PATH", "/api/test-repo")
    )
    view_state_path: str = Field(
        default_factory=lambda: os.getenv(
            "TEST_REPO_VIEW_STATE_PATH", "/settings/test-repo-tree"
        )
    )


settings = TestRepoApiSettings()
