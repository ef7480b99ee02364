"""Async HTTP client for the test repository API."""

from __future__ import annotations

import time
from typing import Any, Optional, Sequence

import httpx
from loguru import logger
from pydantic import ValidationError

from .config import TestRepoApiSettings, settings as default_settings
from .errors import CommitError
from .models import (
    EntitySnapshot,
    NodeKind,
    ParentRef,
    SectionRecord,
    SuiteRecord,
    TreeViewState,
    UnderSection,
    UnderSuite,
)
from .planner import PlanItem

ENTITY_PATHS = {
    NodeKind.SUITE: "/api/test-suites",
    NodeKind.SECTION: "/api/sections",
    NodeKind.TEST_CASE: "/api/test-cases",
}


class TestRepoClient:
    """
    Thin wrapper around ``httpx.AsyncClient`` for the endpoints the tree uses.

    Transport failures and non-2xx responses are raised as ``CommitError``.
    """

    __test__ = False

    def __init__(
        self,
        settings: Optional[TestRepoApiSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or default_settings
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _url(self, path: str) -> str:
        return f"{self.settings.api_url.rstrip('/')}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        client = self._get_client()
        start = time.perf_counter()
        try:
            response = await client.request(
                method,
                self._url(path),
                json=json,
                params=params,
                timeout=self.settings.timeout_seconds,
            )
        except httpx.RequestError as exc:
            duration = (time.perf_counter() - start) * 1000
            logger.warning(
                "{method} {path} failed after {duration:.2f} ms: {error}",
                method=method,
                path=path,
                duration=duration,
                error=exc,
            )
            raise CommitError(f"{method} {path} failed: {exc}") from exc

        duration = (time.perf_counter() - start) * 1000
        logger.debug(
            "{method} {path} responded with {status} in {duration:.2f} ms",
            method=method,
            path=path,
            status=response.status_code,
            duration=duration,
        )
        if response.is_error:
            raise CommitError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    # -----------------------------------------------------------------------
    # Tree reads and reorder
    # -----------------------------------------------------------------------

    async def fetch_entities(self, project_id: str) -> EntitySnapshot:
        """Fetch the canonical suite, section and test case lists of a project."""

        response = await self._request(
            "GET", self.settings.entities_path, params={"projectId": project_id}
        )
        try:
            return EntitySnapshot.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning(
                "Entity lists for project {project_id} are malformed: {error}",
                project_id=project_id,
                error=exc,
            )
            raise CommitError(
                f"GET {self.settings.entities_path} returned malformed entity lists"
            ) from exc

    async def reorder(self, project_id: str, items: Sequence[PlanItem]) -> None:
        """Send every item of a plan in one batched request."""

        payload = {"projectId": project_id, "items": [item.to_wire() for item in items]}
        await self._request("PUT", self.settings.reorder_path, json=payload)

    # -----------------------------------------------------------------------
    # Single-entity operations
    # -----------------------------------------------------------------------

    async def create_suite(self, project_id: str, name: str) -> SuiteRecord:
        response = await self._request(
            "POST",
            ENTITY_PATHS[NodeKind.SUITE],
            json={"name": name, "projectId": project_id},
        )
        return SuiteRecord.model_validate(response.json())

    async def create_section(self, project_id: str, name: str, parent: ParentRef) -> SectionRecord:
        body: dict[str, Any] = {"name": name, "projectId": project_id}
        if isinstance(parent, UnderSuite):
            body["suiteId"] = parent.suite_id
        elif isinstance(parent, UnderSection):
            body["parentId"] = parent.section_id
        response = await self._request("POST", ENTITY_PATHS[NodeKind.SECTION], json=body)
        return SectionRecord.model_validate(response.json())

    async def rename_node(self, project_id: str, node_id: str, kind: NodeKind, name: str) -> None:
        key = "title" if kind == NodeKind.TEST_CASE else "name"
        await self._request(
            "PATCH",
            f"{ENTITY_PATHS[kind]}/{node_id}",
            json={key: name, "projectId": project_id},
        )

    async def delete_node(self, project_id: str, node_id: str, kind: NodeKind) -> None:
        await self._request(
            "DELETE",
            f"{ENTITY_PATHS[kind]}/{node_id}",
            params={"projectId": project_id},
        )

    async def clone_test_case(self, project_id: str, test_case_id: str) -> None:
        await self._request(
            "POST",
            f"{ENTITY_PATHS[NodeKind.TEST_CASE]}/{test_case_id}/clone",
            json={"projectId": project_id},
        )

    async def save_view_state(self, project_id: str, state: TreeViewState) -> None:
        await self._request(
            "PUT",
            f"{self.settings.view_state_path.rstrip('/')}/{project_id}",
            json=state.model_dump(mode="json"),
        )
