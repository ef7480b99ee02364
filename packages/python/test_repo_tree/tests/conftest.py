"""Shared fixtures for the test repository tree tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import httpx
import pytest

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from test_repo_tree.client import TestRepoClient  # noqa: E402
from test_repo_tree.config import TestRepoApiSettings  # noqa: E402
from test_repo_tree.models import EntitySnapshot, SectionRecord, SuiteRecord, TestCaseRecord  # noqa: E402
from test_repo_tree.tree import build_tree  # noqa: E402


@pytest.fixture()
def sample_records():
    """
    Two suites, one orphaned section and one unsectioned test case:

        P1: X [x1], S [A, B, C]
        P2: Y [M, N, y1]
        O (root section)
        U (root test case)
    """

    suites = [
        SuiteRecord(id="P1", name="Checkout", display_order=0),
        SuiteRecord(id="P2", name="Search", display_order=1),
    ]
    sections = [
        SectionRecord(id="S", name="Payments", suite_id="P1", display_order=1),
        SectionRecord(id="X", name="Cart", suite_id="P1", display_order=0),
        SectionRecord(id="Y", name="Filters", suite_id="P2", display_order=0),
        SectionRecord(id="N", name="Price", parent_id="Y", display_order=1),
        SectionRecord(id="M", name="Brand", parent_id="Y", display_order=0),
        SectionRecord(id="O", name="Unsorted", display_order=0),
    ]
    test_cases = [
        TestCaseRecord(id="C", title="Refund", section_id="S", display_order=2),
        TestCaseRecord(id="A", title="Pay by card", section_id="S", display_order=0, priority="high"),
        TestCaseRecord(id="B", title="Pay by invoice", section_id="S", display_order=1),
        TestCaseRecord(id="x1", title="Add item", section_id="X", display_order=0),
        TestCaseRecord(id="y1", title="Clear filters", section_id="Y", display_order=0),
        TestCaseRecord(id="U", title="Smoke", display_order=0),
    ]
    return suites, sections, test_cases


@pytest.fixture()
def sample_forest(sample_records):
    return build_tree(*sample_records)


class FakeTestRepoApi:
    """In-memory stand-in for the test repository HTTP API."""

    def __init__(self, records):
        suites, sections, test_cases = records
        self.snapshot = EntitySnapshot(suites=suites, sections=sections, test_cases=test_cases)
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, tuple[int, Optional[int]]] = {}
        self.offline = False
        self.entities_payload: Optional[dict] = None

    def fail(self, method: str, status: int = 500, times: Optional[int] = None) -> None:
        """Answer ``method`` with ``status``, for ``times`` requests or indefinitely."""

        self.failures[method] = (status, times)

    def _failure(self, method: str) -> Optional[int]:
        if method not in self.failures:
            return None
        status, times = self.failures[method]
        if times is not None:
            if times <= 1:
                del self.failures[method]
            else:
                self.failures[method] = (status, times - 1)
        return status

    def sent(self, method: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.method == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        status = self._failure(request.method)
        if status is not None:
            return httpx.Response(status, json={"error": "rejected"})

        path = request.url.path
        body = json.loads(request.content) if request.content else {}
        if request.method == "GET" and path == "/api/test-repo":
            if self.entities_payload is not None:
                return httpx.Response(200, json=self.entities_payload)
            return httpx.Response(200, json=self.snapshot.model_dump(mode="json", by_alias=True))
        if request.method == "POST" and path == "/api/test-suites":
            return httpx.Response(201, json={"id": "new-suite", "name": body["name"], "displayOrder": 2})
        if request.method == "POST" and path == "/api/sections":
            return httpx.Response(
                201,
                json={
                    "id": "new-section",
                    "name": body["name"],
                    "suiteId": body.get("suiteId"),
                    "parentId": body.get("parentId"),
                },
            )
        return httpx.Response(200, json={"ok": True})


@pytest.fixture()
def fake_api(sample_records):
    return FakeTestRepoApi(sample_records)


@pytest.fixture()
def api_client(fake_api):
    return TestRepoClient(
        settings=TestRepoApiSettings(api_url="http://test-repo.local/"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)),
    )
