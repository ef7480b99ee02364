from __future__ import annotations

import json

import pytest

from test_repo_tree.errors import CommitError
from test_repo_tree.models import SectionRecord
from test_repo_tree.planner import plan_reorder
from test_repo_tree.sync import PersistenceSync
from test_repo_tree.tree import build_tree, find_node


@pytest.mark.asyncio
async def test_commit_sends_whole_plan_in_one_request(fake_api, api_client, sample_forest):
    plan = plan_reorder(sample_forest, "X", "Y", None, 0)
    sync = PersistenceSync(api_client, "proj-1")

    outcome = await sync.commit(plan)

    assert outcome.committed
    assert outcome.forest is None
    (request,) = fake_api.requests
    assert request.method == "PUT"
    assert request.url.path == "/api/test-repo/reorder"
    body = json.loads(request.content)
    assert body["projectId"] == "proj-1"
    assert [item["id"] for item in body["items"]] == ["X", "M", "N", "S"]
    assert body["items"][0] == {
        "id": "X",
        "type": "section",
        "displayOrder": 0,
        "suiteId": None,
        "parentId": "Y",
    }


@pytest.mark.asyncio
async def test_empty_plan_sends_nothing(fake_api, api_client, sample_forest):
    plan = plan_reorder(sample_forest, "B", "S", None, 1)

    outcome = await PersistenceSync(api_client, "proj-1").commit(plan)

    assert outcome.committed
    assert fake_api.requests == []


@pytest.mark.asyncio
async def test_rejected_commit_rebuilds_from_server(fake_api, api_client, sample_records, sample_forest):
    fake_api.fail("PUT", 409)
    plan = plan_reorder(sample_forest, "X", "Y", None, 0)

    outcome = await PersistenceSync(api_client, "proj-1").commit(plan)

    assert not outcome.committed
    assert isinstance(outcome.error, CommitError)
    assert outcome.error.status_code == 409
    assert [request.method for request in fake_api.requests] == ["PUT", "GET"]
    assert outcome.forest == build_tree(*sample_records)
    assert find_node(outcome.forest, "X").parent == find_node(sample_forest, "X").parent


@pytest.mark.asyncio
async def test_reconcile_takes_server_state_verbatim(fake_api, api_client):
    fake_api.snapshot.sections.append(
        SectionRecord(id="Q", name="Added elsewhere", suite_id="P2", display_order=1)
    )

    forest = await PersistenceSync(api_client, "proj-1").reconcile()

    assert [child.id for child in find_node(forest, "P2").children] == ["Y", "Q"]
    assert fake_api.requests[0].url.params["projectId"] == "proj-1"


@pytest.mark.asyncio
async def test_unreachable_server_is_a_commit_failure(fake_api, api_client, sample_forest):
    fake_api.offline = True
    plan = plan_reorder(sample_forest, "C", "S", None, 0)

    with pytest.raises(CommitError) as excinfo:
        await PersistenceSync(api_client, "proj-1").commit(plan)

    # The refetch fails too, so the error surfaces to the caller.
    assert excinfo.value.status_code is None
    assert [request.method for request in fake_api.requests] == ["PUT", "GET"]


@pytest.mark.asyncio
async def test_malformed_refetch_never_yields_an_empty_forest(fake_api, api_client, sample_forest):
    fake_api.fail("PUT")
    fake_api.entities_payload = {"treeData": [], "testCases": []}
    plan = plan_reorder(sample_forest, "X", "Y", None, 0)

    with pytest.raises(CommitError):
        await PersistenceSync(api_client, "proj-1").commit(plan)

    assert [request.method for request in fake_api.requests] == ["PUT", "GET"]
