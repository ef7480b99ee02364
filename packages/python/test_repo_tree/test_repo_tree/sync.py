"""Commit reorder plans and rebuild the forest from server truth when a commit fails."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from loguru import logger

from .client import TestRepoClient
from .errors import CommitError
from .models import Forest
from .planner import PlanItem, ReorderPlan
from .tree import build_tree


@dataclass(frozen=True, slots=True)
class CommitOutcome:
    """Result of one commit. ``forest`` is set only when the tree was rebuilt."""

    committed: bool
    forest: Optional[Forest] = None
    error: Optional[CommitError] = None


class PersistenceSync:
    """
    Send plans to the reorder endpoint and reconcile on failure.

    There is no rollback log: a failed commit discards the optimistic forest
    and the caller receives a forest rebuilt from a fresh fetch of the
    canonical entity lists. Commits are never retried.
    """

    def __init__(self, client: TestRepoClient, project_id: str) -> None:
        self.client = client
        self.project_id = project_id

    async def commit(self, plan: Union[ReorderPlan, Sequence[PlanItem]]) -> CommitOutcome:
        items = plan.items if isinstance(plan, ReorderPlan) else list(plan)
        if not items:
            return CommitOutcome(committed=True)

        try:
            await self.client.reorder(self.project_id, items)
        except CommitError as exc:
            logger.warning(
                "Reorder of {count} items in project {project_id} failed: {error}; reconciling",
                count=len(items),
                project_id=self.project_id,
                error=exc,
            )
            forest = await self.reconcile()
            return CommitOutcome(committed=False, forest=forest, error=exc)

        logger.debug(
            "Committed reorder of {count} items in project {project_id}",
            count=len(items),
            project_id=self.project_id,
        )
        return CommitOutcome(committed=True)

    async def reconcile(self) -> Forest:
        """Refetch the canonical lists and rebuild the whole forest."""

        snapshot = await self.client.fetch_entities(self.project_id)
        forest = build_tree(snapshot.suites, snapshot.sections, snapshot.test_cases)
        logger.info(
            "Rebuilt tree for project {project_id}: {suites} suites, {sections} sections, {cases} test cases",
            project_id=self.project_id,
            suites=len(snapshot.suites),
            sections=len(snapshot.sections),
            cases=len(snapshot.test_cases),
        )
        return forest
