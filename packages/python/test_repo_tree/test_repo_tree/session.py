"""Interactive session over one project's tree: drag gestures, inline edits and view state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Coroutine, Iterable, List, Optional

from loguru import logger

from .client import TestRepoClient
from .errors import CommitError, NodeNotFoundError, PlanningError
from .models import (
    Forest,
    NodeKind,
    TreeNode,
    TreeViewState,
    parent_ref_for,
)
from .optimistic import (
    append_node,
    insert_placeholder,
    move_node_in_tree,
    remove_node,
    rename_node,
)
from .planner import ReorderPlan, plan_append, plan_reorder
from .sync import PersistenceSync
from .tree import index_tree, iter_nodes
from .validation import DropRejection, check_drop

ForestListener = Callable[[Forest], None]
ViewStateHook = Callable[[TreeViewState], Awaitable[None]]


class GestureState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    REJECTED = "rejected"
    PLANNED_LOCALLY = "planned_locally"
    COMMITTED = "committed"
    RECONCILED = "reconciled"


@dataclass(slots=True)
class DragGesture:
    """One drag from pick-up to its final state."""

    node_id: str
    state: GestureState = GestureState.DRAGGING
    target_parent_id: Optional[str] = None
    index: Optional[int] = None
    rejection: Optional[DropRejection] = None
    plan: Optional[ReorderPlan] = None
    error: Optional[Exception] = None


@dataclass(frozen=True, slots=True)
class _InlineCreate:
    parent_id: Optional[str]


class TestRepoTreeSession:
    """
    Holds the optimistic forest of one project and the explicit view state
    rendered next to it.

    Everything here runs on the event loop thread. Drops are validated,
    planned and applied synchronously; only the commit runs in the
    background. A second drop may be planned while an earlier commit is
    still in flight; it is planned against the optimistic forest.
    """

    __test__ = False

    def __init__(
        self,
        project_id: str,
        client: TestRepoClient,
        forest: Iterable[TreeNode] = (),
        view_state: Optional[TreeViewState] = None,
        persist_view_state: Optional[ViewStateHook] = None,
    ) -> None:
        self.project_id = project_id
        self.client = client
        self.sync = PersistenceSync(client, project_id)
        self.view_state = view_state or TreeViewState()
        self.active_gesture: Optional[DragGesture] = None
        self._forest: Forest = tuple(forest)
        self._persist_view_state = persist_view_state
        self._listeners: List[ForestListener] = []
        self._pending: set[asyncio.Task] = set()
        self._creating: Optional[_InlineCreate] = None
        self._display: Optional[tuple[Forest, _InlineCreate, Forest]] = None

    # -----------------------------------------------------------------------
    # Forest access and change notification
    # -----------------------------------------------------------------------

    @property
    def forest(self) -> Forest:
        return self._forest

    @property
    def display_forest(self) -> Forest:
        """The forest as rendered, including the inline-create placeholder."""

        creating = self._creating
        if creating is None:
            return self._forest
        cached = self._display
        if cached is not None and cached[0] is self._forest and cached[1] is creating:
            return cached[2]
        display = insert_placeholder(self._forest, creating.parent_id)
        self._display = (self._forest, creating, display)
        return display

    @property
    def state(self) -> GestureState:
        return GestureState.DRAGGING if self.active_gesture is not None else GestureState.IDLE

    @property
    def is_creating(self) -> bool:
        return self._creating is not None

    def subscribe(self, listener: ForestListener) -> Callable[[], None]:
        """Call ``listener`` with the display forest whenever it changes."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        forest = self.display_forest
        for listener in list(self._listeners):
            listener(forest)

    def _set_forest(self, forest: Forest) -> None:
        if forest is self._forest:
            return
        self._forest = forest
        self._notify()

    async def load(self) -> Forest:
        """Replace the local forest with one rebuilt from the server."""

        forest = await self.sync.reconcile()
        self._set_forest(forest)
        return forest

    # -----------------------------------------------------------------------
    # Background work
    # -----------------------------------------------------------------------

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(
                "Background tree sync failed for project {project_id}",
                project_id=self.project_id,
            )

    async def wait_for_pending(self) -> None:
        """Wait until every in-flight commit has resolved."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # -----------------------------------------------------------------------
    # Drag and drop
    # -----------------------------------------------------------------------

    def begin_drag(self, node_id: str) -> DragGesture:
        gesture = DragGesture(node_id=node_id)
        self.active_gesture = gesture
        return gesture

    def cancel_drag(self, gesture: DragGesture) -> DragGesture:
        if self.active_gesture is gesture:
            self.active_gesture = None
        if gesture.state == GestureState.DRAGGING:
            gesture.state = GestureState.REJECTED
        return gesture

    def _reject(
        self,
        gesture: DragGesture,
        rejection: Optional[DropRejection] = None,
        error: Optional[Exception] = None,
    ) -> DragGesture:
        gesture.state = GestureState.REJECTED
        gesture.rejection = rejection
        gesture.error = error
        return gesture

    def drop(self, gesture: DragGesture, target_parent_id: Optional[str], index: int) -> DragGesture:
        """
        Finish ``gesture`` by dropping it under ``target_parent_id`` (``None``
        for the root) at ``index`` of the destination sibling scope.

        A rejected drop leaves the forest untouched. An accepted drop is
        applied to the forest before this returns and committed in the
        background.
        """

        if gesture.state != GestureState.DRAGGING:
            raise RuntimeError(f"Gesture for {gesture.node_id} already finished as {gesture.state.value}")
        if self.active_gesture is gesture:
            self.active_gesture = None
        gesture.target_parent_id = target_parent_id
        gesture.index = index

        tree = index_tree(self.display_forest)
        drag = tree.get(gesture.node_id)
        target = tree.get(target_parent_id) if target_parent_id is not None else None
        if drag is None or (target_parent_id is not None and target is None):
            error = PlanningError(
                f"Cannot move {gesture.node_id} under {target_parent_id}: node missing from tree"
            )
            logger.error("Aborting move in project {project_id}: {error}", project_id=self.project_id, error=error)
            return self._reject(gesture, error=error)

        rejection = check_drop(tree, drag, target, index)
        if rejection is not None:
            logger.debug(
                "Drop of {node_id} under {parent_id} rejected: {reason}",
                node_id=drag.id,
                parent_id=target_parent_id,
                reason=rejection.value,
            )
            return self._reject(gesture, rejection=rejection)

        try:
            plan = plan_reorder(
                tree,
                drag.id,
                target_parent_id,
                target.kind if target is not None else None,
                index,
            )
        except PlanningError as exc:
            logger.error("Aborting move in project {project_id}: {error}", project_id=self.project_id, error=exc)
            return self._reject(gesture, error=exc)

        gesture.plan = plan
        gesture.state = GestureState.PLANNED_LOCALLY
        self._set_forest(move_node_in_tree(self._forest, drag.id, target_parent_id, index))
        if target_parent_id is not None:
            self.set_open(target_parent_id, True)

        if plan.is_empty:
            gesture.state = GestureState.COMMITTED
            return gesture

        self._spawn(self._commit(gesture, plan))
        return gesture

    def move(self, node_id: str, target_parent_id: Optional[str], index: int) -> DragGesture:
        return self.drop(self.begin_drag(node_id), target_parent_id, index)

    async def _commit(self, gesture: DragGesture, plan: ReorderPlan) -> None:
        outcome = await self.sync.commit(plan)
        if outcome.committed:
            gesture.state = GestureState.COMMITTED
            return
        gesture.error = outcome.error
        gesture.state = GestureState.RECONCILED
        if outcome.forest is not None:
            self._set_forest(outcome.forest)

    # -----------------------------------------------------------------------
    # Inline create, rename, delete, clone
    # -----------------------------------------------------------------------

    def start_create(self, parent_id: Optional[str] = None) -> None:
        """Show the placeholder folder under ``parent_id`` until a name is submitted."""

        if parent_id is not None:
            parent = index_tree(self._forest).get(parent_id)
            if parent is None:
                raise NodeNotFoundError(f"Node {parent_id} not found in tree")
            if parent.is_leaf:
                raise ValueError(f"Cannot create a folder inside test case {parent_id}")
        self._creating = _InlineCreate(parent_id=parent_id)
        if parent_id is not None:
            self.set_open(parent_id, True)
        self._notify()

    def cancel_create(self) -> None:
        if self._creating is None:
            return
        self._creating = None
        self._notify()

    async def finish_create(self, name: str) -> Optional[TreeNode]:
        """
        Create the folder being typed: a suite at the root, a section anywhere
        else. A blank name cancels. The placeholder is removed either way.
        """

        creating = self._creating
        if creating is None:
            return None
        trimmed = name.strip()
        try:
            if not trimmed:
                return None
            node = await self._create_folder(creating.parent_id, trimmed)
            self._forest = append_node(self._forest, node)
            return node
        finally:
            self._creating = None
            self._notify()

    async def _create_folder(self, parent_id: Optional[str], name: str) -> TreeNode:
        if parent_id is None:
            position = plan_append(self._forest, parent_ref_for(None, None), NodeKind.SUITE)
            suite = await self.client.create_suite(self.project_id, name)
            return TreeNode(id=suite.id, name=suite.name, kind=NodeKind.SUITE, display_order=position)

        parent = index_tree(self._forest).get(parent_id)
        if parent is None:
            raise NodeNotFoundError(f"Node {parent_id} not found in tree")
        parent_ref = parent_ref_for(parent.id, parent.kind)
        position = plan_append(self._forest, parent_ref, NodeKind.SECTION)
        section = await self.client.create_section(self.project_id, name, parent_ref)
        return TreeNode(
            id=section.id,
            name=section.name,
            kind=NodeKind.SECTION,
            parent=parent_ref,
            display_order=position,
        )

    async def rename(self, node_id: str, name: str) -> bool:
        """Rename locally, then on the server. Returns False when nothing was saved."""

        trimmed = name.strip()
        if not trimmed:
            return False
        node = index_tree(self._forest).node(node_id)
        self._set_forest(rename_node(self._forest, node_id, trimmed))
        try:
            await self.client.rename_node(self.project_id, node_id, node.kind, trimmed)
        except CommitError as exc:
            logger.warning("Rename of {node_id} failed: {error}; reconciling", node_id=node_id, error=exc)
            await self.load()
            return False
        return True

    async def delete(self, node_id: str) -> bool:
        """
        Remove a node and its subtree from the local forest, then delete it on
        the server. The server cascades to descendants.
        """

        node = index_tree(self._forest).node(node_id)
        removed = {descendant.id for descendant in iter_nodes((node,))}
        previous_view_state = self.view_state
        self._set_forest(remove_node(self._forest, node_id))
        self._forget(removed)
        try:
            await self.client.delete_node(self.project_id, node_id, node.kind)
        except CommitError as exc:
            logger.warning("Delete of {node_id} failed: {error}; reconciling", node_id=node_id, error=exc)
            await self.load()
            self._set_view_state(previous_view_state)
            return False
        return True

    async def clone(self, test_case_id: str) -> bool:
        """Copy a test case on the server, then reload to pick up the server-assigned id."""

        node = index_tree(self._forest).node(test_case_id)
        if node.kind != NodeKind.TEST_CASE:
            raise ValueError(f"Only test cases can be cloned, {test_case_id} is a {node.kind.value}")
        try:
            await self.client.clone_test_case(self.project_id, test_case_id)
        except CommitError as exc:
            logger.warning("Clone of {node_id} failed: {error}; reconciling", node_id=test_case_id, error=exc)
            await self.load()
            return False
        await self.load()
        return True

    # -----------------------------------------------------------------------
    # View state
    # -----------------------------------------------------------------------

    def _set_view_state(self, state: TreeViewState) -> None:
        if state is self.view_state:
            return
        self.view_state = state
        if self._persist_view_state is not None:
            self._spawn(self._save_view_state(state))

    async def _save_view_state(self, state: TreeViewState) -> None:
        try:
            await self._persist_view_state(state)
        except CommitError as exc:
            logger.warning(
                "Saving tree view state for project {project_id} failed: {error}",
                project_id=self.project_id,
                error=exc,
            )

    def toggle(self, node_id: str) -> None:
        self._set_view_state(self.view_state.toggle(node_id))

    def set_open(self, node_id: str, is_open: bool) -> None:
        self._set_view_state(self.view_state.set_open(node_id, is_open))

    def select(self, node_id: Optional[str]) -> None:
        node = index_tree(self.display_forest).get(node_id) if node_id is not None else None
        self._set_view_state(self.view_state.select(node))

    def _forget(self, node_ids: set[str]) -> None:
        state = self.view_state
        expanded = [value for value in state.expanded_ids if value not in node_ids]
        selected = state.selected if state.selected is None or state.selected.id not in node_ids else None
        if expanded != state.expanded_ids or selected is not state.selected:
            self._set_view_state(state.model_copy(update={"expanded_ids": expanded, "selected": selected}))
