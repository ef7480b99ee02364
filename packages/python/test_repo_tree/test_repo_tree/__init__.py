"""Hierarchical test repository tree: build, validate, plan, apply and sync moves."""

from .client import TestRepoClient
from .errors import CommitError, NodeNotFoundError, PlanningError
from .models import (
    PLACEHOLDER_ID,
    ROOT,
    EntitySnapshot,
    Forest,
    NodeKind,
    ParentRef,
    Root,
    SectionRecord,
    SelectedNode,
    SuiteRecord,
    TestCaseRecord,
    TreeNode,
    TreeViewState,
    UnderSection,
    UnderSuite,
)
from .optimistic import (
    append_node,
    insert_placeholder,
    move_node_in_tree,
    remove_node,
    rename_node,
)
from .planner import (
    PlanItem,
    ReorderPlan,
    plan_append,
    plan_gap_closure,
    plan_move,
    plan_reorder,
)
from .session import DragGesture, GestureState, TestRepoTreeSession
from .sync import CommitOutcome, PersistenceSync
from .tree import (
    TreeIndex,
    ancestors_of,
    build_tree,
    descendants_of,
    find_node,
    flatten_tree,
    index_tree,
    is_ancestor_of,
    siblings_of,
)
from .validation import DropRejection, can_drop, check_drop

__all__ = [
    "PLACEHOLDER_ID",
    "ROOT",
    "CommitError",
    "CommitOutcome",
    "DragGesture",
    "DropRejection",
    "EntitySnapshot",
    "Forest",
    "GestureState",
    "NodeKind",
    "NodeNotFoundError",
    "ParentRef",
    "PersistenceSync",
    "PlanItem",
    "PlanningError",
    "ReorderPlan",
    "Root",
    "SectionRecord",
    "SelectedNode",
    "SuiteRecord",
    "TestCaseRecord",
    "TestRepoClient",
    "TestRepoTreeSession",
    "TreeIndex",
    "TreeNode",
    "TreeViewState",
    "UnderSection",
    "UnderSuite",
    "ancestors_of",
    "append_node",
    "build_tree",
    "can_drop",
    "check_drop",
    "descendants_of",
    "find_node",
    "flatten_tree",
    "index_tree",
    "insert_placeholder",
    "is_ancestor_of",
    "move_node_in_tree",
    "plan_append",
    "plan_gap_closure",
    "plan_move",
    "plan_reorder",
    "remove_node",
    "rename_node",
    "siblings_of",
]
