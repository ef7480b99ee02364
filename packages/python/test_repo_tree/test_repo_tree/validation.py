"""Drop validation for drag-and-drop moves in the test repository tree."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .models import VALID_PARENTS, Forest, NodeKind, TreeNode, parent_ref_for
from .tree import TreeIndex, index_tree


class DropRejection(str, Enum):
    """Reason a drop was refused, in the order the rules are checked."""

    LEAF_TARGET = "leaf_target"
    NESTED_SUITE = "nested_suite"
    CYCLE = "cycle"
    PLACEHOLDER_SOURCE = "placeholder_source"
    PLACEHOLDER_TARGET = "placeholder_target"
    INVALID_PARENT_KIND = "invalid_parent_kind"
    INVALID_INDEX = "invalid_index"


def check_drop(
    forest: Forest | TreeIndex,
    drag_node: TreeNode,
    target_parent: Optional[TreeNode],
    index: int,
) -> Optional[DropRejection]:
    """
    Return the first rule ``drag_node`` breaks when dropped under
    ``target_parent`` (``None`` is the forest root), or ``None`` if the drop
    is allowed.

    Rules:
      1. test cases are leaves and accept no children
      2. suites only live at the root
      3. a node cannot be dropped onto itself or into its own subtree
      4. the inline-create placeholder is never a drag source, nor a target
      5. the target must be a valid parent kind for the dragged node
    """

    tree = forest if isinstance(forest, TreeIndex) else index_tree(forest)

    if target_parent is not None and target_parent.kind == NodeKind.TEST_CASE:
        return DropRejection.LEAF_TARGET

    if drag_node.kind == NodeKind.SUITE and target_parent is not None:
        return DropRejection.NESTED_SUITE

    if target_parent is not None and (
        target_parent.id == drag_node.id or tree.is_ancestor(drag_node.id, target_parent.id)
    ):
        return DropRejection.CYCLE

    if drag_node.is_placeholder:
        return DropRejection.PLACEHOLDER_SOURCE

    if target_parent is not None and target_parent.is_placeholder:
        return DropRejection.PLACEHOLDER_TARGET

    parent_ref = parent_ref_for(
        target_parent.id if target_parent is not None else None,
        target_parent.kind if target_parent is not None else None,
    )
    if not isinstance(parent_ref, VALID_PARENTS[drag_node.kind]):
        return DropRejection.INVALID_PARENT_KIND

    if index < 0:
        return DropRejection.INVALID_INDEX

    return None


def can_drop(
    forest: Forest | TreeIndex,
    drag_node: TreeNode,
    target_parent: Optional[TreeNode],
    index: int,
) -> bool:
    return check_drop(forest, drag_node, target_parent, index) is None
