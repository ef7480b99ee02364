"""Compute the displayOrder/parent updates that realise a drag-and-drop move."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import NodeNotFoundError, PlanningError
from .models import (
    ROOT,
    Forest,
    NodeKind,
    ParentRef,
    TreeNode,
    UnderSection,
    UnderSuite,
    parent_id_of,
)
from .tree import TreeIndex, index_tree, of_kind


@dataclass(frozen=True, slots=True)
class PlanItem:
    """One entity update. ``parent`` is set only when the entity changes scope."""

    id: str
    kind: NodeKind
    display_order: int
    parent: Optional[ParentRef] = None

    def to_wire(self) -> Dict[str, object]:
        """Serialise to one ``items`` entry of the reorder request."""

        payload: Dict[str, object] = {
            "id": self.id,
            "type": self.kind.value,
            "displayOrder": self.display_order,
        }
        if self.parent is None:
            return payload
        if self.kind == NodeKind.SECTION:
            payload["suiteId"] = self.parent.suite_id if isinstance(self.parent, UnderSuite) else None
            payload["parentId"] = (
                self.parent.section_id if isinstance(self.parent, UnderSection) else None
            )
        elif self.kind == NodeKind.TEST_CASE:
            payload["sectionId"] = (
                self.parent.section_id if isinstance(self.parent, UnderSection) else None
            )
        return payload


@dataclass(frozen=True, slots=True)
class ReorderPlan:
    """Destination updates plus the re-index of the scope the node left."""

    node_id: str
    destination: ParentRef
    moves: List[PlanItem] = field(default_factory=list)
    gap_closure: List[PlanItem] = field(default_factory=list)

    @property
    def items(self) -> List[PlanItem]:
        return [*self.moves, *self.gap_closure]

    @property
    def is_empty(self) -> bool:
        return not self.moves and not self.gap_closure

    def __len__(self) -> int:
        return len(self.moves) + len(self.gap_closure)


def _tree(forest: Forest | TreeIndex) -> TreeIndex:
    return forest if isinstance(forest, TreeIndex) else index_tree(forest)


def _lookup(tree: TreeIndex, node_id: str, role: str) -> TreeNode:
    try:
        return tree.node(node_id)
    except NodeNotFoundError as exc:
        raise PlanningError(f"{role} {node_id} is not in the tree") from exc


def resolve_destination(
    forest: Forest | TreeIndex,
    new_parent_id: Optional[str],
    new_parent_kind: Optional[NodeKind],
) -> ParentRef:
    """
    Map a drop target onto the parent reference of the destination scope.

    A test case target stands for the scope that test case lives in.
    """

    tree = _tree(forest)
    if new_parent_id is None:
        return ROOT
    parent = _lookup(tree, new_parent_id, "Parent")
    if new_parent_kind is not None and parent.kind != new_parent_kind:
        raise PlanningError(
            f"Parent {new_parent_id} is a {parent.kind.value}, not a {new_parent_kind.value}"
        )
    if parent.kind == NodeKind.SUITE:
        return UnderSuite(suite_id=parent.id)
    if parent.kind == NodeKind.SECTION:
        return UnderSection(section_id=parent.id)
    return parent.parent


def _scope(tree: TreeIndex, parent: ParentRef, kind: NodeKind) -> List[TreeNode]:
    parent_id = parent_id_of(parent)
    if parent_id is None:
        return of_kind(tree.forest, kind)
    holder = _lookup(tree, parent_id, "Parent")
    if holder.is_leaf:
        raise PlanningError(f"Parent {parent_id} is a test case and holds no children")
    return of_kind(holder.children, kind)


def plan_move(
    forest: Forest | TreeIndex,
    drag_id: str,
    new_parent_id: Optional[str],
    new_parent_kind: Optional[NodeKind],
    index: int,
) -> List[PlanItem]:
    """
    Plan the destination side of a move: put ``drag_id`` at position ``index``
    of the destination sibling scope and renumber that scope.

    ``index`` is the final position among same-kind siblings, counted with the
    dragged node removed; it is clamped to the scope bounds. Only entries whose
    display order or parent reference actually changes are returned. The
    dragged node is inserted ahead of whatever currently holds ``index``, so it
    takes the lower slot on a tie.
    """

    tree = _tree(forest)
    drag = _lookup(tree, drag_id, "Node")
    destination = resolve_destination(tree, new_parent_id, new_parent_kind)

    ordered = [
        member
        for member in _scope(tree, destination, drag.kind)
        if member.id != drag.id and not member.is_placeholder
    ]
    position = max(0, min(index, len(ordered)))
    ordered.insert(position, drag)

    reparented = drag.parent != destination
    items: List[PlanItem] = []
    for display_order, member in enumerate(ordered):
        if member.id == drag.id and reparented:
            items.append(PlanItem(member.id, member.kind, display_order, destination))
        elif member.display_order != display_order:
            items.append(PlanItem(member.id, member.kind, display_order))
    return items


def plan_gap_closure(
    forest: Forest | TreeIndex,
    drag_id: str,
    destination: ParentRef,
) -> List[PlanItem]:
    """Renumber the scope ``drag_id`` leaves when it moves to ``destination``."""

    tree = _tree(forest)
    drag = _lookup(tree, drag_id, "Node")
    if drag.parent == destination:
        return []

    items: List[PlanItem] = []
    remaining = [
        member
        for member in _scope(tree, drag.parent, drag.kind)
        if member.id != drag.id and not member.is_placeholder
    ]
    for display_order, member in enumerate(remaining):
        if member.display_order != display_order:
            items.append(PlanItem(member.id, member.kind, display_order))
    return items


def plan_reorder(
    forest: Forest | TreeIndex,
    drag_id: str,
    new_parent_id: Optional[str],
    new_parent_kind: Optional[NodeKind],
    index: int,
) -> ReorderPlan:
    tree = _tree(forest)
    destination = resolve_destination(tree, new_parent_id, new_parent_kind)
    return ReorderPlan(
        node_id=drag_id,
        destination=destination,
        moves=plan_move(tree, drag_id, new_parent_id, new_parent_kind, index),
        gap_closure=plan_gap_closure(tree, drag_id, destination),
    )


def plan_append(forest: Forest | TreeIndex, parent: ParentRef, kind: NodeKind) -> int:
    """Display order a newly created node takes at the end of its scope."""

    tree = _tree(forest)
    members = [member for member in _scope(tree, parent, kind) if not member.is_placeholder]
    return len(members)

