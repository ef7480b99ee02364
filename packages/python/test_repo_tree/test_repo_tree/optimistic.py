"""Immutable, synchronous edits applied to the client-held forest before the server answers."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Tuple

from .models import (
    PLACEHOLDER_ID,
    Forest,
    NodeKind,
    ParentRef,
    TreeNode,
    parent_id_of,
    parent_ref_for,
)
from .tree import TreeIndex, arrange_children, index_tree, of_kind

Children = Tuple[TreeNode, ...]


def _renumber(children: Children, kind: NodeKind) -> Children:
    """Make ``display_order`` of the ``kind`` group dense, reusing unchanged nodes."""

    position = 0
    result = []
    changed = False
    for child in children:
        if child.kind == kind and not child.is_placeholder:
            if child.display_order != position:
                child = replace(child, display_order=position)
                changed = True
            position += 1
        result.append(child)
    return tuple(result) if changed else children


def _update_children(
    forest: Forest,
    parent_id: Optional[str],
    update: Callable[[Children], Children],
) -> Forest:
    """Rebuild only the path down to ``parent_id`` with ``update`` applied to its children."""

    if parent_id is None:
        return update(forest)

    def walk(nodes: Children) -> Children:
        result = []
        changed = False
        for node in nodes:
            if node.id == parent_id:
                children = update(node.children)
                if children is not node.children:
                    node = replace(node, children=children)
                    changed = True
            elif node.children:
                children = walk(node.children)
                if children is not node.children:
                    node = replace(node, children=children)
                    changed = True
            result.append(node)
        return tuple(result) if changed else nodes

    return walk(forest)


def _insert(children: Children, node: TreeNode, index: int) -> Children:
    placeholders = [child for child in children if child.is_placeholder]
    rest = [child for child in children if not child.is_placeholder and child.id != node.id]
    group = of_kind(rest, node.kind)
    position = max(0, min(index, len(group)))
    group.insert(position, node)
    others = [child for child in rest if child.kind != node.kind]
    return _renumber((*placeholders, *arrange_children([*others, *group])), node.kind)


def _detach(tree: TreeIndex, node_id: str) -> Optional[tuple[Forest, TreeNode, Optional[str]]]:
    node = tree.get(node_id)
    if node is None:
        return None
    parent_id = tree.parent_id(node_id)

    def drop(children: Children) -> Children:
        remaining = tuple(child for child in children if child.id != node_id)
        return _renumber(remaining, node.kind)

    return _update_children(tree.forest, parent_id, drop), node, parent_id


def move_node_in_tree(
    forest: Forest,
    node_id: str,
    new_parent_id: Optional[str],
    index: int,
) -> Forest:
    """
    Move ``node_id`` under ``new_parent_id`` (``None`` for the root) at
    position ``index`` of its sibling scope and return a new forest.

    Both the vacated and the destination scope are renumbered densely and the
    moved node's parent reference is updated. Subtrees off the changed paths
    are shared with the input. Unknown node or parent ids return ``forest``
    itself.
    """

    tree = index_tree(forest)
    node = tree.get(node_id)
    if node is None:
        return forest

    if new_parent_id is None:
        destination: ParentRef = parent_ref_for(None, None)
    else:
        parent = tree.get(new_parent_id)
        if (
            parent is None
            or parent.is_leaf
            or parent.id == node_id
            or tree.is_ancestor(node_id, new_parent_id)
        ):
            return forest
        destination = parent_ref_for(parent.id, parent.kind)

    detached = _detach(tree, node_id)
    if detached is None:
        return forest
    remaining, node, _ = detached

    moved = replace(node, parent=destination) if node.parent != destination else node
    return _update_children(remaining, new_parent_id, lambda children: _insert(children, moved, index))


def remove_node(forest: Forest, node_id: str) -> Forest:
    """Drop ``node_id`` and its subtree, closing the gap in its sibling scope."""

    detached = _detach(index_tree(forest), node_id)
    if detached is None:
        return forest
    return detached[0]


def rename_node(forest: Forest, node_id: str, name: str) -> Forest:
    tree = index_tree(forest)
    node = tree.get(node_id)
    if node is None or node.name == name:
        return forest

    def rename(children: Children) -> Children:
        return tuple(replace(child, name=name) if child.id == node_id else child for child in children)

    return _update_children(forest, tree.parent_id(node_id), rename)


def append_node(forest: Forest, node: TreeNode) -> Forest:
    """Place a freshly created node at the end of its sibling scope."""

    parent_id = parent_id_of(node.parent)
    if parent_id is not None and parent_id not in index_tree(forest):
        return forest
    return _update_children(forest, parent_id, lambda children: _insert(children, node, len(children)))


def placeholder_node(parent_id: Optional[str], parent_kind: Optional[NodeKind]) -> TreeNode:
    """The transient node shown while a folder name is being typed."""

    kind = NodeKind.SUITE if parent_id is None else NodeKind.SECTION
    return TreeNode(
        id=PLACEHOLDER_ID,
        name="",
        kind=kind,
        parent=parent_ref_for(parent_id, parent_kind),
    )


def insert_placeholder(forest: Forest, parent_id: Optional[str]) -> Forest:
    """
    Prepend the inline-create placeholder to ``parent_id``'s children (or the
    root). The placeholder does not take part in display ordering.
    """

    if parent_id is None:
        return (placeholder_node(None, None), *forest)
    parent = index_tree(forest).get(parent_id)
    if parent is None or parent.is_leaf:
        return forest
    placeholder = placeholder_node(parent.id, parent.kind)
    return _update_children(forest, parent_id, lambda children: (placeholder, *children))
