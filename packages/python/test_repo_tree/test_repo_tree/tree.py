"""Assemble flat suite/section/test case lists into an ordered forest and query it."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from loguru import logger

from .errors import NodeNotFoundError
from .models import (
    KIND_ORDER,
    ROOT,
    Forest,
    NodeKind,
    ParentRef,
    SectionRecord,
    SuiteRecord,
    TestCaseRecord,
    TreeNode,
    UnderSection,
    UnderSuite,
)


@dataclass(frozen=True, slots=True)
class FlatEntry:
    """One forest node reduced to its identity and ordering fields."""

    id: str
    kind: NodeKind
    parent: ParentRef
    display_order: int


def _by_display_order(records):
    # sorted() is stable, so equal display orders keep their input order.
    return sorted(records, key=lambda record: record.display_order)


def build_tree(
    suites: Iterable[SuiteRecord],
    sections: Iterable[SectionRecord],
    test_cases: Iterable[TestCaseRecord],
) -> Forest:
    """
    Build the forest: suites at the root, sections nested under their suite or
    parent section, test cases under their section.

    Root-level sections and unsectioned test cases follow the suites at the
    root. Sections or test cases referencing an entity missing from the input,
    and sections caught in a parent cycle, are surfaced at the root as well so
    every input entity appears exactly once.
    """

    suites = list(suites)
    sections = list(sections)
    test_cases = list(test_cases)

    suite_ids = {suite.id for suite in suites}
    section_ids = {section.id for section in sections}

    sections_by_parent: Dict[ParentRef, List[SectionRecord]] = defaultdict(list)
    root_sections: List[SectionRecord] = []
    for section in sections:
        parent = section.parent
        dangling = (isinstance(parent, UnderSuite) and parent.suite_id not in suite_ids) or (
            isinstance(parent, UnderSection) and parent.section_id not in section_ids
        )
        if dangling:
            logger.warning(
                "Section {section_id} references missing parent {parent}; surfacing at root",
                section_id=section.id,
                parent=parent,
            )
            root_sections.append(section)
        elif parent == ROOT:
            root_sections.append(section)
        else:
            sections_by_parent[parent].append(section)

    cases_by_section: Dict[Optional[str], List[TestCaseRecord]] = defaultdict(list)
    for case in test_cases:
        section_id = case.section_id
        if section_id is not None and section_id not in section_ids:
            logger.warning(
                "Test case {case_id} references missing section {section_id}; surfacing at root",
                case_id=case.id,
                section_id=section_id,
            )
            section_id = None
        cases_by_section[section_id].append(case)

    placed: set[str] = set()

    def case_node(case: TestCaseRecord, parent: ParentRef) -> TreeNode:
        return TreeNode(
            id=case.id,
            name=case.title,
            kind=NodeKind.TEST_CASE,
            parent=parent,
            display_order=case.display_order,
            data=case.node_data(),
        )

    def section_node(section: SectionRecord, parent: ParentRef) -> TreeNode:
        placed.add(section.id)
        own_ref = UnderSection(section_id=section.id)
        child_sections = []
        for child in _by_display_order(sections_by_parent.get(own_ref, ())):
            if child.id not in placed:
                child_sections.append(section_node(child, own_ref))
        child_cases = [
            case_node(case, own_ref)
            for case in _by_display_order(cases_by_section.get(section.id, ()))
        ]
        return TreeNode(
            id=section.id,
            name=section.name,
            kind=NodeKind.SECTION,
            parent=parent,
            display_order=section.display_order,
            children=tuple(child_sections + child_cases),
            data={"description": section.description} if section.description else {},
        )

    forest: List[TreeNode] = []
    for suite in _by_display_order(suites):
        own_ref = UnderSuite(suite_id=suite.id)
        children = tuple(
            section_node(section, own_ref)
            for section in _by_display_order(sections_by_parent.get(own_ref, ()))
        )
        forest.append(
            TreeNode(
                id=suite.id,
                name=suite.name,
                kind=NodeKind.SUITE,
                parent=ROOT,
                display_order=suite.display_order,
                children=children,
                data={"description": suite.description} if suite.description else {},
            )
        )

    for section in _by_display_order(root_sections):
        forest.append(section_node(section, ROOT))

    # Anything still unplaced sits on a parent cycle.
    for section in sections:
        if section.id not in placed:
            logger.warning(
                "Section {section_id} is part of a parent cycle; surfacing at root",
                section_id=section.id,
            )
            forest.append(section_node(section, ROOT))

    for case in _by_display_order(cases_by_section.get(None, ())):
        forest.append(case_node(case, ROOT))

    return tuple(forest)


def iter_nodes(forest: Forest) -> Iterator[TreeNode]:
    """Depth-first, pre-order walk of every node in the forest."""

    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten_tree(forest: Forest) -> List[FlatEntry]:
    return [
        FlatEntry(
            id=node.id,
            kind=node.kind,
            parent=node.parent,
            display_order=node.display_order,
        )
        for node in iter_nodes(forest)
    ]


class TreeIndex:
    """One-pass lookup tables over a forest: id -> node and id -> parent id."""

    def __init__(self, forest: Forest) -> None:
        self.forest = forest
        self._nodes: Dict[str, TreeNode] = {}
        self._parents: Dict[str, Optional[str]] = {}
        stack: List[tuple[TreeNode, Optional[str]]] = [(node, None) for node in forest]
        while stack:
            node, parent_id = stack.pop()
            self._nodes[node.id] = node
            self._parents[node.id] = parent_id
            stack.extend((child, node.id) for child in node.children)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get(self, node_id: str) -> Optional[TreeNode]:
        return self._nodes.get(node_id)

    def node(self, node_id: str) -> TreeNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(f"Node {node_id} not found in tree") from None

    def parent_id(self, node_id: str) -> Optional[str]:
        self.node(node_id)
        return self._parents[node_id]

    def ancestors(self, node_id: str) -> List[str]:
        """Ancestor ids of ``node_id``, nearest first."""

        result: List[str] = []
        current = self.parent_id(node_id)
        while current is not None:
            result.append(current)
            current = self._parents.get(current)
        return result

    def is_ancestor(self, ancestor_id: str, node_id: str) -> bool:
        if ancestor_id not in self._nodes or node_id not in self._nodes:
            return False
        current = self._parents.get(node_id)
        while current is not None:
            if current == ancestor_id:
                return True
            current = self._parents.get(current)
        return False

    def children_of(self, parent_id: Optional[str]) -> Sequence[TreeNode]:
        if parent_id is None:
            return self.forest
        return self.node(parent_id).children


def index_tree(forest: Forest) -> TreeIndex:
    return TreeIndex(forest)


def find_node(forest: Forest, node_id: str) -> Optional[TreeNode]:
    for node in iter_nodes(forest):
        if node.id == node_id:
            return node
    return None


def ancestors_of(forest: Forest, node_id: str) -> List[str]:
    return index_tree(forest).ancestors(node_id)


def is_ancestor_of(forest: Forest, ancestor_id: str, node_id: str) -> bool:
    """True when ``ancestor_id`` lies strictly above ``node_id``."""

    return index_tree(forest).is_ancestor(ancestor_id, node_id)


def descendants_of(forest: Forest, node_id: str) -> List[str]:
    node = find_node(forest, node_id)
    if node is None:
        raise NodeNotFoundError(f"Node {node_id} not found in tree")
    return [descendant.id for descendant in iter_nodes(node.children)]


def of_kind(nodes: Iterable[TreeNode], kind: NodeKind) -> List[TreeNode]:
    return [node for node in nodes if node.kind == kind]


def scope_members(forest: Forest, parent_id: Optional[str], kind: NodeKind) -> List[TreeNode]:
    """Nodes of ``kind`` directly under ``parent_id`` (``None`` for the root), in order."""

    return of_kind(index_tree(forest).children_of(parent_id), kind)


def siblings_of(forest: Forest, node_id: str) -> List[TreeNode]:
    """Other members of the node's sibling scope, in order."""

    index = index_tree(forest)
    node = index.node(node_id)
    members = of_kind(index.children_of(index.parent_id(node_id)), node.kind)
    return [member for member in members if member.id != node.id]


def arrange_children(nodes: Iterable[TreeNode]) -> tuple[TreeNode, ...]:
    """Lay out a child array as kind groups in ``KIND_ORDER``, keeping each group's order."""

    nodes = list(nodes)
    arranged: List[TreeNode] = []
    for kind in KIND_ORDER:
        arranged.extend(of_kind(nodes, kind))
    return tuple(arranged)
