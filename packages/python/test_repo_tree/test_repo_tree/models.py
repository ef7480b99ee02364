"""Pydantic models and tree node types for the test repository tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

PLACEHOLDER_ID = "__creating__"


class NodeKind(str, Enum):
    """Entity kinds living in the tree. Values match the reorder wire format."""

    SUITE = "suite"
    SECTION = "section"
    TEST_CASE = "testCase"


# Order in which kind groups are laid out inside one child array.
KIND_ORDER = (NodeKind.SUITE, NodeKind.SECTION, NodeKind.TEST_CASE)


# ---------------------------------------------------------------------------
# Parent references
# ---------------------------------------------------------------------------


class Root(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["root"] = "root"


class UnderSuite(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["suite"] = "suite"
    suite_id: str


class UnderSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["section"] = "section"
    section_id: str


ParentRef = Annotated[Union[Root, UnderSuite, UnderSection], Field(discriminator="kind")]

ROOT = Root()


def parent_ref_for(parent_id: Optional[str], parent_kind: Optional[NodeKind]) -> ParentRef:
    """Build the parent reference for a child placed under ``parent_id``."""

    if parent_id is None:
        return ROOT
    if parent_kind == NodeKind.SUITE:
        return UnderSuite(suite_id=parent_id)
    if parent_kind == NodeKind.SECTION:
        return UnderSection(section_id=parent_id)
    raise ValueError(f"{parent_kind} nodes cannot hold children")


def parent_id_of(ref: ParentRef) -> Optional[str]:
    if isinstance(ref, UnderSuite):
        return ref.suite_id
    if isinstance(ref, UnderSection):
        return ref.section_id
    return None


# Valid parent reference types per kind.
VALID_PARENTS = {
    NodeKind.SUITE: (Root,),
    NodeKind.SECTION: (Root, UnderSuite, UnderSection),
    NodeKind.TEST_CASE: (Root, UnderSection),
}


# ---------------------------------------------------------------------------
# Flat entity records supplied by the storage layer
# ---------------------------------------------------------------------------


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuiteRecord(_Record):
    """A test suite row. Suites always live at the root."""

    id: str
    name: str
    description: Optional[str] = None
    display_order: int = 0


class SectionRecord(_Record):
    """A section row; at most one of ``suite_id``/``parent_id`` may be set."""

    id: str
    name: str
    description: Optional[str] = None
    suite_id: Optional[str] = None
    parent_id: Optional[str] = None
    display_order: int = 0

    @model_validator(mode="after")
    def check_single_parent(self) -> "SectionRecord":
        if self.suite_id is not None and self.parent_id is not None:
            raise ValueError(f"Section {self.id} has both suiteId and parentId set")
        return self

    @property
    def parent(self) -> ParentRef:
        if self.parent_id is not None:
            return UnderSection(section_id=self.parent_id)
        if self.suite_id is not None:
            return UnderSuite(suite_id=self.suite_id)
        return ROOT


class TestCaseRecord(_Record):
    """A test case row. Unknown fields are kept and exposed on the node."""

    __test__ = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    title: str
    section_id: Optional[str] = None
    display_order: int = 0
    priority: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None

    @property
    def parent(self) -> ParentRef:
        if self.section_id is None:
            return ROOT
        return UnderSection(section_id=self.section_id)

    def node_data(self) -> dict[str, Any]:
        data = self.model_dump(
            include={"priority", "status", "type"},
            exclude_none=True,
        )
        data.update(self.model_extra or {})
        return data


class EntitySnapshot(_Record):
    """The canonical entity lists for one project."""

    suites: list[SuiteRecord]
    sections: list[SectionRecord]
    test_cases: list[TestCaseRecord]


# ---------------------------------------------------------------------------
# In-memory forest
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TreeNode:
    """Immutable node of the rendered forest."""

    id: str
    name: str
    kind: NodeKind
    parent: ParentRef = ROOT
    display_order: int = 0
    children: Tuple["TreeNode", ...] = ()
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_leaf(self) -> bool:
        return self.kind == NodeKind.TEST_CASE

    @property
    def is_placeholder(self) -> bool:
        return self.id == PLACEHOLDER_ID


Forest = Tuple[TreeNode, ...]


# ---------------------------------------------------------------------------
# Tree view state
# ---------------------------------------------------------------------------


class SelectedNode(BaseModel):
    id: str
    kind: NodeKind


class TreeViewState(BaseModel):
    """
    UI state for the test repository tree.

    - expanded_ids: which sections/suites are open
    - selected: which node is focused in the tree, if any
    - panel_width: width of the tree panel in pixels
    """

    expanded_ids: list[str] = Field(default_factory=list)
    selected: Optional[SelectedNode] = None
    panel_width: int = 280

    def is_open(self, node_id: str) -> bool:
        return node_id in self.expanded_ids

    def set_open(self, node_id: str, is_open: bool) -> "TreeViewState":
        if is_open == self.is_open(node_id):
            return self
        if is_open:
            expanded = [*self.expanded_ids, node_id]
        else:
            expanded = [value for value in self.expanded_ids if value != node_id]
        return self.model_copy(update={"expanded_ids": expanded})

    def toggle(self, node_id: str) -> "TreeViewState":
        return self.set_open(node_id, not self.is_open(node_id))

    def select(self, node: Optional[TreeNode]) -> "TreeViewState":
        if node is None:
            return self.model_copy(update={"selected": None})
        if node.is_placeholder:
            return self
        return self.model_copy(update={"selected": SelectedNode(id=node.id, kind=node.kind)})
