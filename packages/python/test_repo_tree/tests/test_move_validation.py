from __future__ import annotations

import pytest

from test_repo_tree.models import PLACEHOLDER_ID
from test_repo_tree.optimistic import insert_placeholder
from test_repo_tree.tree import find_node
from test_repo_tree.validation import DropRejection, can_drop, check_drop


@pytest.fixture()
def node(sample_forest):
    def _node(node_id):
        if node_id is None:
            return None
        return find_node(sample_forest, node_id)

    return _node


@pytest.mark.parametrize(
    "drag_id, target_id",
    [
        ("X", "Y"),  # section into another suite's section
        ("X", "P2"),  # section into another suite
        ("X", None),  # section orphaned at the root
        ("A", "Y"),  # test case into another section
        ("A", None),  # test case unsectioned
        ("P2", None),  # suite reordered at the root
        ("O", "N"),  # root section nested under a section
    ],
)
def test_allowed_drops(sample_forest, node, drag_id, target_id):
    assert can_drop(sample_forest, node(drag_id), node(target_id), 0)


@pytest.mark.parametrize(
    "drag_id, target_id, reason",
    [
        ("X", "A", DropRejection.LEAF_TARGET),
        ("P1", "A", DropRejection.LEAF_TARGET),
        ("P1", "P2", DropRejection.NESTED_SUITE),
        ("P1", "Y", DropRejection.NESTED_SUITE),
        ("Y", "Y", DropRejection.CYCLE),
        ("Y", "M", DropRejection.CYCLE),
        ("A", "P1", DropRejection.INVALID_PARENT_KIND),
    ],
)
def test_rejected_drops(sample_forest, node, drag_id, target_id, reason):
    assert check_drop(sample_forest, node(drag_id), node(target_id), 0) == reason
    assert not can_drop(sample_forest, node(drag_id), node(target_id), 0)


def test_rules_apply_in_order(sample_forest, node):
    # A suite dropped onto a test case fails the leaf rule before the suite rule.
    assert check_drop(sample_forest, node("P1"), node("A"), 0) == DropRejection.LEAF_TARGET
    # Dropping a section into its own test case is a leaf problem, not a cycle.
    assert check_drop(sample_forest, node("S"), node("A"), 0) == DropRejection.LEAF_TARGET


def test_placeholder_is_never_a_drag_source_or_target(sample_forest):
    display = insert_placeholder(sample_forest, "P1")
    placeholder = find_node(display, PLACEHOLDER_ID)

    assert check_drop(display, placeholder, find_node(display, "Y"), 0) == DropRejection.PLACEHOLDER_SOURCE
    assert check_drop(display, find_node(display, "O"), placeholder, 0) == DropRejection.PLACEHOLDER_TARGET


def test_negative_index_rejected(sample_forest, node):
    assert check_drop(sample_forest, node("A"), node("S"), -1) == DropRejection.INVALID_INDEX


def test_index_past_end_is_allowed(sample_forest, node):
    assert can_drop(sample_forest, node("A"), node("S"), 99)
