from __future__ import annotations

import pytest

from test_repo_tree.errors import PlanningError
from test_repo_tree.models import ROOT, NodeKind, UnderSection, UnderSuite
from test_repo_tree.optimistic import insert_placeholder
from test_repo_tree.planner import (
    PlanItem,
    plan_append,
    plan_gap_closure,
    plan_move,
    plan_reorder,
    resolve_destination,
)


def _orders(items):
    return {item.id: item.display_order for item in items}


def test_reorder_within_section_moves_last_to_first(sample_forest):
    items = plan_move(sample_forest, "C", "S", NodeKind.SECTION, 0)

    assert _orders(items) == {"C": 0, "A": 1, "B": 2}
    assert all(item.parent is None for item in items)


def test_nested_reparent_matches_expected_plan(sample_forest):
    plan = plan_reorder(sample_forest, "X", "Y", NodeKind.SECTION, 0)

    assert plan.moves == [
        PlanItem("X", NodeKind.SECTION, 0, UnderSection(section_id="Y")),
        PlanItem("M", NodeKind.SECTION, 1),
        PlanItem("N", NodeKind.SECTION, 2),
    ]
    # P1's scope closes the gap X left behind.
    assert plan.gap_closure == [PlanItem("S", NodeKind.SECTION, 0)]
    assert len(plan) == 4


def test_no_op_move_plans_nothing(sample_forest):
    assert plan_move(sample_forest, "B", "S", NodeKind.SECTION, 1) == []
    assert plan_reorder(sample_forest, "B", "S", NodeKind.SECTION, 1).is_empty


def test_untouched_siblings_are_not_included(sample_forest):
    # Swapping the last two of [A, B, C] leaves A alone.
    items = plan_move(sample_forest, "C", "S", NodeKind.SECTION, 1)

    assert _orders(items) == {"C": 1, "B": 2}


def test_move_to_end_of_other_scope_only_touches_moved_node(sample_forest):
    items = plan_move(sample_forest, "A", "X", NodeKind.SECTION, 5)

    assert items == [PlanItem("A", NodeKind.TEST_CASE, 1, UnderSection(section_id="X"))]
    assert plan_gap_closure(sample_forest, "A", UnderSection(section_id="X")) == [
        PlanItem("B", NodeKind.TEST_CASE, 0),
        PlanItem("C", NodeKind.TEST_CASE, 1),
    ]


def test_section_to_root_becomes_orphan(sample_forest):
    items = plan_move(sample_forest, "S", None, None, 0)

    assert _orders(items) == {"S": 0, "O": 1}
    assert items[0].parent == ROOT


def test_suite_reorder_at_root(sample_forest):
    items = plan_move(sample_forest, "P2", None, None, 0)

    assert _orders(items) == {"P2": 0, "P1": 1}


def test_test_case_target_resolves_to_its_section(sample_forest):
    assert resolve_destination(sample_forest, "A", NodeKind.TEST_CASE) == UnderSection(section_id="S")
    assert resolve_destination(sample_forest, "U", NodeKind.TEST_CASE) == ROOT
    assert resolve_destination(sample_forest, "P1", NodeKind.SUITE) == UnderSuite(suite_id="P1")


def test_placeholder_is_skipped_when_reading_scope(sample_forest):
    display = insert_placeholder(sample_forest, "P1")

    items = plan_move(display, "O", "P1", NodeKind.SUITE, 0)

    assert "__creating__" not in {item.id for item in items}
    assert _orders(items) == {"O": 0, "X": 1, "S": 2}


@pytest.mark.parametrize(
    "drag_id, parent_id, parent_kind",
    [
        ("ghost", "S", NodeKind.SECTION),
        ("A", "ghost", NodeKind.SECTION),
        ("A", "S", NodeKind.SUITE),
    ],
)
def test_unreadable_destination_raises(sample_forest, drag_id, parent_id, parent_kind):
    with pytest.raises(PlanningError):
        plan_move(sample_forest, drag_id, parent_id, parent_kind, 0)


def test_wire_format_for_reparented_items():
    section = PlanItem("X", NodeKind.SECTION, 0, UnderSection(section_id="Y"))
    orphan = PlanItem("S", NodeKind.SECTION, 0, ROOT)
    case = PlanItem("A", NodeKind.TEST_CASE, 2, UnderSection(section_id="X"))
    plain = PlanItem("M", NodeKind.SECTION, 1)

    assert section.to_wire() == {
        "id": "X",
        "type": "section",
        "displayOrder": 0,
        "suiteId": None,
        "parentId": "Y",
    }
    assert orphan.to_wire()["suiteId"] is None and orphan.to_wire()["parentId"] is None
    assert case.to_wire() == {"id": "A", "type": "testCase", "displayOrder": 2, "sectionId": "X"}
    assert plain.to_wire() == {"id": "M", "type": "section", "displayOrder": 1}


def test_append_position_ignores_placeholder(sample_forest):
    display = insert_placeholder(sample_forest, "P1")

    assert plan_append(display, UnderSuite(suite_id="P1"), NodeKind.SECTION) == 2
    assert plan_append(sample_forest, ROOT, NodeKind.SUITE) == 2
    assert plan_append(sample_forest, UnderSection(section_id="S"), NodeKind.SECTION) == 0
