"""
Delivery Planner
Tests — plan item classification and ancestor walks.

Items are transient PlanItem instances; nothing touches the database.
"""

from datetime import date

from app.models.planning import PlanItem
from app.services.plan_classifier import (
    MAX_ANCESTOR_HOPS,
    build_item_index,
    filter_valid_items,
    find_ancestor,
    is_descendant_of,
    iter_ancestor_ids,
    validate_plan_for_commit,
)


def _item(item_id, item_type, name="Item", parent=None, start=None, end=None, **kw):
    return PlanItem(
        id=item_id,
        project_id=1,
        item_type=item_type,
        name=name,
        parent_id=parent,
        start_date=date.fromisoformat(start) if start else None,
        end_date=date.fromisoformat(end) if end else None,
        **kw,
    )


def _milestone(item_id, parent=None, name="Milestone", start="2026-01-01", end="2026-01-31"):
    return _item(item_id, "milestone", name, parent, start, end)


def _reasons(result):
    return {s.item.id: s.reason for s in result.skipped_items}


def _valid_ids(result):
    return [i.id for i in result.valid_items]


class TestMilestones:
    def test_root_milestone_is_valid(self):
        result = filter_valid_items([_milestone("m1")])
        assert _valid_ids(result) == ["m1"]
        assert result.skipped_items == []

    def test_milestone_under_component_is_valid(self):
        items = [_item("c1", "component", "Build"), _milestone("m1", parent="c1")]
        assert _valid_ids(filter_valid_items(items)) == ["m1"]

    def test_blank_name(self):
        result = filter_valid_items([_milestone("m1", name="   ")])
        assert _reasons(result) == {"m1": "Milestone has no name"}

    def test_missing_dates(self):
        result = filter_valid_items([_item("m1", "milestone", "M", start="2026-01-01")])
        assert _reasons(result) == {"m1": "Milestone missing start or end date"}

    def test_start_after_end(self):
        result = filter_valid_items([_milestone("m1", start="2026-02-01", end="2026-01-01")])
        assert _reasons(result) == {"m1": "Milestone start date after end date"}

    def test_parent_must_be_component(self):
        items = [_item("p1", "phase", "Phase 1"), _milestone("m1", parent="p1")]
        assert _reasons(filter_valid_items(items)) == {"m1": "Milestone parent is not a component"}

    def test_unknown_parent_is_not_a_component(self):
        assert _reasons(filter_valid_items([_milestone("m1", parent="ghost")])) == {
            "m1": "Milestone parent is not a component",
        }


class TestDeliverablesAndTasks:
    def test_full_chain_is_valid_in_pass_order(self):
        items = [
            _item("t1", "task", "Task", parent="d1"),
            _item("d1", "deliverable", "Deliverable", parent="m1"),
            _milestone("m1"),
        ]
        result = filter_valid_items(items)
        assert _valid_ids(result) == ["m1", "d1", "t1"]
        assert [i.id for i in result.of_type("task")] == ["t1"]

    def test_deliverable_without_parent(self):
        result = filter_valid_items([_item("d1", "deliverable", "D")])
        assert _reasons(result) == {"d1": "Deliverable has no parent"}

    def test_deliverable_under_invalid_milestone_is_skipped(self):
        items = [
            _milestone("m1", name=""),
            _item("d1", "deliverable", "D", parent="m1"),
            _item("t1", "task", "T", parent="d1"),
        ]
        assert _reasons(filter_valid_items(items)) == {
            "m1": "Milestone has no name",
            "d1": "Deliverable not under a valid milestone",
            "t1": "Task not under a valid deliverable",
        }

    def test_nested_deliverable_reaches_grandparent_milestone(self):
        items = [
            _milestone("m1"),
            _item("d1", "deliverable", "Outer", parent="m1"),
            _item("d2", "deliverable", "Inner", parent="d1"),
        ]
        assert _valid_ids(filter_valid_items(items)) == ["m1", "d1", "d2"]

    def test_task_without_name(self):
        items = [
            _milestone("m1"),
            _item("d1", "deliverable", "D", parent="m1"),
            _item("t1", "task", "", parent="d1"),
        ]
        assert _reasons(filter_valid_items(items)) == {"t1": "Task has no name"}

    def test_task_directly_under_milestone(self):
        items = [_milestone("m1"), _item("t1", "task", "T", parent="m1")]
        assert _reasons(filter_valid_items(items)) == {"t1": "Task not under a valid deliverable"}

    def test_components_and_phases_never_valid(self):
        items = [_item("c1", "component", "C"), _item("p1", "phase", "P"), _item("p2", "phase", "")]
        result = filter_valid_items(items)
        assert result.valid_items == []
        assert _reasons(result) == {"p2": "Phase has no name"}

    def test_bad_item_does_not_block_others(self):
        items = [_milestone("m1", name=""), _milestone("m2", name="Good")]
        result = filter_valid_items(items)
        assert _valid_ids(result) == ["m2"]
        assert len(result.skipped_items) == 1

    def test_skipped_item_serialises_name_placeholder(self):
        result = filter_valid_items([_milestone("m1", name="")])
        assert result.skipped_items[0].to_dict() == {
            "name": "(no name)", "reason": "Milestone has no name",
        }


class TestAncestorWalks:
    def test_iter_ancestor_ids_nearest_first(self):
        items = [
            _item("a", "component", "A"),
            _item("b", "milestone", "B", parent="a"),
            _item("c", "deliverable", "C", parent="b"),
        ]
        index = build_item_index(items)
        assert list(iter_ancestor_ids(items[2], index)) == ["b", "a"]

    def test_cycle_terminates(self):
        items = [
            _item("x", "deliverable", "X", parent="y"),
            _item("y", "deliverable", "Y", parent="x"),
        ]
        index = build_item_index(items)
        assert len(list(iter_ancestor_ids(items[0], index))) == MAX_ANCESTOR_HOPS
        result = filter_valid_items(items)
        assert _reasons(result) == {
            "x": "Deliverable not under a valid milestone",
            "y": "Deliverable not under a valid milestone",
        }

    def test_is_descendant_and_find_ancestor(self):
        items = [
            _item("c1", "component", "C"),
            _milestone("m1", parent="c1"),
            _item("d1", "deliverable", "D", parent="m1"),
        ]
        index = build_item_index(items)
        assert is_descendant_of(items[2], "c1", index)
        assert not is_descendant_of(items[0], "d1", index)
        found = find_ancestor(items[2], index, lambda p: p.item_type == "component")
        assert found.id == "c1"


class TestValidatePlanForCommit:
    def test_clean_plan(self):
        items = [_milestone("m1"), _item("d1", "deliverable", "D", parent="m1")]
        assert validate_plan_for_commit(items) == {"valid": True, "errors": []}

    def test_reports_every_problem(self):
        items = [
            _item("d1", "deliverable", "Loose"),
            _item("c1", "component", "C"),
            _item("d2", "deliverable", "Under component", parent="c1"),
        ]
        report = validate_plan_for_commit(items)
        assert report["valid"] is False
        assert report["errors"] == [
            "Plan must have at least one milestone",
            'Deliverable "Loose" has no parent',
            'Deliverable "Under component" is not under a milestone',
        ]
