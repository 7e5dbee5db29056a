"""
Delivery Planner
Tests — commit summary rollup per component.
"""

from app.models import db as _db
from app.models.tracker import Milestone
from app.services.baseline_service import lock_milestone_baseline
from app.services.plan_commit_service import commit_plan, get_commit_summary


def test_empty_project(project):
    assert get_commit_summary(project.id) == {
        "committed": 0,
        "uncommitted": 0,
        "baseline_locked": 0,
        "status": "draft",
        "by_component": {},
    }


def test_every_component_is_listed(project, make_item):
    build = make_item("component", "Build")
    empty = make_item("component", "Empty")
    make_item("milestone", "M", parent=build, start_date="2026-01-01", end_date="2026-01-31")

    summary = get_commit_summary(project.id)
    assert summary["by_component"][empty.id] == {
        "id": empty.id, "name": "Empty", "committed": 0, "uncommitted": 0, "total": 0,
    }
    assert summary["by_component"][build.id]["uncommitted"] == 1


def test_counts_before_and_after_commit(project, simple_plan, make_item):
    component = simple_plan["component"]
    make_item("milestone", "Root level", start_date="2026-01-01", end_date="2026-01-02")

    before = get_commit_summary(project.id)
    assert (before["committed"], before["uncommitted"]) == (0, 3)
    assert before["by_component"][component.id]["total"] == 2

    commit_plan(project.id, "u")
    _db.session.commit()

    after = get_commit_summary(project.id)
    assert (after["committed"], after["uncommitted"]) == (3, 0)
    assert after["status"] == "committed"
    assert after["by_component"][component.id] == {
        "id": component.id, "name": "Build", "committed": 2, "uncommitted": 0, "total": 2,
    }


def test_tasks_are_not_counted(project, simple_plan):
    summary = get_commit_summary(project.id)
    assert summary["uncommitted"] == 2


def test_nested_components_attribute_to_nearest(project, make_item):
    outer = make_item("component", "Outer")
    inner = make_item("component", "Inner", parent=outer)
    make_item("milestone", "M", parent=inner, start_date="2026-01-01", end_date="2026-01-02")

    by_component = get_commit_summary(project.id)["by_component"]
    assert by_component[inner.id]["total"] == 1
    assert by_component[outer.id]["total"] == 0


def test_baseline_locked_count(project, simple_plan, make_item):
    make_item("milestone", "Second", start_date="2026-05-01", end_date="2026-05-02")
    result = commit_plan(project.id, "u")
    first = _db.session.get(Milestone, result["milestones"][0]["id"])
    lock_milestone_baseline(first, "pm")

    assert get_commit_summary(project.id)["baseline_locked"] == 1


def test_deleted_items_are_excluded(project, make_item):
    component = make_item("component", "C")
    m = make_item("milestone", "M", parent=component, start_date="2026-01-01", end_date="2026-01-02")
    m.soft_delete("u")
    _db.session.flush()

    summary = get_commit_summary(project.id)
    assert summary["uncommitted"] == 0
    assert summary["by_component"][component.id]["total"] == 0
