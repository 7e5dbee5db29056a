"""
Delivery Planner
Tests — baseline locking and drift detection.
"""

from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import ConflictError
from app.models import db as _db
from app.models.tracker import Milestone
from app.services.baseline_service import lock_milestone_baseline, unlock_milestone_baseline
from app.services.plan_commit_service import (
    commit_plan,
    detect_baseline_changes,
    get_milestone_for_item,
    get_published_items,
)


@pytest.fixture()
def committed(project, simple_plan):
    """simple_plan after commit; returns (plan dict, tracker Milestone)."""
    result = commit_plan(project.id, "planner")
    _db.session.commit()
    milestone = _db.session.get(Milestone, result["milestones"][0]["id"])
    return simple_plan, milestone


class TestBaselineLock:
    def test_lock_and_unlock(self, committed):
        _, milestone = committed
        lock_milestone_baseline(milestone, "pm-1")
        assert milestone.baseline_locked is True
        assert milestone.baseline_locked_by == "pm-1"
        assert milestone.baseline_locked_at is not None

        unlock_milestone_baseline(milestone)
        assert milestone.baseline_locked is False
        assert milestone.baseline_locked_at is None
        assert milestone.baseline_start_date == date(2026, 1, 1)

    def test_double_lock_conflicts(self, committed):
        _, milestone = committed
        lock_milestone_baseline(milestone, "pm-1")
        with pytest.raises(ConflictError):
            lock_milestone_baseline(milestone, "pm-2")


class TestDetectBaselineChanges:
    def test_no_drift_when_unchanged(self, project, committed):
        _, milestone = committed
        lock_milestone_baseline(milestone, "pm")
        assert detect_baseline_changes(project.id) == []

    def test_unlocked_milestones_are_ignored(self, project, committed):
        plan, _ = committed
        plan["milestone"].end_date = date(2026, 4, 30)
        _db.session.flush()
        assert detect_baseline_changes(project.id) == []

    def test_date_and_billable_drift(self, project, committed):
        plan, milestone = committed
        lock_milestone_baseline(milestone, "pm")
        item = plan["milestone"]
        item.end_date = date(2026, 4, 30)
        item.billable = Decimal("55000")
        item.wbs = "1.1"
        _db.session.flush()

        changes = detect_baseline_changes(project.id)
        assert changes == [
            {
                "plan_item_id": item.id,
                "plan_item_name": "Go-live",
                "plan_item_wbs": "1.1",
                "milestone_id": milestone.id,
                "field": "end_date",
                "current_value": "2026-04-30",
                "baseline_value": "2026-03-31",
            },
            {
                "plan_item_id": item.id,
                "plan_item_name": "Go-live",
                "plan_item_wbs": "1.1",
                "milestone_id": milestone.id,
                "field": "billable",
                "current_value": 55000.0,
                "baseline_value": 50000.0,
            },
        ]

    def test_absent_value_is_not_drift(self, project, committed):
        plan, milestone = committed
        lock_milestone_baseline(milestone, "pm")
        plan["milestone"].start_date = None
        plan["milestone"].billable = None
        _db.session.flush()
        assert detect_baseline_changes(project.id) == []

    def test_zero_billable_is_a_value(self, project, make_item):
        item = make_item("milestone", "Zero", start_date="2026-01-01", end_date="2026-01-10")
        result = commit_plan(project.id, "u")
        milestone = _db.session.get(Milestone, result["milestones"][0]["id"])
        lock_milestone_baseline(milestone, "pm")
        item.billable = Decimal("100")
        _db.session.flush()

        changes = detect_baseline_changes(project.id)
        assert [(c["field"], c["current_value"], c["baseline_value"]) for c in changes] == [
            ("billable", 100.0, 0.0),
        ]

    def test_deliverable_items_are_not_compared(self, project, committed):
        plan, milestone = committed
        lock_milestone_baseline(milestone, "pm")
        plan["deliverable"].end_date = date(2027, 1, 1)
        _db.session.flush()
        assert detect_baseline_changes(project.id) == []


class TestPublishedItems:
    def test_published_items_carry_lock_state(self, project, committed):
        plan, milestone = committed
        lock_milestone_baseline(milestone, "pm")

        rows = {r["id"]: r for r in get_published_items(project.id)}
        assert set(rows) == {
            plan["milestone"].id, plan["deliverable"].id, *(t.id for t in plan["tasks"]),
        }
        m_row = rows[plan["milestone"].id]
        assert m_row["baseline_locked"] is True
        assert m_row["milestone"]["milestone_ref"] == "M01"
        assert m_row["deliverable"] is None

        t_row = rows[plan["tasks"][0].id]
        assert t_row["deliverable"]["deliverable_ref"] == "D01"
        assert t_row["baseline_locked"] is True

    def test_get_milestone_for_item(self, committed):
        plan, milestone = committed
        assert get_milestone_for_item(plan["milestone"]).id == milestone.id
        assert get_milestone_for_item(plan["tasks"][1]).id == milestone.id
        assert get_milestone_for_item(plan["component"]) is None
