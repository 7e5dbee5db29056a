"""Plan commit service: publish planner items into the tracker.

Transaction policy: methods flush (through PlanStore), never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- commit_plan:             classify uncommitted items, create tracker
                           milestones / deliverables, fold tasks into checklists
- detect_baseline_changes: plan item vs. locked milestone baseline drift
- get_commit_summary:      committed / uncommitted counts per component
- get_published_items:     published items with their tracker linkage
- get_milestone_for_item:  milestone behind a published item

The commit is deliberately not atomic: a milestone that fails to insert is
reported in ``errors`` and its deliverables fail with it, while the rest of
the batch is kept.
"""
import logging
import re
from collections import defaultdict, deque

from app.core.exceptions import PlanStoreError
from app.models.planning import _money, _utcnow
from app.models.tracker import (
    DELIVERABLE_REF_PREFIX,
    MILESTONE_REF_PREFIX,
    Deliverable,
    Milestone,
)
from app.services.plan_classifier import (
    build_item_index,
    filter_valid_items,
    find_ancestor,
    iter_ancestor_ids,
)
from app.services.plan_store import PlanStore

logger = logging.getLogger(__name__)


# ── Status mapping ───────────────────────────────────────────────────────

PLAN_TO_TRACKER_STATUS = {
    "not_started": "Not Started",
    "in_progress": "In Progress",
    "completed": "Completed",
    "on_hold": "At Risk",
    "cancelled": "Not Started",
}

TRACKER_TO_PLAN_STATUS = {
    "Not Started": "not_started",
    "In Progress": "in_progress",
    "At Risk": "on_hold",
    "Delayed": "on_hold",
    "Completed": "completed",
}


def map_plan_status_to_tracker(status):
    return PLAN_TO_TRACKER_STATUS.get(status, "Not Started")


def map_tracker_status_to_plan(status):
    return TRACKER_TO_PLAN_STATUS.get(status, "not_started")


# ── Ref assignment ───────────────────────────────────────────────────────


def next_ref(existing_refs, prefix):
    """Next sequential ref after the highest numeric suffix in ``existing_refs``.

    ``next_ref(["M01", "M03"], "M") == "M04"``; no match gives ``M01``.
    Numbers are zero-padded to two digits and grow past 99 unpadded.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)", re.IGNORECASE)
    highest = 0
    for ref in existing_refs:
        match = pattern.match((ref or "").strip())
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:02d}"


def _assign_ref(store, project_id, model, ref_column, prefix):
    try:
        existing = store.query_ref_candidates(project_id, model, ref_column)
    except PlanStoreError:
        logger.warning("Ref lookup failed for %s, falling back to %s01", model.__tablename__, prefix)
        return f"{prefix}01"
    return next_ref(existing, prefix)


# ── Component scoping ────────────────────────────────────────────────────


def descendant_closure(items, root_ids):
    """Ids of ``root_ids`` and every item below them. Cycles are ignored."""
    children = defaultdict(list)
    for item in items:
        if item.parent_id:
            children[item.parent_id].append(item.id)

    scope = set()
    queue = deque(root_ids)
    while queue:
        item_id = queue.popleft()
        if item_id in scope:
            continue
        scope.add(item_id)
        queue.extend(children.get(item_id, ()))
    return scope


# ── Commit ───────────────────────────────────────────────────────────────


def _empty_result():
    return {
        "milestones": [],
        "deliverables": [],
        "tasks": 0,
        "count": 0,
        "errors": [],
        "skipped": [],
    }


def _milestone_record(item, user_id, ref):
    billable = item.billable or item.cost or 0
    return {
        "project_id": item.project_id,
        "tenant_id": item.tenant_id,
        "milestone_ref": ref,
        "name": item.name,
        "description": item.description or "",
        "start_date": item.start_date,
        "end_date": item.end_date,
        "forecast_start_date": item.start_date,
        "forecast_end_date": item.end_date,
        "status": map_plan_status_to_tracker(item.status),
        "billable": billable,
        "completion_percentage": item.progress or 0,
        "baseline_start_date": item.start_date,
        "baseline_end_date": item.end_date,
        "baseline_billable": billable,
        "created_by": user_id,
    }


def _deliverable_record(item, milestone_id, user_id, ref, checklist):
    return {
        "project_id": item.project_id,
        "tenant_id": item.tenant_id,
        "milestone_id": milestone_id,
        "deliverable_ref": ref,
        "name": item.name,
        "description": item.description or "",
        "start_date": item.start_date,
        "due_date": item.end_date,
        "status": map_plan_status_to_tracker(item.status),
        "progress": item.progress or 0,
        "tasks_checklist": checklist or None,
        "created_by": user_id,
    }


def _build_checklist(tasks):
    return [
        {
            "id": task.id,
            "name": task.name,
            "completed": task.status == "completed",
            "order": position,
        }
        for position, task in enumerate(tasks, start=1)
    ]


def _write_back(store, item, fields, result):
    """Stamp publish linkage on a plan item; a failure is reported, not raised."""
    try:
        store.update_plan_item(item.id, fields)
    except PlanStoreError as exc:
        result["errors"].append({"type": "link", "item": item.name, "error": str(exc)})


def commit_plan(project_id, user_id, component_ids=None, *, store=None):
    """Publish the uncommitted plan of a project into the tracker.

    Args:
        project_id: Project whose plan is committed.
        user_id: Acting user, stored as created_by / committed_by.
        component_ids: Optional component ids; when given only their
            subtrees are committed.
        store: PlanStore to use (defaults to one bound to db.session).

    Returns:
        dict with keys milestones, deliverables (tracker rows as dicts),
        tasks (int), count (int), errors [{type, item, error}] and
        skipped [{name, reason}].

    Raises:
        PlanStoreError: the initial plan item fetch failed.
    """
    store = store or PlanStore()
    result = _empty_result()

    items = store.query_plan_items(project_id, is_published=False)
    if component_ids:
        every_item = store.query_plan_items(project_id)
        scope = descendant_closure(every_item, component_ids)
        items = [i for i in items if i.id in scope]
    if not items:
        return result

    classification = filter_valid_items(items)
    result["skipped"] = [s.to_dict() for s in classification.skipped_items]
    if not classification.valid_items:
        logger.info(
            "Plan commit project=%s: nothing to commit, %d skipped",
            project_id, len(result["skipped"]),
            extra={"project_id": project_id},
        )
        return result

    index = build_item_index(items)
    published_at = _utcnow()

    # plan item id -> tracker milestone id
    milestone_map = {}
    for item in classification.of_type("milestone"):
        ref = _assign_ref(store, project_id, Milestone, "milestone_ref", MILESTONE_REF_PREFIX)
        try:
            milestone = store.insert_tracker_record(Milestone, _milestone_record(item, user_id, ref))
        except PlanStoreError as exc:
            result["errors"].append({"type": "milestone", "item": item.name, "error": str(exc)})
            continue
        milestone_map[item.id] = milestone.id
        result["milestones"].append(milestone.to_dict())
        _write_back(store, item, {
            "is_published": True,
            "published_milestone_id": milestone.id,
            "published_at": published_at,
        }, result)

    deliverables = classification.of_type("deliverable")
    deliverable_ids = {d.id for d in deliverables}

    # Tasks belong to their nearest valid deliverable ancestor only, so under
    # nested deliverables each task lands in exactly one checklist.
    tasks_by_deliverable = defaultdict(list)
    for task in classification.of_type("task"):
        owner_id = next(
            (pid for pid in iter_ancestor_ids(task, index) if pid in deliverable_ids), None,
        )
        if owner_id:
            tasks_by_deliverable[owner_id].append(task)

    for item in deliverables:
        milestone_id = next(
            (milestone_map[pid] for pid in iter_ancestor_ids(item, index) if pid in milestone_map),
            None,
        )
        if milestone_id is None:
            result["errors"].append({
                "type": "deliverable",
                "item": item.name,
                "error": "Parent milestone not found or not yet created",
            })
            continue

        tasks = tasks_by_deliverable.get(item.id, [])
        ref = _assign_ref(store, project_id, Deliverable, "deliverable_ref", DELIVERABLE_REF_PREFIX)
        record = _deliverable_record(item, milestone_id, user_id, ref, _build_checklist(tasks))
        try:
            deliverable = store.insert_tracker_record(Deliverable, record)
        except PlanStoreError as exc:
            result["errors"].append({"type": "deliverable", "item": item.name, "error": str(exc)})
            continue

        result["deliverables"].append(deliverable.to_dict())
        result["tasks"] += len(tasks)
        link = {
            "is_published": True,
            "published_deliverable_id": deliverable.id,
            "published_at": published_at,
        }
        _write_back(store, item, link, result)
        for task in tasks:
            _write_back(store, task, link, result)

    result["count"] = len(result["milestones"]) + len(result["deliverables"]) + result["tasks"]

    if result["milestones"] or result["deliverables"]:
        try:
            store.mark_plan_committed(project_id, user_id, published_at)
        except PlanStoreError:
            logger.warning("Could not update plan status for project=%s", project_id)

    logger.info(
        "Plan commit project=%s: %d milestones, %d deliverables, %d tasks, %d errors, %d skipped",
        project_id,
        len(result["milestones"]),
        len(result["deliverables"]),
        result["tasks"],
        len(result["errors"]),
        len(result["skipped"]),
        extra={"project_id": project_id, "user_id": user_id},
    )
    return result


# ── Baseline drift ───────────────────────────────────────────────────────

BASELINE_FIELDS = (
    ("start_date", "baseline_start_date"),
    ("end_date", "baseline_end_date"),
    ("billable", "baseline_billable"),
)


def _present(value):
    return value is not None and value != ""


def _serialise(value):
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if value is not None and not isinstance(value, (int, float, str)):
        return _money(value)
    return value


def detect_baseline_changes(project_id, *, store=None):
    """List plan items that drifted from their locked milestone baseline.

    Only items published directly as a milestone are compared; unlocked
    milestones are ignored. A field with no value on either side is not
    reported.

    Returns:
        list of {plan_item_id, plan_item_name, plan_item_wbs, milestone_id,
        field, current_value, baseline_value}
    """
    store = store or PlanStore()
    items = store.query_plan_items(project_id, is_published=True, has_milestone_link=True)
    if not items:
        return []

    milestones = {
        m.id: m
        for m in store.get_milestones({i.published_milestone_id for i in items})
        if m.baseline_locked and not m.is_deleted
    }

    changes = []
    for item in items:
        milestone = milestones.get(item.published_milestone_id)
        if milestone is None:
            continue
        for field, baseline_field in BASELINE_FIELDS:
            current = getattr(item, field)
            baseline = getattr(milestone, baseline_field)
            if not (_present(current) and _present(baseline)):
                continue
            if current == baseline:
                continue
            changes.append({
                "plan_item_id": item.id,
                "plan_item_name": item.name,
                "plan_item_wbs": item.wbs,
                "milestone_id": milestone.id,
                "field": field,
                "current_value": _serialise(current),
                "baseline_value": _serialise(baseline),
            })
    return changes


# ── Component rollup ─────────────────────────────────────────────────────


def get_commit_summary(project_id, *, store=None):
    """Commit counts for the project, overall and per component.

    Every component appears in ``by_component``; milestones and deliverables
    are attributed to their nearest component ancestor. Tasks are not counted.

    Returns:
        {committed, uncommitted, baseline_locked, status,
         by_component: {component_id: {id, name, committed, uncommitted, total}}}
    """
    store = store or PlanStore()
    items = store.query_plan_items(
        project_id, item_types=("component", "phase", "milestone", "deliverable"),
    )
    index = build_item_index(items)

    by_component = {
        item.id: {"id": item.id, "name": item.name, "committed": 0, "uncommitted": 0, "total": 0}
        for item in items
        if item.item_type == "component"
    }

    tracked = [i for i in items if i.item_type in ("milestone", "deliverable")]
    committed = 0
    for item in tracked:
        if item.is_published:
            committed += 1
        component = find_ancestor(item, index, lambda p: p.item_type == "component")
        if component is None:
            continue
        bucket = by_component[component.id]
        bucket["total"] += 1
        bucket["committed" if item.is_published else "uncommitted"] += 1

    milestone_ids = {i.published_milestone_id for i in tracked if i.published_milestone_id}
    baseline_locked = sum(1 for m in store.get_milestones(milestone_ids) if m.baseline_locked)

    plan = store.get_project_plan(project_id)
    return {
        "committed": committed,
        "uncommitted": len(tracked) - committed,
        "baseline_locked": baseline_locked,
        "status": plan.status if plan else "draft",
        "by_component": by_component,
    }


# ── Published items ──────────────────────────────────────────────────────


def get_published_items(project_id, *, store=None):
    """Published plan items enriched with their tracker linkage."""
    store = store or PlanStore()
    items = store.query_plan_items(project_id, is_published=True)

    deliverables = {
        d.id: d for d in store.get_deliverables({i.published_deliverable_id for i in items})
    }
    milestone_ids = {i.published_milestone_id for i in items}
    milestone_ids.update(d.milestone_id for d in deliverables.values())
    milestones = {m.id: m for m in store.get_milestones(milestone_ids)}

    out = []
    for item in items:
        deliverable = deliverables.get(item.published_deliverable_id)
        milestone_id = item.published_milestone_id or (deliverable.milestone_id if deliverable else None)
        milestone = milestones.get(milestone_id)

        row = item.to_dict()
        row["milestone"] = {
            "id": milestone.id,
            "milestone_ref": milestone.milestone_ref,
            "name": milestone.name,
            "baseline_start_date": milestone.baseline_start_date.isoformat() if milestone.baseline_start_date else None,
            "baseline_end_date": milestone.baseline_end_date.isoformat() if milestone.baseline_end_date else None,
            "baseline_billable": _money(milestone.baseline_billable),
        } if milestone else None
        row["deliverable"] = {
            "id": deliverable.id,
            "deliverable_ref": deliverable.deliverable_ref,
            "name": deliverable.name,
            "milestone_id": deliverable.milestone_id,
        } if deliverable else None
        row["baseline_locked"] = bool(milestone and milestone.baseline_locked)
        row["baseline_locked_at"] = (
            milestone.baseline_locked_at.isoformat()
            if milestone and milestone.baseline_locked_at else None
        )
        out.append(row)
    return out


def get_milestone_for_item(item, *, store=None):
    """Tracker milestone behind a published plan item, or None."""
    if item is None or not item.is_published:
        return None
    store = store or PlanStore()
    milestone_id = item.published_milestone_id
    if not milestone_id and item.published_deliverable_id:
        deliverable = store.get_deliverable(item.published_deliverable_id)
        milestone_id = deliverable.milestone_id if deliverable else None
    return store.get_milestone(milestone_id) if milestone_id else None
