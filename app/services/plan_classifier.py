"""Plan item classification for commit.

Partitions the uncommitted plan items of a project into items that can be
materialised in the tracker and items that must be skipped, each with a
human-readable reason. A single bad item never blocks the rest.

Three ordered passes, each feeding ancestor validity into the next:
    1. milestones   — name, both dates, start <= end, parent is root or a component
    2. deliverables — name, parent, ancestor chain reaches a valid milestone
    3. tasks        — name, parent, ancestor chain reaches a valid deliverable

Components and phases are organisational: never committed, but kept in the
index so ancestor walks can pass through them.

Parent chains are walked through an id → item index, capped at
MAX_ANCESTOR_HOPS so a corrupted (cyclic) chain terminates.
"""

from dataclasses import dataclass, field

from app.utils.helpers import parse_date

MAX_ANCESTOR_HOPS = 100


@dataclass
class SkippedItem:
    item: object
    reason: str

    def to_dict(self):
        return {"name": self.item.name or "(no name)", "reason": self.reason}


@dataclass
class ClassificationResult:
    valid_items: list = field(default_factory=list)
    skipped_items: list = field(default_factory=list)

    def of_type(self, item_type):
        return [i for i in self.valid_items if i.item_type == item_type]


# ── Index & ancestor walks ───────────────────────────────────────────────────


def build_item_index(items):
    """Map item id → item. Built once per operation."""
    return {item.id: item for item in items}


def iter_ancestor_ids(item, index, max_hops=MAX_ANCESTOR_HOPS):
    """Yield the ids on the parent chain of ``item``, nearest first.

    Yields a parent id even when that parent is not in the index, then
    stops. The walk ends after ``max_hops`` ids.
    """
    current_id = item.parent_id
    hops = 0
    while current_id and hops < max_hops:
        hops += 1
        yield current_id
        parent = index.get(current_id)
        current_id = parent.parent_id if parent is not None else None


def has_ancestor_in(item, ancestor_ids, index):
    return any(pid in ancestor_ids for pid in iter_ancestor_ids(item, index))


def is_descendant_of(item, ancestor_id, index):
    return has_ancestor_in(item, {ancestor_id}, index)


def find_ancestor(item, index, predicate):
    """Return the nearest indexed ancestor satisfying ``predicate``, or None."""
    for pid in iter_ancestor_ids(item, index):
        parent = index.get(pid)
        if parent is not None and predicate(parent):
            return parent
    return None


def _has_name(item):
    return bool((item.name or "").strip())


# ── Classification ───────────────────────────────────────────────────────────


def filter_valid_items(items):
    """Partition plan items into committable and skipped.

    Args:
        items: Non-deleted, unpublished PlanItems (optionally pre-filtered to
            a component subtree). Order is preserved in ``valid_items``.

    Returns:
        ClassificationResult
    """
    index = build_item_index(items)
    result = ClassificationResult()

    valid_milestone_ids = set()
    for item in items:
        if item.item_type != "milestone":
            continue
        reason = _milestone_skip_reason(item, index)
        if reason:
            result.skipped_items.append(SkippedItem(item, reason))
            continue
        result.valid_items.append(item)
        valid_milestone_ids.add(item.id)

    valid_deliverable_ids = set()
    for item in items:
        if item.item_type != "deliverable":
            continue
        reason = _child_skip_reason(item, index, valid_milestone_ids, "Deliverable", "milestone")
        if reason:
            result.skipped_items.append(SkippedItem(item, reason))
            continue
        result.valid_items.append(item)
        valid_deliverable_ids.add(item.id)

    for item in items:
        if item.item_type != "task":
            continue
        reason = _child_skip_reason(item, index, valid_deliverable_ids, "Task", "deliverable")
        if reason:
            result.skipped_items.append(SkippedItem(item, reason))
            continue
        result.valid_items.append(item)

    for item in items:
        if item.item_type == "phase" and not _has_name(item):
            result.skipped_items.append(SkippedItem(item, "Phase has no name"))

    return result


def _milestone_skip_reason(item, index):
    if not _has_name(item):
        return "Milestone has no name"
    start, end = parse_date(item.start_date), parse_date(item.end_date)
    if start is None or end is None:
        return "Milestone missing start or end date"
    if start > end:
        return "Milestone start date after end date"
    if item.parent_id:
        parent = index.get(item.parent_id)
        if parent is None or parent.item_type != "component":
            return "Milestone parent is not a component"
    return None


def _child_skip_reason(item, index, valid_ancestor_ids, label, ancestor_label):
    if not _has_name(item):
        return f"{label} has no name"
    if not item.parent_id:
        return f"{label} has no parent"
    if not has_ancestor_in(item, valid_ancestor_ids, index):
        return f"{label} not under a valid {ancestor_label}"
    return None


# ── Pre-flight validation ────────────────────────────────────────────────────


def validate_plan_for_commit(items):
    """Strict structural check of a plan, reporting every problem found.

    Unlike filter_valid_items this does not partition; it answers "is this
    plan clean?" for a pre-commit review screen.

    Returns:
        {"valid": bool, "errors": [str, ...]}
    """
    errors = []
    index = build_item_index(items)

    milestones = [i for i in items if i.item_type == "milestone"]
    if not milestones:
        errors.append("Plan must have at least one milestone")

    for m in milestones:
        if not _has_name(m):
            errors.append(f"Milestone at WBS {m.wbs or 'unknown'} has no name")
        start, end = parse_date(m.start_date), parse_date(m.end_date)
        if start is None or end is None:
            errors.append(f"Milestone \"{m.name or 'unnamed'}\" missing start or end date")
        elif start > end:
            errors.append(f"Milestone \"{m.name}\" has start date after end date")

    for d in (i for i in items if i.item_type == "deliverable"):
        if not d.parent_id:
            errors.append(f"Deliverable \"{d.name}\" has no parent")
            continue
        if find_ancestor(d, index, lambda p: p.item_type == "milestone") is None:
            errors.append(f"Deliverable \"{d.name}\" is not under a milestone")

    return {"valid": not errors, "errors": errors}
