"""Deletion sync between planner and tracker, with baseline protection.

Rules:
- Anything tied to a baseline-locked milestone cannot be deleted from
  either side until the lock is released.
- Deleting a published plan item soft-deletes the tracker row it was
  published into.
- Deleting a tracker milestone / deliverable soft-deletes every plan item
  published into it.
- Unpublished items are deleted locally with nothing to sync.

Every sync call returns ``{"allowed": bool, "reason"?: str, "synced": bool,
"count"?: int}``. Transaction policy: flush only, caller commits.
"""
import logging

from app.models import db
from app.services.plan_store import PlanStore

logger = logging.getLogger(__name__)


# ── Baseline checks ──────────────────────────────────────────────────────


def is_milestone_baseline_locked(milestone_id, *, store=None):
    """Return ``(locked, milestone)``. Unknown ids are not locked."""
    if not milestone_id:
        return False, None
    store = store or PlanStore()
    milestone = store.get_milestone(milestone_id)
    if milestone is None:
        return False, None
    return bool(milestone.baseline_locked), milestone


def is_deliverable_baseline_locked(deliverable_id, *, store=None):
    """A deliverable is locked through its owning milestone."""
    store = store or PlanStore()
    deliverable = store.get_deliverable(deliverable_id) if deliverable_id else None
    if deliverable is None:
        return False, None
    return is_milestone_baseline_locked(deliverable.milestone_id, store=store)


def is_plan_item_baseline_locked(item_id, *, store=None):
    """Return ``(locked, milestone, item)`` for a plan item.

    Published milestone items check their own milestone; published
    deliverables and tasks check the milestone owning their deliverable.
    """
    store = store or PlanStore()
    item = store.get_plan_item(item_id)
    if item is None or not item.is_published:
        return False, None, item
    if item.published_milestone_id:
        locked, milestone = is_milestone_baseline_locked(item.published_milestone_id, store=store)
        return locked, milestone, item
    if item.published_deliverable_id:
        locked, milestone = is_deliverable_baseline_locked(item.published_deliverable_id, store=store)
        return locked, milestone, item
    return False, None, item


# ── Planner → tracker ────────────────────────────────────────────────────


def sync_planner_delete_to_tracker(item_id, user_id, *, store=None):
    """Soft-delete a plan item and the tracker row it was published into."""
    store = store or PlanStore()
    locked, milestone, item = is_plan_item_baseline_locked(item_id, store=store)
    if locked:
        return {
            "allowed": False,
            "reason": (
                f'Cannot delete: linked to baselined milestone "{milestone.name}". '
                "Remove baseline lock first."
            ),
            "synced": False,
        }
    if item is None:
        return {"allowed": True, "synced": False}

    item.soft_delete(user_id)
    synced = False
    if item.is_published:
        if item.published_milestone_id:
            milestone = store.get_milestone(item.published_milestone_id)
            if milestone is not None and not milestone.is_deleted:
                milestone.soft_delete(user_id)
                synced = True
                logger.info("Soft-deleted milestone %s (synced from planner)", milestone.id)
        if item.published_deliverable_id:
            deliverable = store.get_deliverable(item.published_deliverable_id)
            if deliverable is not None and not deliverable.is_deleted:
                deliverable.soft_delete(user_id)
                synced = True
                logger.info("Soft-deleted deliverable %s (synced from planner)", deliverable.id)
    db.session.flush()
    return {"allowed": True, "synced": synced}


# ── Tracker → planner ────────────────────────────────────────────────────


def _soft_delete_linked_items(linked, user_id, source):
    for item in linked:
        item.soft_delete(user_id)
    db.session.flush()
    if not linked:
        return {"allowed": True, "synced": False}
    logger.info("Soft-deleted %d plan items (synced from tracker %s)", len(linked), source)
    return {"allowed": True, "synced": True, "count": len(linked)}


def sync_milestone_delete_to_planner(milestone_id, user_id, *, store=None):
    """Soft-delete a tracker milestone and the plan items published into it."""
    store = store or PlanStore()
    locked, milestone = is_milestone_baseline_locked(milestone_id, store=store)
    if locked:
        return {
            "allowed": False,
            "reason": (
                f'Cannot delete: milestone "{milestone.name}" has a locked baseline. '
                "Remove baseline lock first."
            ),
            "synced": False,
        }
    if milestone is not None:
        milestone.soft_delete(user_id)
    linked = store.find_plan_items_linked_to(milestone_id=milestone_id)
    return _soft_delete_linked_items(linked, user_id, "milestone")


def sync_deliverable_delete_to_planner(deliverable_id, user_id, *, store=None):
    """Soft-delete a tracker deliverable and the plan items published into it."""
    store = store or PlanStore()
    locked, milestone = is_deliverable_baseline_locked(deliverable_id, store=store)
    if locked:
        return {
            "allowed": False,
            "reason": (
                f'Cannot delete: deliverable belongs to baselined milestone "{milestone.name}". '
                "Remove baseline lock first."
            ),
            "synced": False,
        }
    deliverable = store.get_deliverable(deliverable_id)
    if deliverable is not None:
        deliverable.soft_delete(user_id)
    linked = store.find_plan_items_linked_to(deliverable_id=deliverable_id)
    return _soft_delete_linked_items(linked, user_id, "deliverable")
