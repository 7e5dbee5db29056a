"""Plan item service layer: planner grid CRUD.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- list / get plan items (soft-deleted rows hidden)
- create with type, parent and date validation
- update; date edits go through planning_dates.get_date_sync_updates so
  the start / end / duration triple stays consistent

Deletion lives in plan_sync_service (baseline protection + tracker sync).
"""
import logging

from sqlalchemy import func

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.planning import ITEM_TYPES, PLAN_ITEM_STATUSES, PlanItem
from app.services.plan_classifier import build_item_index, is_descendant_of
from app.services.plan_store import PlanStore
from app.services.planning_dates import DATE_FIELDS, get_date_sync_updates, normalise_dates
from app.services.project_service import get_project
from app.utils.helpers import parse_date, parse_decimal

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("name", "description", "owner", "wbs")


def list_plan_items(project_id, *, include_deleted=False):
    get_project(project_id)
    return PlanStore().query_plan_items(project_id, include_deleted=include_deleted)


def get_plan_item(item_id):
    item = db.session.get(PlanItem, item_id)
    if item is None or item.is_deleted:
        raise NotFoundError(resource="PlanItem", resource_id=item_id)
    return item


# ── Validation helpers ───────────────────────────────────────────────────


def _validate_item_type(value):
    if value not in ITEM_TYPES:
        raise ValidationError(
            f"item_type must be one of {sorted(ITEM_TYPES)}", details={"item_type": value},
        )
    return value


def _validate_status(value):
    if value not in PLAN_ITEM_STATUSES:
        raise ValidationError(
            f"status must be one of {sorted(PLAN_ITEM_STATUSES)}", details={"status": value},
        )
    return value


def _validate_progress(value):
    try:
        progress = int(value)
    except (TypeError, ValueError):
        raise ValidationError("progress must be an integer", details={"progress": value})
    if not 0 <= progress <= 100:
        raise ValidationError("progress must be between 0 and 100", details={"progress": value})
    return progress


def _validate_money(field, value):
    if value is None or value == "":
        return None
    parsed = parse_decimal(value)
    if parsed is None:
        raise ValidationError(f"{field} must be a number", details={field: value})
    return parsed


def _resolve_parent(project_id, parent_id, item_id=None):
    if not parent_id:
        return None
    parent = db.session.get(PlanItem, parent_id)
    if parent is None or parent.is_deleted or parent.project_id != project_id:
        raise ValidationError("parent_id does not belong to this project", details={"parent_id": parent_id})
    if item_id is not None:
        if parent.id == item_id:
            raise ValidationError("An item cannot be its own parent", details={"parent_id": parent_id})
        index = build_item_index(PlanStore().query_plan_items(project_id))
        if is_descendant_of(parent, item_id, index):
            raise ValidationError("parent_id would create a cycle", details={"parent_id": parent_id})
    return parent


def _next_sort_order(project_id, parent_id):
    q = db.session.query(func.max(PlanItem.sort_order)).filter(PlanItem.project_id == project_id)
    q = q.filter(PlanItem.parent_id == parent_id) if parent_id else q.filter(PlanItem.parent_id.is_(None))
    current = q.scalar()
    return (current or 0) + 1


# ── Create / update ──────────────────────────────────────────────────────


def create_plan_item(project_id, data):
    """Create a plan item in a project.

    Returns:
        PlanItem instance (already flushed).

    Raises:
        NotFoundError: unknown project.
        ValidationError: bad type, status, progress, money or parent.
    """
    project = get_project(project_id)
    item_type = _validate_item_type(data.get("item_type", "task"))
    parent = _resolve_parent(project_id, data.get("parent_id"))

    dates = normalise_dates(data.get("start_date"), data.get("end_date"), data.get("duration_days"))

    item = PlanItem(
        tenant_id=project.tenant_id,
        project_id=project_id,
        parent_id=parent.id if parent else None,
        item_type=item_type,
        sort_order=(
            int(data["sort_order"]) if data.get("sort_order") is not None
            else _next_sort_order(project_id, parent.id if parent else None)
        ),
        wbs=data.get("wbs", ""),
        name=str(data.get("name", "") or "").strip(),
        description=data.get("description", ""),
        owner=data.get("owner", ""),
        progress=_validate_progress(data.get("progress", 0)),
        status=_validate_status(data.get("status", "not_started")),
        billable=_validate_money("billable", data.get("billable")),
        cost=_validate_money("cost", data.get("cost")),
        **dates,
    )
    db.session.add(item)
    db.session.flush()
    logger.debug("Created plan item %s (%s) in project=%s", item.id, item_type, project_id)
    return item


def _apply_date_edits(item, data):
    """Run each edited date field through date sync, in start/end/duration order."""
    state = {f: getattr(item, f) for f in DATE_FIELDS}
    for field in DATE_FIELDS:
        if field in data:
            state.update(get_date_sync_updates(field, data[field], state))
    item.start_date = parse_date(state["start_date"])
    item.end_date = parse_date(state["end_date"])
    item.duration_days = state["duration_days"]


def update_plan_item(item, data):
    """Apply a partial update to a plan item.

    Returns:
        The updated PlanItem (flushed).
    """
    for field in TEXT_FIELDS:
        if field in data:
            setattr(item, field, str(data[field] or "").strip() if field == "name" else (data[field] or ""))

    if "item_type" in data and data["item_type"] != item.item_type:
        if item.is_published:
            raise ValidationError("item_type of a committed item cannot change", details={"item_type": data["item_type"]})
        item.item_type = _validate_item_type(data["item_type"])
    if "status" in data:
        item.status = _validate_status(data["status"])
    if "progress" in data:
        item.progress = _validate_progress(data["progress"])
    if "sort_order" in data:
        try:
            item.sort_order = int(data["sort_order"])
        except (TypeError, ValueError):
            raise ValidationError("sort_order must be an integer", details={"sort_order": data["sort_order"]})
    for field in ("billable", "cost"):
        if field in data:
            setattr(item, field, _validate_money(field, data[field]))
    if "parent_id" in data:
        parent = _resolve_parent(item.project_id, data["parent_id"], item_id=item.id)
        item.parent_id = parent.id if parent else None

    if any(f in data for f in DATE_FIELDS):
        _apply_date_edits(item, data)

    db.session.flush()
    return item
