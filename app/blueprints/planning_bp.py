"""
Delivery Planner
Planning blueprint — planner grid CRUD, plan commit and reconciliation.

Endpoints summary:
    ITEMS    /api/v1/projects/<project_id>/plan-items        GET, POST
             /api/v1/plan-items/<item_id>                    GET, PATCH, DELETE

    COMMIT   /api/v1/projects/<project_id>/plan/validate     POST  (dry run)
             /api/v1/projects/<project_id>/plan/commit       POST

    STATE    /api/v1/projects/<project_id>/plan/summary           GET
             /api/v1/projects/<project_id>/plan/baseline-changes  GET
             /api/v1/projects/<project_id>/plan/published         GET

    DATES    /api/v1/plan/date-sync                          POST  (preview)
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import get_json_body, register_error_handlers
from app.services import plan_item_service, plan_sync_service
from app.services.plan_classifier import filter_valid_items, validate_plan_for_commit
from app.services.plan_commit_service import (
    commit_plan,
    detect_baseline_changes,
    get_commit_summary,
    get_published_items,
)
from app.services.plan_store import PlanStore
from app.services.planning_dates import DATE_FIELDS, get_date_sync_updates
from app.services.project_service import get_project
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

planning_bp = register_error_handlers(Blueprint("planning", __name__, url_prefix="/api/v1"))


def _acting_user(data):
    return str(data.get("user_id") or request.headers.get("X-User-ID") or "").strip()


# ═══════════════════════════════════════════════════════════════════════════
#  PLAN ITEMS
# ═══════════════════════════════════════════════════════════════════════════

@planning_bp.route("/projects/<int:project_id>/plan-items", methods=["GET"])
def list_plan_items(project_id):
    include_deleted = request.args.get("include_deleted", "").lower() in ("1", "true", "yes")
    items = plan_item_service.list_plan_items(project_id, include_deleted=include_deleted)

    item_type = request.args.get("item_type")
    if item_type:
        items = [i for i in items if i.item_type == item_type]
    return jsonify({"items": [i.to_dict() for i in items], "total": len(items)})


@planning_bp.route("/projects/<int:project_id>/plan-items", methods=["POST"])
def create_plan_item(project_id):
    data = get_json_body()
    item = plan_item_service.create_plan_item(project_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@planning_bp.route("/plan-items/<item_id>", methods=["GET"])
def get_plan_item(item_id):
    return jsonify(plan_item_service.get_plan_item(item_id).to_dict())


@planning_bp.route("/plan-items/<item_id>", methods=["PATCH"])
def update_plan_item(item_id):
    item = plan_item_service.get_plan_item(item_id)
    data = get_json_body()
    if not data:
        return api_error(E.VALIDATION_REQUIRED, "No fields to update")
    plan_item_service.update_plan_item(item, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict())


@planning_bp.route("/plan-items/<item_id>", methods=["DELETE"])
def delete_plan_item(item_id):
    plan_item_service.get_plan_item(item_id)
    user_id = _acting_user(request.args)
    result = plan_sync_service.sync_planner_delete_to_tracker(item_id, user_id or None)
    if not result["allowed"]:
        return api_error(E.BASELINE_LOCKED, result["reason"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": item_id, **result})


# ═══════════════════════════════════════════════════════════════════════════
#  COMMIT
# ═══════════════════════════════════════════════════════════════════════════

@planning_bp.route("/projects/<int:project_id>/plan/validate", methods=["POST"])
def validate_plan(project_id):
    """Dry run: report what a commit would create or skip, write nothing."""
    get_project(project_id)
    items = PlanStore().query_plan_items(project_id, is_published=False)
    classification = filter_valid_items(items)
    report = validate_plan_for_commit(items)
    return jsonify({
        **report,
        "committable": {
            t: len(classification.of_type(t)) for t in ("milestone", "deliverable", "task")
        },
        "skipped": [s.to_dict() for s in classification.skipped_items],
    })


@planning_bp.route("/projects/<int:project_id>/plan/commit", methods=["POST"])
def commit_project_plan(project_id):
    get_project(project_id)
    data = get_json_body()
    user_id = _acting_user(data)
    if not user_id:
        return api_error(E.VALIDATION_REQUIRED, "user_id is required")

    component_ids = data.get("component_ids")
    if component_ids is not None and (
        not isinstance(component_ids, list) or not all(isinstance(c, str) for c in component_ids)
    ):
        return api_error(E.VALIDATION_INVALID, "component_ids must be a list of item ids")

    result = commit_plan(project_id, user_id, component_ids or None)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result), 201 if result["count"] else 200


# ═══════════════════════════════════════════════════════════════════════════
#  PLAN STATE
# ═══════════════════════════════════════════════════════════════════════════

@planning_bp.route("/projects/<int:project_id>/plan/summary", methods=["GET"])
def plan_summary(project_id):
    get_project(project_id)
    return jsonify(get_commit_summary(project_id))


@planning_bp.route("/projects/<int:project_id>/plan/baseline-changes", methods=["GET"])
def baseline_changes(project_id):
    get_project(project_id)
    changes = detect_baseline_changes(project_id)
    return jsonify({"items": changes, "total": len(changes)})


@planning_bp.route("/projects/<int:project_id>/plan/published", methods=["GET"])
def published_items(project_id):
    get_project(project_id)
    items = get_published_items(project_id)
    return jsonify({"items": items, "total": len(items)})


# ═══════════════════════════════════════════════════════════════════════════
#  DATE SYNC
# ═══════════════════════════════════════════════════════════════════════════

@planning_bp.route("/plan/date-sync", methods=["POST"])
def date_sync_preview():
    """Return the fields a grid date edit would write, without saving."""
    data = get_json_body()
    field = data.get("field")
    if field not in DATE_FIELDS:
        return api_error(E.VALIDATION_INVALID, f"field must be one of {list(DATE_FIELDS)}")
    current = data.get("item") if isinstance(data.get("item"), dict) else {}
    return jsonify(get_date_sync_updates(field, data.get("value"), current))
