"""
Delivery Planner
Tracker blueprint — committed milestones / deliverables and baseline locks.

Endpoints summary:
    MILESTONE    /api/v1/projects/<project_id>/milestones       GET
                 /api/v1/milestones/<id>                        GET, DELETE
                 /api/v1/milestones/<id>/baseline/lock          POST
                 /api/v1/milestones/<id>/baseline/unlock        POST

    DELIVERABLE  /api/v1/projects/<project_id>/deliverables     GET
                 /api/v1/deliverables/<id>                      GET, DELETE

Deletes are soft and propagate to the planner through plan_sync_service;
anything under a locked baseline answers 409.
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import get_json_body, paginate_query, register_error_handlers
from app.core.exceptions import NotFoundError
from app.models import db
from app.models.tracker import Deliverable, Milestone
from app.services import plan_sync_service
from app.services.baseline_service import lock_milestone_baseline, unlock_milestone_baseline
from app.services.project_service import get_project
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

tracker_bp = register_error_handlers(Blueprint("tracker", __name__, url_prefix="/api/v1"))


def _get_active(model, pk):
    obj = db.session.get(model, pk)
    if obj is None or obj.is_deleted:
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return obj


def _acting_user():
    data = get_json_body()
    return str(
        data.get("user_id") or request.args.get("user_id") or request.headers.get("X-User-ID") or ""
    ).strip()


# ═══════════════════════════════════════════════════════════════════════════
#  MILESTONES
# ═══════════════════════════════════════════════════════════════════════════

@tracker_bp.route("/projects/<int:project_id>/milestones", methods=["GET"])
def list_milestones(project_id):
    get_project(project_id)
    q = Milestone.query_active().filter(Milestone.project_id == project_id)
    locked = request.args.get("baseline_locked")
    if locked is not None:
        q = q.filter(Milestone.baseline_locked.is_(locked.lower() in ("1", "true", "yes")))
    milestones, total = paginate_query(q.order_by(Milestone.milestone_ref))
    return jsonify({"items": [m.to_dict() for m in milestones], "total": total})


@tracker_bp.route("/milestones/<milestone_id>", methods=["GET"])
def get_milestone(milestone_id):
    milestone = _get_active(Milestone, milestone_id)
    payload = milestone.to_dict()
    payload["deliverables"] = [
        d.to_dict() for d in milestone.deliverables.filter(Deliverable.deleted_at.is_(None))
    ]
    return jsonify(payload)


@tracker_bp.route("/milestones/<milestone_id>", methods=["DELETE"])
def delete_milestone(milestone_id):
    _get_active(Milestone, milestone_id)
    result = plan_sync_service.sync_milestone_delete_to_planner(milestone_id, _acting_user() or None)
    if not result["allowed"]:
        return api_error(E.BASELINE_LOCKED, result["reason"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": milestone_id, **result})


@tracker_bp.route("/milestones/<milestone_id>/baseline/lock", methods=["POST"])
def lock_baseline(milestone_id):
    milestone = _get_active(Milestone, milestone_id)
    user_id = _acting_user()
    if not user_id:
        return api_error(E.VALIDATION_REQUIRED, "user_id is required")
    lock_milestone_baseline(milestone, user_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(milestone.to_dict())


@tracker_bp.route("/milestones/<milestone_id>/baseline/unlock", methods=["POST"])
def unlock_baseline(milestone_id):
    milestone = _get_active(Milestone, milestone_id)
    unlock_milestone_baseline(milestone)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(milestone.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  DELIVERABLES
# ═══════════════════════════════════════════════════════════════════════════

@tracker_bp.route("/projects/<int:project_id>/deliverables", methods=["GET"])
def list_deliverables(project_id):
    get_project(project_id)
    q = Deliverable.query_active().filter(Deliverable.project_id == project_id)
    milestone_id = request.args.get("milestone_id")
    if milestone_id:
        q = q.filter(Deliverable.milestone_id == milestone_id)
    deliverables, total = paginate_query(q.order_by(Deliverable.deliverable_ref))
    return jsonify({"items": [d.to_dict() for d in deliverables], "total": total})


@tracker_bp.route("/deliverables/<deliverable_id>", methods=["GET"])
def get_deliverable(deliverable_id):
    return jsonify(_get_active(Deliverable, deliverable_id).to_dict())


@tracker_bp.route("/deliverables/<deliverable_id>", methods=["DELETE"])
def delete_deliverable(deliverable_id):
    _get_active(Deliverable, deliverable_id)
    result = plan_sync_service.sync_deliverable_delete_to_planner(
        deliverable_id, _acting_user() or None,
    )
    if not result["allowed"]:
        return api_error(E.BASELINE_LOCKED, result["reason"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": deliverable_id, **result})
