"""
Delivery Planner
Project blueprint — tenant-scoped project registration.

Endpoints:
    POST /api/v1/projects                     create (tenant by id or slug)
    GET  /api/v1/projects?tenant_id=<id>      list
    GET  /api/v1/projects/<project_id>        detail (+ plan state)
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import get_json_body, register_error_handlers
from app.models import db
from app.models.project import Tenant
from app.services import project_service
from app.services.plan_store import PlanStore
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

project_bp = register_error_handlers(Blueprint("projects", __name__, url_prefix="/api/v1"))


@project_bp.route("/projects", methods=["POST"])
def create_project():
    data = get_json_body()

    tenant_id = data.get("tenant_id")
    if tenant_id is not None:
        tenant = db.session.get(Tenant, tenant_id)
        if tenant is None:
            return api_error(E.NOT_FOUND, "Tenant not found")
    elif data.get("tenant_slug"):
        tenant = project_service.get_or_create_tenant(
            slug=data["tenant_slug"], name=data.get("tenant_name"),
        )
    else:
        return api_error(E.VALIDATION_REQUIRED, "tenant_id or tenant_slug is required")

    project, err = project_service.create_project(tenant_id=tenant.id, data=data)
    if err:
        code = E.CONFLICT_DUPLICATE if err["status"] == 409 else E.VALIDATION_REQUIRED
        return api_error(code, err["error"], status=err["status"])

    err = db_commit_or_error()
    if err:
        return err
    logger.info("Project %s created for tenant=%s", project.code, tenant.id)
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects", methods=["GET"])
def list_projects():
    tenant_id = request.args.get("tenant_id", type=int)
    if tenant_id is None:
        return api_error(E.VALIDATION_REQUIRED, "tenant_id query parameter is required")
    projects = project_service.list_projects(tenant_id=tenant_id)
    return jsonify({"items": [p.to_dict() for p in projects], "total": len(projects)})


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project = project_service.get_project(project_id)
    plan = PlanStore().get_project_plan(project_id)
    payload = project.to_dict()
    payload["plan"] = plan.to_dict() if plan else {"status": "draft"}
    return jsonify(payload)
