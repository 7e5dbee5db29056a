"""Tenant / project service with strict tenant ownership checks."""

from __future__ import annotations

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.project import Project, Tenant
from app.utils.helpers import parse_date


def get_or_create_tenant(*, slug: str, name: str | None = None) -> Tenant:
    """Return the tenant with ``slug``, creating it when missing."""
    slug = str(slug or "").strip().lower()
    tenant = Tenant.query.filter_by(slug=slug).first()
    if tenant is None:
        tenant = Tenant(slug=slug, name=(name or slug).strip())
        db.session.add(tenant)
        db.session.flush()
    return tenant


def get_project(project_id: int) -> Project:
    """Project by id; raises NotFoundError."""
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def list_projects(*, tenant_id: int) -> list[Project]:
    """List projects of a tenant, newest first."""
    return (
        Project.query
        .filter(Project.tenant_id == tenant_id)
        .order_by(Project.created_at.desc())
        .all()
    )


def create_project(*, tenant_id: int, data: dict) -> tuple[Project | None, dict | None]:
    """Create a project under a tenant."""
    code = str(data.get("code", "") or "").strip().upper()
    name = str(data.get("name", "") or "").strip()

    if not code:
        return None, {"error": "code is required", "status": 400}
    if not name:
        return None, {"error": "name is required", "status": 400}

    existing_code = Project.query.filter(
        Project.tenant_id == tenant_id,
        Project.code == code,
    ).first()
    if existing_code:
        return None, {"error": "Project code already exists in this tenant", "status": 409}

    start_date = parse_date(data.get("start_date"))
    end_date = parse_date(data.get("end_date"))
    if start_date and end_date and start_date > end_date:
        return None, {"error": "start_date must not be after end_date", "status": 400}

    project = Project(
        tenant_id=tenant_id,
        code=code,
        name=name,
        description=data.get("description"),
        status=str(data.get("status", "active") or "active").strip(),
        start_date=start_date,
        end_date=end_date,
    )

    db.session.add(project)
    db.session.flush()
    return project, None
