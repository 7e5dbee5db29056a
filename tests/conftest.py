"""
Shared pytest fixtures for the Delivery Planner test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - tenant / project: Pre-created scope rows
    - make_item: PlanItem factory (flushes, keeps insertion order)
"""

import itertools
from datetime import date

import pytest

from app import create_app
from app.models import db as _db
from app.models.planning import PlanItem
from app.models.project import Project, Tenant


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def tenant():
    t = Tenant(name="Test Tenant", slug="test-tenant")
    _db.session.add(t)
    _db.session.commit()
    return t


@pytest.fixture()
def project(tenant):
    p = Project(tenant_id=tenant.id, code="PRJ", name="Test Project")
    _db.session.add(p)
    _db.session.commit()
    return p


@pytest.fixture()
def make_item(project):
    """Create a PlanItem in ``project``; dates accept ISO strings."""
    counter = itertools.count(1)

    def _make(item_type="task", name="Item", parent=None, **kw):
        for key in ("start_date", "end_date"):
            if isinstance(kw.get(key), str):
                kw[key] = date.fromisoformat(kw[key])
        item = PlanItem(
            project_id=kw.pop("project_id", project.id),
            tenant_id=project.tenant_id,
            item_type=item_type,
            name=name,
            parent_id=parent.id if parent is not None else kw.pop("parent_id", None),
            sort_order=kw.pop("sort_order", next(counter)),
            **kw,
        )
        _db.session.add(item)
        _db.session.flush()
        return item

    return _make


@pytest.fixture()
def simple_plan(make_item):
    """Component → milestone → deliverable → two tasks."""
    component = make_item("component", "Build")
    milestone = make_item(
        "milestone", "Go-live", parent=component,
        start_date="2026-01-01", end_date="2026-03-31", billable=50000,
    )
    deliverable = make_item(
        "deliverable", "Cutover plan", parent=milestone,
        start_date="2026-02-01", end_date="2026-03-15",
    )
    task_a = make_item("task", "Draft runbook", parent=deliverable, status="completed")
    task_b = make_item("task", "Dress rehearsal", parent=deliverable)
    _db.session.commit()
    return {
        "component": component,
        "milestone": milestone,
        "deliverable": deliverable,
        "tasks": [task_a, task_b],
    }
