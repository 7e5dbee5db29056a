#!/usr/bin/env python3
"""
Delivery Planner — Demo Plan Seed.

Creates a tenant, a project and a two-component delivery plan
(components → milestones → deliverables → tasks), with a couple of
deliberately broken rows so the commit screen shows skipped items.

Usage:
    python scripts/seed_demo_plan.py                 # Reset DB + seed draft plan
    python scripts/seed_demo_plan.py --commit        # ...and publish it to the tracker
    python scripts/seed_demo_plan.py --commit --lock # ...and lock every milestone baseline
    python scripts/seed_demo_plan.py --no-reset      # Keep existing data
"""

import argparse
import sys
from datetime import date, timedelta

sys.path.insert(0, ".")

from app import create_app
from app.models import db
from app.models.tracker import Milestone
from app.services.baseline_service import lock_milestone_baseline
from app.services.plan_commit_service import commit_plan, get_commit_summary
from app.services.plan_item_service import create_plan_item
from app.services.project_service import create_project, get_or_create_tenant

DEMO_USER = "demo-user"
_start = date.today().replace(day=1)


def _d(offset):
    return (_start + timedelta(days=offset)).isoformat()


# (component, [(milestone, start, end, billable, [(deliverable, [tasks])])])
DEMO_PLAN = [
    ("Discovery", [
        ("Requirements signed off", 0, 20, 12000, [
            ("Requirements catalogue", ["Stakeholder interviews", "Workshop write-up"]),
            ("Current-state assessment", ["System inventory"]),
        ]),
    ]),
    ("Build", [
        ("Core platform live", 21, 75, 48000, [
            ("Data migration", ["Mapping rules", "Trial load", "Reconciliation"]),
            ("Integrations", ["Payroll interface", "Finance interface"]),
        ]),
        ("User acceptance complete", 76, 95, 18000, [
            ("UAT report", ["Test scripts", "Defect triage"]),
        ]),
    ]),
]


# ═══════════════════════════════════════════════════════════════════════════
# 1. PROJECT
# ═══════════════════════════════════════════════════════════════════════════

def seed_project():
    tenant = get_or_create_tenant(slug="demo", name="Demo Organisation")
    project, err = create_project(tenant_id=tenant.id, data={
        "code": "DEMO",
        "name": "Finance Transformation",
        "start_date": _d(0),
        "end_date": _d(95),
    })
    if err:
        raise SystemExit(f"  ❌ {err['error']}")
    print(f"  ✅ Project {project.code} (id={project.id})")
    return project


# ═══════════════════════════════════════════════════════════════════════════
# 2. PLAN
# ═══════════════════════════════════════════════════════════════════════════

def seed_plan(project):
    count = 0
    for c_idx, (component_name, milestones) in enumerate(DEMO_PLAN, start=1):
        component = create_plan_item(project.id, {
            "item_type": "component", "name": component_name, "wbs": str(c_idx),
        })
        count += 1
        for m_idx, (m_name, start, end, billable, deliverables) in enumerate(milestones, start=1):
            milestone = create_plan_item(project.id, {
                "item_type": "milestone", "parent_id": component.id, "name": m_name,
                "wbs": f"{c_idx}.{m_idx}", "start_date": _d(start), "end_date": _d(end),
                "billable": billable,
            })
            count += 1
            for d_idx, (d_name, tasks) in enumerate(deliverables, start=1):
                deliverable = create_plan_item(project.id, {
                    "item_type": "deliverable", "parent_id": milestone.id, "name": d_name,
                    "wbs": f"{c_idx}.{m_idx}.{d_idx}", "start_date": _d(start), "end_date": _d(end),
                })
                count += 1
                for t_idx, t_name in enumerate(tasks, start=1):
                    create_plan_item(project.id, {
                        "item_type": "task", "parent_id": deliverable.id, "name": t_name,
                        "wbs": f"{c_idx}.{m_idx}.{d_idx}.{t_idx}",
                        "status": "completed" if t_idx == 1 else "not_started",
                    })
                    count += 1

    # Rows the commit will skip
    create_plan_item(project.id, {"item_type": "milestone", "name": "Hypercare exit"})
    create_plan_item(project.id, {"item_type": "deliverable", "name": "Orphan deliverable"})
    count += 2

    db.session.commit()
    print(f"  ✅ {count} plan items")


# ═══════════════════════════════════════════════════════════════════════════
# 3. COMMIT
# ═══════════════════════════════════════════════════════════════════════════

def commit_demo(project, lock=False):
    result = commit_plan(project.id, DEMO_USER)
    db.session.commit()
    print(f"  ✅ Committed: {len(result['milestones'])} milestones, "
          f"{len(result['deliverables'])} deliverables, {result['tasks']} tasks")
    for skipped in result["skipped"]:
        print(f"  ⏭️  Skipped {skipped['name']}: {skipped['reason']}")
    for error in result["errors"]:
        print(f"  ❌ {error['type']} {error['item']}: {error['error']}")

    if lock:
        for milestone in Milestone.query_active().filter_by(project_id=project.id):
            lock_milestone_baseline(milestone, DEMO_USER)
        db.session.commit()
        print("  🔒 Milestone baselines locked")

    summary = get_commit_summary(project.id)
    print(f"  📊 committed={summary['committed']} uncommitted={summary['uncommitted']} "
          f"locked={summary['baseline_locked']} status={summary['status']}")


def main():
    parser = argparse.ArgumentParser(description="Demo Plan Seed")
    parser.add_argument("--commit", action="store_true",
                        help="Publish the plan to the tracker after seeding")
    parser.add_argument("--lock", action="store_true",
                        help="Lock milestone baselines after commit (implies --commit)")
    parser.add_argument("--no-reset", action="store_true",
                        help="Don't clear existing data")
    args = parser.parse_args()

    app = create_app()
    print(f"  🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")

    with app.app_context():
        if not args.no_reset:
            db.drop_all()
            db.create_all()
            print("  ♻️  Database reset complete\n")

        project = seed_project()
        seed_plan(project)
        if args.commit or args.lock:
            commit_demo(project, lock=args.lock)


if __name__ == "__main__":
    main()
