"""
Delivery Planner
Planning domain models.

Models:
    - PlanItem: node of the mutable planning hierarchy
      (component → milestone → deliverable → task, plus phases)
    - ProjectPlan: per-project plan state (draft / committed / archived)

Plan items are edited freely until they are committed; commit materialises
them into tracker Milestones / Deliverables (see app.models.tracker) and
stamps the published_* linkage columns below.
"""

import uuid
from datetime import datetime, timezone

from app.models import db
from app.models.soft_delete import SoftDeleteMixin


# ── Constants ────────────────────────────────────────────────────────────────

ITEM_TYPES = {"component", "milestone", "deliverable", "task", "phase"}

PLAN_ITEM_STATUSES = {"not_started", "in_progress", "completed", "on_hold", "cancelled"}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _money(value):
    return float(value) if value is not None else None


# ═══════════════════════════════════════════════════════════════════════════
#  PLAN ITEM
# ═══════════════════════════════════════════════════════════════════════════

class PlanItem(SoftDeleteMixin, db.Model):
    """
    One row of the planner grid.

    Invariant: start_date <= end_date when both are set and
    duration_days == (end_date - start_date).days + 1.
    published_milestone_id / published_deliverable_id are written once by
    commit and never cleared.
    """

    __tablename__ = "plan_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    parent_id = db.Column(
        db.String(36),
        db.ForeignKey("plan_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="NULL = root of the plan tree",
    )
    item_type = db.Column(db.String(20), nullable=False, default="task", index=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    wbs = db.Column(db.String(50), default="", comment="Display-only WBS position, e.g. 1.2.3")

    name = db.Column(db.String(300), default="")
    description = db.Column(db.Text, default="")
    owner = db.Column(db.String(150), default="")
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    duration_days = db.Column(db.Integer, nullable=True, comment="(end - start) + 1, >= 1")
    progress = db.Column(db.Integer, default=0, comment="0-100")
    status = db.Column(db.String(30), default="not_started")
    billable = db.Column(db.Numeric(14, 2), nullable=True)
    cost = db.Column(db.Numeric(14, 2), nullable=True)

    # ── Publish linkage ──────────────────────────────────────────────────
    is_published = db.Column(db.Boolean, nullable=False, default=False, index=True)
    published_milestone_id = db.Column(
        db.String(36),
        db.ForeignKey("milestones.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    published_deliverable_id = db.Column(
        db.String(36),
        db.ForeignKey("deliverables.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    published_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    published_milestone = db.relationship("Milestone", foreign_keys=[published_milestone_id])
    published_deliverable = db.relationship("Deliverable", foreign_keys=[published_deliverable_id])

    __table_args__ = (
        db.Index("ix_plan_items_project_published", "project_id", "is_published"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "parent_id": self.parent_id,
            "item_type": self.item_type,
            "sort_order": self.sort_order,
            "wbs": self.wbs,
            "name": self.name,
            "description": self.description,
            "owner": self.owner,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "duration_days": self.duration_days,
            "progress": self.progress,
            "status": self.status,
            "billable": _money(self.billable),
            "cost": _money(self.cost),
            "is_deleted": self.is_deleted,
            "is_published": bool(self.is_published),
            "published_milestone_id": self.published_milestone_id,
            "published_deliverable_id": self.published_deliverable_id,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<PlanItem {self.item_type} {self.id[:8] if self.id else '?'}: {(self.name or '')[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT PLAN
# ═══════════════════════════════════════════════════════════════════════════

class ProjectPlan(db.Model):
    """Plan state per project: draft (sandbox) until the first commit."""

    __tablename__ = "project_plans"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=False, default="Main Plan")
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="draft")
    committed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    committed_by = db.Column(db.String(64), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("project_id", "name", name="uq_project_plans_project_name"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "committed_at": self.committed_at.isoformat() if self.committed_at else None,
            "committed_by": self.committed_by,
            "version": self.version,
        }
