"""
Delivery Planner
Tracker domain models.

Models:
    - Milestone: tracked milestone created by plan commit, carries the
      baseline snapshot (dates + billable) and the baseline lock
    - Deliverable: tracked deliverable owned by exactly one Milestone;
      plan tasks are folded into its tasks_checklist

Refs are human-readable sequential codes per project: M01, M02 ... / D01, D02 ...
"""

from app.models import db
from app.models.planning import _money, _utcnow, _uuid
from app.models.soft_delete import SoftDeleteMixin


# ── Constants ────────────────────────────────────────────────────────────────

MILESTONE_REF_PREFIX = "M"
DELIVERABLE_REF_PREFIX = "D"


# ═══════════════════════════════════════════════════════════════════════════
#  MILESTONE
# ═══════════════════════════════════════════════════════════════════════════

class Milestone(SoftDeleteMixin, db.Model):
    """
    Tracker milestone.

    baseline_* columns are a snapshot taken at commit time. Once
    baseline_locked is true they are frozen and any divergence of the source
    plan item is reported as a baseline change instead of being synced.
    """

    __tablename__ = "milestones"

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
    milestone_ref = db.Column(db.String(20), nullable=False, comment="Sequential per project: M01")
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    forecast_start_date = db.Column(db.Date, nullable=True)
    forecast_end_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(30), default="Not Started")
    billable = db.Column(db.Numeric(14, 2), default=0)
    completion_percentage = db.Column(db.Integer, default=0)

    # Baseline
    baseline_start_date = db.Column(db.Date, nullable=True)
    baseline_end_date = db.Column(db.Date, nullable=True)
    baseline_billable = db.Column(db.Numeric(14, 2), nullable=True)
    baseline_locked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    baseline_locked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    baseline_locked_by = db.Column(db.String(64), nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    deliverables = db.relationship(
        "Deliverable", back_populates="milestone", lazy="dynamic",
        order_by="Deliverable.deliverable_ref",
    )

    __table_args__ = (
        db.UniqueConstraint("project_id", "milestone_ref", name="uq_milestones_project_ref"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "milestone_ref": self.milestone_ref,
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "forecast_start_date": self.forecast_start_date.isoformat() if self.forecast_start_date else None,
            "forecast_end_date": self.forecast_end_date.isoformat() if self.forecast_end_date else None,
            "status": self.status,
            "billable": _money(self.billable),
            "completion_percentage": self.completion_percentage,
            "baseline_start_date": self.baseline_start_date.isoformat() if self.baseline_start_date else None,
            "baseline_end_date": self.baseline_end_date.isoformat() if self.baseline_end_date else None,
            "baseline_billable": _money(self.baseline_billable),
            "baseline_locked": bool(self.baseline_locked),
            "baseline_locked_at": self.baseline_locked_at.isoformat() if self.baseline_locked_at else None,
            "baseline_locked_by": self.baseline_locked_by,
            "is_deleted": self.is_deleted,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Milestone {self.milestone_ref}: {(self.name or '')[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  DELIVERABLE
# ═══════════════════════════════════════════════════════════════════════════

class Deliverable(SoftDeleteMixin, db.Model):
    """Tracker deliverable; plan tasks live in tasks_checklist, not as rows."""

    __tablename__ = "deliverables"

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
    milestone_id = db.Column(
        db.String(36), db.ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    deliverable_ref = db.Column(db.String(20), nullable=False, comment="Sequential per project: D01")
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    start_date = db.Column(db.Date, nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(30), default="Not Started")
    progress = db.Column(db.Integer, default=0)
    tasks_checklist = db.Column(
        db.JSON, nullable=True,
        comment="[{id, name, completed, order}] folded from plan tasks",
    )

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    milestone = db.relationship("Milestone", back_populates="deliverables")

    __table_args__ = (
        db.UniqueConstraint("project_id", "deliverable_ref", name="uq_deliverables_project_ref"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "milestone_id": self.milestone_id,
            "deliverable_ref": self.deliverable_ref,
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "status": self.status,
            "progress": self.progress,
            "tasks_checklist": self.tasks_checklist or [],
            "is_deleted": self.is_deleted,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Deliverable {self.deliverable_ref}: {(self.name or '')[:40]}>"
