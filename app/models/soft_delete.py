"""
Soft Delete Mixin.

Adds `deleted_at` / `deleted_by` columns and the active-row query used by
the planner and tracker. Plan items and tracker rows are never physically
removed by the planning engine; they are marked deleted and filtered out
of every read.

Usage:
    class PlanItem(SoftDeleteMixin, db.Model):
        ...

    item.soft_delete(user_id="u-1")
    PlanItem.query_active().filter_by(project_id=pid).all()
"""

from datetime import datetime, timezone

from app.models import db


class SoftDeleteMixin:
    """Mixin that adds soft delete support to any SQLAlchemy model."""

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)
    deleted_by = db.Column(db.String(64), nullable=True, comment="Opaque id of the deleting user")

    def soft_delete(self, user_id=None):
        """Mark this record as deleted."""
        self.deleted_at = datetime.now(timezone.utc)
        self.deleted_by = user_id

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.deleted_at.is_(None))
