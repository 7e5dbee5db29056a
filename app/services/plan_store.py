"""Plan / tracker item store.

The commit engine reads and writes exclusively through this module:

    query_plan_items       fetch plan items by project + filters, by sort_order
    insert_tracker_record  create a Milestone / Deliverable row
    update_plan_item       write linkage fields back onto a plan item
    query_ref_candidates   existing refs for sequential ref assignment

Transaction policy: methods flush, never commit. Each write runs inside its
own SAVEPOINT so a failing insert rolls back alone and the surrounding
session (earlier successful inserts) survives. The route handler commits.

Every SQLAlchemy failure is re-raised as PlanStoreError.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import PlanStoreError
from app.models import db
from app.models.planning import PlanItem, ProjectPlan
from app.models.tracker import Deliverable, Milestone

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(operation):
    try:
        yield
    except SQLAlchemyError as exc:
        detail = getattr(exc, "orig", None) or exc
        logger.warning("Store operation %s failed: %s", operation, detail)
        raise PlanStoreError(operation, str(detail)) from exc


class PlanStore:
    """SQLAlchemy-backed store bound to a session (db.session by default)."""

    def __init__(self, session=None):
        self.session = session or db.session

    # ── Plan items ───────────────────────────────────────────────────────

    def query_plan_items(
        self,
        project_id,
        *,
        is_published=None,
        include_deleted=False,
        item_types=None,
        has_milestone_link=False,
    ):
        """Plan items of a project, ordered by sort_order ascending."""
        with _store_errors("query_plan_items"):
            q = self.session.query(PlanItem).filter(PlanItem.project_id == project_id)
            if is_published is not None:
                q = q.filter(PlanItem.is_published.is_(bool(is_published)))
            if not include_deleted:
                q = q.filter(PlanItem.deleted_at.is_(None))
            if item_types:
                q = q.filter(PlanItem.item_type.in_(list(item_types)))
            if has_milestone_link:
                q = q.filter(PlanItem.published_milestone_id.isnot(None))
            return q.order_by(PlanItem.sort_order.asc(), PlanItem.created_at.asc()).all()

    def get_plan_item(self, item_id):
        with _store_errors("get_plan_item"):
            return self.session.get(PlanItem, item_id)

    def update_plan_item(self, item_id, fields):
        """Apply ``fields`` to one plan item. Missing items are logged and ignored."""
        with _store_errors("update_plan_item"):
            with self.session.begin_nested():
                item = self.session.get(PlanItem, item_id)
                if item is None:
                    logger.warning("update_plan_item: plan item %s not found", item_id)
                    return
                for key, value in fields.items():
                    setattr(item, key, value)
                self.session.flush()

    def find_plan_items_linked_to(self, *, milestone_id=None, deliverable_id=None):
        """Non-deleted plan items published into the given tracker row."""
        with _store_errors("find_plan_items_linked_to"):
            q = self.session.query(PlanItem).filter(PlanItem.deleted_at.is_(None))
            if milestone_id is not None:
                q = q.filter(PlanItem.published_milestone_id == milestone_id)
            if deliverable_id is not None:
                q = q.filter(PlanItem.published_deliverable_id == deliverable_id)
            return q.all()

    # ── Tracker rows ─────────────────────────────────────────────────────

    def insert_tracker_record(self, model, record):
        """Create one tracker row (Milestone or Deliverable) and flush it."""
        with _store_errors(f"insert {model.__tablename__}"):
            with self.session.begin_nested():
                obj = model(**record)
                self.session.add(obj)
                self.session.flush()
            return obj

    def query_ref_candidates(self, project_id, model, ref_column):
        """All refs already used in the project (soft-deleted rows included), descending."""
        column = getattr(model, ref_column)
        with _store_errors(f"query_ref_candidates {model.__tablename__}"):
            rows = (
                self.session.query(column)
                .filter(model.project_id == project_id)
                .order_by(column.desc())
                .all()
            )
        return [r[0] for r in rows if r[0]]

    def get_milestones(self, ids):
        ids = [i for i in ids if i]
        if not ids:
            return []
        with _store_errors("get_milestones"):
            return self.session.query(Milestone).filter(Milestone.id.in_(ids)).all()

    def get_milestone(self, milestone_id):
        with _store_errors("get_milestone"):
            return self.session.get(Milestone, milestone_id)

    def get_deliverable(self, deliverable_id):
        with _store_errors("get_deliverable"):
            return self.session.get(Deliverable, deliverable_id)

    # ── Project plan state ───────────────────────────────────────────────

    def get_project_plan(self, project_id, *, create=False):
        with _store_errors("get_project_plan"):
            plan = (
                self.session.query(ProjectPlan)
                .filter(ProjectPlan.project_id == project_id)
                .order_by(ProjectPlan.id.asc())
                .first()
            )
            if plan is None and create:
                plan = ProjectPlan(project_id=project_id, status="draft")
                self.session.add(plan)
                self.session.flush()
            return plan

    def get_deliverables(self, ids):
        ids = [i for i in ids if i]
        if not ids:
            return []
        with _store_errors("get_deliverables"):
            return self.session.query(Deliverable).filter(Deliverable.id.in_(ids)).all()

    def mark_plan_committed(self, project_id, user_id, committed_at):
        """Flip the project plan to ``committed`` and stamp who/when."""
        with _store_errors("mark_plan_committed"):
            with self.session.begin_nested():
                plan = self.get_project_plan(project_id, create=True)
                plan.status = "committed"
                plan.committed_at = committed_at
                plan.committed_by = user_id
                self.session.flush()
            return plan
