"""Milestone baseline locking.

The baseline snapshot (baseline_start_date / baseline_end_date /
baseline_billable) is taken when a milestone is committed. Locking freezes
it: from then on plan edits are reported as drift by
plan_commit_service.detect_baseline_changes and deletes are refused by
plan_sync_service.

Transaction policy: flush only, caller commits.
"""
import logging

from app.core.exceptions import ConflictError
from app.models import db
from app.models.planning import _utcnow

logger = logging.getLogger(__name__)


def lock_milestone_baseline(milestone, user_id):
    """Lock the baseline of ``milestone``.

    Raises:
        ConflictError: the baseline is already locked.
    """
    if milestone.baseline_locked:
        raise ConflictError(
            resource="Milestone",
            field="baseline_locked",
            value=milestone.id,
            message=f"Baseline of milestone {milestone.milestone_ref} is already locked",
        )
    milestone.baseline_locked = True
    milestone.baseline_locked_at = _utcnow()
    milestone.baseline_locked_by = user_id
    db.session.flush()
    logger.info(
        "Baseline locked milestone=%s by=%s", milestone.id, user_id,
        extra={"project_id": milestone.project_id},
    )
    return milestone


def unlock_milestone_baseline(milestone):
    """Release the lock. The snapshot values are kept."""
    milestone.baseline_locked = False
    milestone.baseline_locked_at = None
    milestone.baseline_locked_by = None
    db.session.flush()
    logger.info("Baseline unlocked milestone=%s", milestone.id, extra={"project_id": milestone.project_id})
    return milestone
