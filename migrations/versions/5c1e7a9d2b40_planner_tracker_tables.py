"""planner_tracker_tables

Create tenant / project scope, planner (plan_items, project_plans) and
tracker (milestones, deliverables) tables.

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5c1e7a9d2b40"
down_revision = None
branch_labels = None
depends_on = None


def _soft_delete_columns():
    return [
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(length=64), nullable=True),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "tenants" not in existing_tables:
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("slug", sa.String(length=100), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("slug"),
        )

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(length=50), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="active"),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "code", name="uq_projects_tenant_code"),
        )
        op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"])

    if "project_plans" not in existing_tables:
        op.create_table(
            "project_plans",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False, server_default="Main Plan"),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
            sa.Column("committed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("committed_by", sa.String(length=64), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "name", name="uq_project_plans_project_name"),
        )
        op.create_index("ix_project_plans_project_id", "project_plans", ["project_id"])

    if "milestones" not in existing_tables:
        op.create_table(
            "milestones",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=True),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("milestone_ref", sa.String(length=20), nullable=False),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("forecast_start_date", sa.Date(), nullable=True),
            sa.Column("forecast_end_date", sa.Date(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=True),
            sa.Column("billable", sa.Numeric(14, 2), nullable=True),
            sa.Column("completion_percentage", sa.Integer(), nullable=True),
            sa.Column("baseline_start_date", sa.Date(), nullable=True),
            sa.Column("baseline_end_date", sa.Date(), nullable=True),
            sa.Column("baseline_billable", sa.Numeric(14, 2), nullable=True),
            sa.Column("baseline_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("baseline_locked_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("baseline_locked_by", sa.String(length=64), nullable=True),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "milestone_ref", name="uq_milestones_project_ref"),
        )
        op.create_index("ix_milestones_tenant_id", "milestones", ["tenant_id"])
        op.create_index("ix_milestones_project_id", "milestones", ["project_id"])
        op.create_index("ix_milestones_baseline_locked", "milestones", ["baseline_locked"])
        op.create_index("ix_milestones_deleted_at", "milestones", ["deleted_at"])

    if "deliverables" not in existing_tables:
        op.create_table(
            "deliverables",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=True),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("milestone_id", sa.String(length=36), nullable=False),
            sa.Column("deliverable_ref", sa.String(length=20), nullable=False),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=True),
            sa.Column("progress", sa.Integer(), nullable=True),
            sa.Column("tasks_checklist", sa.JSON(), nullable=True),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["milestone_id"], ["milestones.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "deliverable_ref", name="uq_deliverables_project_ref"),
        )
        op.create_index("ix_deliverables_tenant_id", "deliverables", ["tenant_id"])
        op.create_index("ix_deliverables_project_id", "deliverables", ["project_id"])
        op.create_index("ix_deliverables_milestone_id", "deliverables", ["milestone_id"])
        op.create_index("ix_deliverables_deleted_at", "deliverables", ["deleted_at"])

    if "plan_items" not in existing_tables:
        op.create_table(
            "plan_items",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=True),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("parent_id", sa.String(length=36), nullable=True),
            sa.Column("item_type", sa.String(length=20), nullable=False, server_default="task"),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("wbs", sa.String(length=50), nullable=True),
            sa.Column("name", sa.String(length=300), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("owner", sa.String(length=150), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("duration_days", sa.Integer(), nullable=True),
            sa.Column("progress", sa.Integer(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=True),
            sa.Column("billable", sa.Numeric(14, 2), nullable=True),
            sa.Column("cost", sa.Numeric(14, 2), nullable=True),
            sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("published_milestone_id", sa.String(length=36), nullable=True),
            sa.Column("published_deliverable_id", sa.String(length=36), nullable=True),
            sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["parent_id"], ["plan_items.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["published_milestone_id"], ["milestones.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["published_deliverable_id"], ["deliverables.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_plan_items_tenant_id", "plan_items", ["tenant_id"])
        op.create_index("ix_plan_items_project_id", "plan_items", ["project_id"])
        op.create_index("ix_plan_items_parent_id", "plan_items", ["parent_id"])
        op.create_index("ix_plan_items_item_type", "plan_items", ["item_type"])
        op.create_index("ix_plan_items_is_published", "plan_items", ["is_published"])
        op.create_index("ix_plan_items_published_milestone_id", "plan_items", ["published_milestone_id"])
        op.create_index("ix_plan_items_published_deliverable_id", "plan_items", ["published_deliverable_id"])
        op.create_index("ix_plan_items_deleted_at", "plan_items", ["deleted_at"])
        op.create_index("ix_plan_items_project_published", "plan_items", ["project_id", "is_published"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in ("plan_items", "deliverables", "milestones", "project_plans", "projects", "tenants"):
        if table in existing_tables:
            op.drop_table(table)
