"""Initial schema — cases, handlers, assignment rules, case assignments.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Handlers
    op.create_table(
        "handlers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("max_concurrent_cases", sa.Integer, nullable=False),
        sa.Column("current_case_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "carrier_specialties", ARRAY(sa.String(100)), nullable=False, server_default="{}"
        ),
        sa.Column(
            "issue_type_specialties", ARRAY(sa.String(100)), nullable=False, server_default="{}"
        ),
        sa.Column("success_rate", sa.Float, nullable=False, server_default="0"),
        sa.Column("last_assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_cases_handled", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("max_concurrent_cases > 0", name="ck_handlers_capacity_positive"),
        sa.CheckConstraint("current_case_count >= 0", name="ck_handlers_count_non_negative"),
    )
    op.create_index("idx_handlers_active_role", "handlers", ["is_active", "role"])

    # Cases (engine-facing columns only; owned by case management)
    op.create_table(
        "cases",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("carrier", sa.String(20), nullable=True),
        sa.Column("issue_type", sa.String(100), nullable=True),
        sa.Column("priority", sa.String(20), nullable=True),
        sa.Column("claimed_amount", sa.Integer, nullable=True),
        sa.Column("assigned_to", sa.Integer, sa.ForeignKey("handlers.id"), nullable=True),
    )

    # Assignment rules
    op.create_table(
        "assignment_rules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("carrier", sa.String(20), nullable=True),
        sa.Column("issue_type", sa.String(100), nullable=True),
        sa.Column("priority_level", sa.String(20), nullable=True),
        sa.Column("amount_min", sa.Integer, nullable=True),
        sa.Column("amount_max", sa.Integer, nullable=True),
        sa.Column("strategy", sa.String(20), nullable=False),
        sa.Column("assign_to_role", sa.String(100), nullable=True),
        sa.Column(
            "assign_to_handler_id",
            sa.Integer,
            sa.ForeignKey("handlers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("assignment_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "(amount_min IS NULL) = (amount_max IS NULL)", name="ck_rules_amount_range_complete"
        ),
    )
    op.create_index("idx_rules_active_priority", "assignment_rules", ["is_active", "priority"])

    # Case assignments
    op.create_table(
        "case_assignments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "case_id", sa.Integer, sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("assigned_to", sa.Integer, sa.ForeignKey("handlers.id"), nullable=False),
        sa.Column("assignment_method", sa.String(20), nullable=False),
        sa.Column(
            "assignment_rule_id",
            sa.Integer,
            sa.ForeignKey("assignment_rules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("assigned_by", sa.Integer, nullable=True),
        sa.Column("assignment_reason", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_to_complete", sa.Integer, nullable=True),
    )
    op.create_index("idx_case_assignments_case", "case_assignments", ["case_id"])
    op.create_index(
        "idx_case_assignments_handler_status", "case_assignments", ["assigned_to", "status"]
    )
    op.create_index(
        "uq_case_assignments_active_case",
        "case_assignments",
        ["case_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )


def downgrade() -> None:
    op.drop_table("case_assignments")
    op.drop_table("assignment_rules")
    op.drop_table("cases")
    op.drop_table("handlers")
