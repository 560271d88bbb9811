"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casework.adapters.persistence.database import Base

# Native text[] on PostgreSQL, JSON list elsewhere (SQLite in tests)
SpecialtyList = ARRAY(String(100)).with_variant(JSON(), "sqlite")

ACTIVE_ONLY = text("status = 'ACTIVE'")


class CaseModel(Base):
    """Engine-facing columns of the case table owned by case management."""

    __tablename__ = "cases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    carrier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    issue_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    claimed_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    assigned_to: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("handlers.id"), nullable=True
    )


class HandlerModel(Base):
    __tablename__ = "handlers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_concurrent_cases: Mapped[int] = mapped_column(Integer, nullable=False)
    current_case_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    carrier_specialties: Mapped[list[str]] = mapped_column(
        SpecialtyList, nullable=False, default=list
    )
    issue_type_specialties: Mapped[list[str]] = mapped_column(
        SpecialtyList, nullable=False, default=list
    )
    success_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_assigned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    total_cases_handled: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    assignments: Mapped[list["CaseAssignmentModel"]] = relationship(back_populates="handler")

    __table_args__ = (
        CheckConstraint("max_concurrent_cases > 0", name="ck_handlers_capacity_positive"),
        CheckConstraint("current_case_count >= 0", name="ck_handlers_count_non_negative"),
        Index("idx_handlers_active_role", "is_active", "role"),
    )


class AssignmentRuleModel(Base):
    __tablename__ = "assignment_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    carrier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    issue_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    priority_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    amount_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    strategy: Mapped[str] = mapped_column(String(20), nullable=False)
    assign_to_role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assign_to_handler_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("handlers.id", ondelete="SET NULL"), nullable=True
    )
    assignment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "(amount_min IS NULL) = (amount_max IS NULL)", name="ck_rules_amount_range_complete"
        ),
        Index("idx_rules_active_priority", "is_active", "priority"),
    )


class CaseAssignmentModel(Base):
    __tablename__ = "case_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    assigned_to: Mapped[int] = mapped_column(Integer, ForeignKey("handlers.id"), nullable=False)
    assignment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    assignment_rule_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("assignment_rules.id", ondelete="SET NULL"), nullable=True
    )
    assigned_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    assignment_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    time_to_complete: Mapped[int | None] = mapped_column(Integer, nullable=True)

    handler: Mapped["HandlerModel"] = relationship(back_populates="assignments")

    __table_args__ = (
        Index("idx_case_assignments_case", "case_id"),
        Index("idx_case_assignments_handler_status", "assigned_to", "status"),
        # At most one ACTIVE assignment per case
        Index(
            "uq_case_assignments_active_case",
            "case_id",
            unique=True,
            postgresql_where=ACTIVE_ONLY,
            sqlite_where=ACTIVE_ONLY,
        ),
    )
