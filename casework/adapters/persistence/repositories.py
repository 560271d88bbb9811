"""SQLAlchemy repository implementations."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from casework.adapters.persistence.models import (
    AssignmentRuleModel,
    CaseAssignmentModel,
    CaseModel,
    HandlerModel,
)
from casework.application.ports.assignment_repo import AssignmentRepository
from casework.application.ports.case_repo import CaseRepository
from casework.application.ports.handler_repo import HandlerRepository
from casework.application.ports.rule_repo import RuleRepository
from casework.application.ports.transaction import TransactionManager
from casework.domain.entities.assignment import Assignment
from casework.domain.entities.assignment_rule import AmountRange, AssignmentRule
from casework.domain.entities.case import CaseAttributes
from casework.domain.entities.handler import Handler
from casework.domain.exceptions import AssignmentConflict
from casework.domain.value_objects.enums import (
    AssignmentMethod,
    AssignmentStatus,
    AssignmentStrategy,
)

# ─── Mappers ─────────────────────────────────────────────────────────


def _update(model):
    # Reads use populate_existing, so the identity map is never synchronized here
    return update(model).execution_options(synchronize_session=False)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _handler_to_domain(m: HandlerModel) -> Handler:
    return Handler(
        id=m.id,
        name=m.name,
        role=m.role,
        max_concurrent_cases=m.max_concurrent_cases,
        current_case_count=m.current_case_count,
        is_active=m.is_active,
        is_available=m.is_available,
        carrier_specialties=set(m.carrier_specialties or ()),
        issue_type_specialties=set(m.issue_type_specialties or ()),
        success_rate=m.success_rate,
        last_assigned_at=_aware(m.last_assigned_at),
        total_cases_handled=m.total_cases_handled,
    )


def _rule_to_domain(m: AssignmentRuleModel) -> AssignmentRule:
    amount_range = None
    if m.amount_min is not None and m.amount_max is not None:
        amount_range = AmountRange(min=m.amount_min, max=m.amount_max)
    return AssignmentRule(
        id=m.id,
        name=m.name,
        priority=m.priority,
        strategy=AssignmentStrategy(m.strategy),
        is_active=m.is_active,
        carrier=m.carrier,
        issue_type=m.issue_type,
        priority_level=m.priority_level,
        amount_range=amount_range,
        assign_to_role=m.assign_to_role,
        assign_to_handler_id=m.assign_to_handler_id,
        assignment_count=m.assignment_count,
    )


def _assignment_to_domain(m: CaseAssignmentModel) -> Assignment:
    return Assignment(
        id=m.id,
        case_id=m.case_id,
        assigned_to=m.assigned_to,
        assignment_method=AssignmentMethod(m.assignment_method),
        assigned_at=_aware(m.assigned_at),
        status=AssignmentStatus(m.status),
        assignment_rule_id=m.assignment_rule_id,
        assigned_by=m.assigned_by,
        assignment_reason=m.assignment_reason,
        completed_at=_aware(m.completed_at),
        time_to_complete=m.time_to_complete,
    )


def _case_to_domain(m: CaseModel) -> CaseAttributes:
    return CaseAttributes(
        id=m.id,
        carrier=m.carrier,
        issue_type=m.issue_type,
        priority=m.priority,
        claimed_amount=m.claimed_amount,
    )


def _rule_columns(rule: AssignmentRule) -> dict:
    return {
        "name": rule.name,
        "priority": rule.priority,
        "is_active": rule.is_active,
        "carrier": rule.carrier,
        "issue_type": rule.issue_type,
        "priority_level": rule.priority_level,
        "amount_min": rule.amount_range.min if rule.amount_range else None,
        "amount_max": rule.amount_range.max if rule.amount_range else None,
        "strategy": rule.strategy.value,
        "assign_to_role": rule.assign_to_role,
        "assign_to_handler_id": rule.assign_to_handler_id,
    }


def _handler_profile_columns(handler: Handler) -> dict:
    return {
        "name": handler.name,
        "role": handler.role,
        "max_concurrent_cases": handler.max_concurrent_cases,
        "is_active": handler.is_active,
        "is_available": handler.is_available,
        "carrier_specialties": sorted(handler.carrier_specialties),
        "issue_type_specialties": sorted(handler.issue_type_specialties),
        "success_rate": handler.success_rate,
    }


# ─── Repositories ────────────────────────────────────────────────────


class SqlHandlerRepository(HandlerRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, handler: Handler) -> Handler:
        m = HandlerModel(
            **_handler_profile_columns(handler),
            current_case_count=handler.current_case_count,
            total_cases_handled=handler.total_cases_handled,
            last_assigned_at=handler.last_assigned_at,
        )
        self._s.add(m)
        await self._s.flush()
        handler.id = m.id
        return handler

    async def update(self, handler: Handler) -> Handler:
        await self._s.execute(
            _update(HandlerModel)
            .where(HandlerModel.id == handler.id)
            .values(**_handler_profile_columns(handler))
        )
        await self._s.flush()
        return handler

    async def get_by_id(self, handler_id: int) -> Handler | None:
        m = await self._s.get(HandlerModel, handler_id, populate_existing=True)
        return _handler_to_domain(m) if m else None

    async def get_all(self) -> list[Handler]:
        result = await self._s.execute(
            select(HandlerModel)
            .order_by(HandlerModel.id)
            .execution_options(populate_existing=True)
        )
        return [_handler_to_domain(m) for m in result.scalars()]

    async def get_active(self) -> list[Handler]:
        result = await self._s.execute(
            select(HandlerModel)
            .where(HandlerModel.is_active.is_(True))
            .order_by(HandlerModel.id)
            .execution_options(populate_existing=True)
        )
        return [_handler_to_domain(m) for m in result.scalars()]

    async def increment_case_count(
        self, handler_id: int, assigned_at: datetime, enforce_capacity: bool = False
    ) -> bool:
        stmt = (
            _update(HandlerModel)
            .where(HandlerModel.id == handler_id)
            .values(
                current_case_count=HandlerModel.current_case_count + 1,
                last_assigned_at=assigned_at,
            )
        )
        if enforce_capacity:
            stmt = stmt.where(HandlerModel.current_case_count < HandlerModel.max_concurrent_cases)
        result = await self._s.execute(stmt)
        await self._s.flush()
        return result.rowcount == 1

    async def decrement_case_count(self, handler_id: int, completed: bool = False) -> None:
        values = {
            "current_case_count": case(
                (HandlerModel.current_case_count > 0, HandlerModel.current_case_count - 1),
                else_=0,
            )
        }
        if completed:
            values["total_cases_handled"] = HandlerModel.total_cases_handled + 1
        await self._s.execute(
            _update(HandlerModel).where(HandlerModel.id == handler_id).values(**values)
        )
        await self._s.flush()

    async def set_case_count(self, handler_id: int, count: int) -> None:
        await self._s.execute(
            _update(HandlerModel)
            .where(HandlerModel.id == handler_id)
            .values(current_case_count=count)
        )
        await self._s.flush()


class SqlRuleRepository(RuleRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, rule: AssignmentRule) -> AssignmentRule:
        m = AssignmentRuleModel(**_rule_columns(rule), assignment_count=rule.assignment_count)
        self._s.add(m)
        await self._s.flush()
        rule.id = m.id
        return rule

    async def update(self, rule: AssignmentRule) -> AssignmentRule:
        await self._s.execute(
            _update(AssignmentRuleModel)
            .where(AssignmentRuleModel.id == rule.id)
            .values(**_rule_columns(rule))
        )
        await self._s.flush()
        return rule

    async def get_by_id(self, rule_id: int) -> AssignmentRule | None:
        m = await self._s.get(AssignmentRuleModel, rule_id, populate_existing=True)
        return _rule_to_domain(m) if m else None

    async def get_all(self) -> list[AssignmentRule]:
        result = await self._s.execute(
            select(AssignmentRuleModel)
            .order_by(AssignmentRuleModel.priority.desc(), AssignmentRuleModel.id)
            .execution_options(populate_existing=True)
        )
        return [_rule_to_domain(m) for m in result.scalars()]

    async def get_active(self) -> list[AssignmentRule]:
        result = await self._s.execute(
            select(AssignmentRuleModel)
            .where(AssignmentRuleModel.is_active.is_(True))
            .order_by(AssignmentRuleModel.priority.desc(), AssignmentRuleModel.id)
            .execution_options(populate_existing=True)
        )
        return [_rule_to_domain(m) for m in result.scalars()]

    async def increment_assignment_count(self, rule_id: int) -> None:
        await self._s.execute(
            _update(AssignmentRuleModel)
            .where(AssignmentRuleModel.id == rule_id)
            .values(assignment_count=AssignmentRuleModel.assignment_count + 1)
        )
        await self._s.flush()


class SqlAssignmentRepository(AssignmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, assignment: Assignment) -> Assignment:
        m = CaseAssignmentModel(
            case_id=assignment.case_id,
            assigned_to=assignment.assigned_to,
            assignment_method=assignment.assignment_method.value,
            assignment_rule_id=assignment.assignment_rule_id,
            assigned_by=assignment.assigned_by,
            assignment_reason=assignment.assignment_reason,
            status=assignment.status.value,
            assigned_at=assignment.assigned_at,
        )
        self._s.add(m)
        try:
            await self._s.flush()
        except IntegrityError as exc:
            raise AssignmentConflict(
                f"Case {assignment.case_id} already has an active assignment"
            ) from exc
        assignment.id = m.id
        return assignment

    async def get_active_for_case(self, case_id: int) -> Assignment | None:
        result = await self._s.execute(
            select(CaseAssignmentModel)
            .where(
                CaseAssignmentModel.case_id == case_id,
                CaseAssignmentModel.status == AssignmentStatus.ACTIVE.value,
            )
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _assignment_to_domain(m) if m else None

    async def close(
        self,
        assignment_id: int,
        status: AssignmentStatus,
        closed_at: datetime,
        time_to_complete: int | None = None,
    ) -> bool:
        values: dict = {"status": status.value}
        if status == AssignmentStatus.COMPLETED:
            values["completed_at"] = closed_at
            values["time_to_complete"] = time_to_complete
        result = await self._s.execute(
            _update(CaseAssignmentModel)
            .where(
                CaseAssignmentModel.id == assignment_id,
                CaseAssignmentModel.status == AssignmentStatus.ACTIVE.value,
            )
            .values(**values)
        )
        await self._s.flush()
        return result.rowcount == 1

    async def get_active_for_handler(self, handler_id: int, limit: int) -> list[Assignment]:
        result = await self._s.execute(
            select(CaseAssignmentModel)
            .where(
                CaseAssignmentModel.assigned_to == handler_id,
                CaseAssignmentModel.status == AssignmentStatus.ACTIVE.value,
            )
            .order_by(CaseAssignmentModel.assigned_at, CaseAssignmentModel.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def find(
        self,
        case_id: int | None = None,
        handler_id: int | None = None,
        status: AssignmentStatus | None = None,
    ) -> list[Assignment]:
        stmt = select(CaseAssignmentModel)
        if case_id is not None:
            stmt = stmt.where(CaseAssignmentModel.case_id == case_id)
        if handler_id is not None:
            stmt = stmt.where(CaseAssignmentModel.assigned_to == handler_id)
        if status is not None:
            stmt = stmt.where(CaseAssignmentModel.status == status.value)
        result = await self._s.execute(
            stmt.order_by(CaseAssignmentModel.assigned_at, CaseAssignmentModel.id)
            .execution_options(populate_existing=True)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def count_active_by_handler(self) -> dict[int, int]:
        result = await self._s.execute(
            select(CaseAssignmentModel.assigned_to, func.count(CaseAssignmentModel.id))
            .where(CaseAssignmentModel.status == AssignmentStatus.ACTIVE.value)
            .group_by(CaseAssignmentModel.assigned_to)
        )
        return {handler_id: count for handler_id, count in result.all()}


class SqlCaseRepository(CaseRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_by_id(self, case_id: int) -> CaseAttributes | None:
        m = await self._s.get(CaseModel, case_id, populate_existing=True)
        return _case_to_domain(m) if m else None

    async def set_assigned_to(self, case_id: int, handler_id: int | None) -> None:
        await self._s.execute(
            _update(CaseModel).where(CaseModel.id == case_id).values(assigned_to=handler_id)
        )
        await self._s.flush()


class SqlTransactionManager(TransactionManager):
    """Runs each unit of work inside a SAVEPOINT on the request session.

    The caller still owns the outer transaction and commits it.
    """

    def __init__(self, session: AsyncSession):
        self._s = session

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        async with self._s.begin_nested():
            yield
