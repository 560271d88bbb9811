"""Tests for the SQLAlchemy repositories on SQLite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from casework.adapters.persistence.models import CaseAssignmentModel, CaseModel
from casework.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlCaseRepository,
    SqlHandlerRepository,
    SqlRuleRepository,
    SqlTransactionManager,
)
from casework.application.use_cases.assignment_ledger import AssignmentLedger
from casework.domain.entities.assignment import Assignment
from casework.domain.entities.assignment_rule import AmountRange, AssignmentRule
from casework.domain.entities.handler import Handler
from casework.domain.exceptions import AssignmentConflict, HandlerAtCapacity
from casework.domain.value_objects.enums import (
    AssignmentMethod,
    AssignmentStatus,
    AssignmentStrategy,
)

T0 = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)


async def _handler(session, max_cases=10, **kwargs) -> Handler:
    kwargs.setdefault("name", "Sam")
    kwargs.setdefault("role", "agent")
    return await SqlHandlerRepository(session).save(
        Handler(id=None, max_concurrent_cases=max_cases, **kwargs)
    )


async def _case(session, carrier="FEDEX", amount=10_000) -> int:
    m = CaseModel(carrier=carrier, issue_type="LOST", priority="HIGH", claimed_amount=amount)
    session.add(m)
    await session.flush()
    return m.id


def _assignment(case_id, handler_id, at=T0) -> Assignment:
    return Assignment(
        id=None, case_id=case_id, assigned_to=handler_id,
        assignment_method=AssignmentMethod.AUTO, assigned_at=at,
    )


# ─── Handlers ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_handler_round_trip_with_specialties(session):
    repo = SqlHandlerRepository(session)
    h = await _handler(session, carrier_specialties={"UPS", "FEDEX"}, success_rate=87.5)

    loaded = await repo.get_by_id(h.id)

    assert loaded.carrier_specialties == {"UPS", "FEDEX"}
    assert loaded.success_rate == 87.5
    assert loaded.current_case_count == 0


@pytest.mark.asyncio
async def test_conditional_increment_respects_capacity(session):
    repo = SqlHandlerRepository(session)
    h = await _handler(session, max_cases=1)

    assert await repo.increment_case_count(h.id, T0, enforce_capacity=True) is True
    assert await repo.increment_case_count(h.id, T0, enforce_capacity=True) is False
    assert (await repo.get_by_id(h.id)).current_case_count == 1

    assert await repo.increment_case_count(h.id, T0) is True
    loaded = await repo.get_by_id(h.id)
    assert loaded.current_case_count == 2
    assert loaded.last_assigned_at == T0


@pytest.mark.asyncio
async def test_decrement_clamps_at_zero_and_counts_completions(session):
    repo = SqlHandlerRepository(session)
    h = await _handler(session)

    await repo.increment_case_count(h.id, T0)
    await repo.decrement_case_count(h.id, completed=True)
    await repo.decrement_case_count(h.id)

    loaded = await repo.get_by_id(h.id)
    assert loaded.current_case_count == 0
    assert loaded.total_cases_handled == 1


@pytest.mark.asyncio
async def test_profile_update_leaves_counters_alone(session):
    repo = SqlHandlerRepository(session)
    h = await _handler(session)
    await repo.increment_case_count(h.id, T0)

    h.is_available = False
    h.current_case_count = 99
    await repo.update(h)

    loaded = await repo.get_by_id(h.id)
    assert loaded.is_available is False
    assert loaded.current_case_count == 1


@pytest.mark.asyncio
async def test_get_active_skips_inactive(session):
    await _handler(session, name="a")
    await _handler(session, name="b", is_active=False)
    assert [h.name for h in await SqlHandlerRepository(session).get_active()] == ["a"]


# ─── Rules ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rules_ordered_and_amount_range_mapped(session):
    repo = SqlRuleRepository(session)
    for name, prio, active in [("a", 5, True), ("b", 10, True), ("c", 5, True), ("d", 99, False)]:
        await repo.save(
            AssignmentRule(
                id=None, name=name, priority=prio, strategy=AssignmentStrategy.RANDOM,
                is_active=active, amount_range=AmountRange(0, 500) if name == "a" else None,
            )
        )

    active = await repo.get_active()

    assert [r.name for r in active] == ["b", "a", "c"]
    assert active[1].amount_range == AmountRange(0, 500)
    assert active[0].amount_range is None


@pytest.mark.asyncio
async def test_rule_assignment_count(session):
    repo = SqlRuleRepository(session)
    rule = await repo.save(
        AssignmentRule(id=None, name="x", priority=1, strategy=AssignmentStrategy.LEAST_LOADED)
    )
    await repo.increment_assignment_count(rule.id)
    await repo.increment_assignment_count(rule.id)
    assert (await repo.get_by_id(rule.id)).assignment_count == 2


# ─── Assignments ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_second_active_row_for_case_is_a_conflict(session):
    repo = SqlAssignmentRepository(session)
    tx = SqlTransactionManager(session)
    h = await _handler(session)
    case_id = await _case(session)
    first = await repo.add(_assignment(case_id, h.id))

    with pytest.raises(AssignmentConflict):
        async with tx.atomic():
            await repo.add(_assignment(case_id, h.id))

    assert await repo.close(first.id, AssignmentStatus.REASSIGNED, T0)
    second = await repo.add(_assignment(case_id, h.id))
    assert (await repo.get_active_for_case(case_id)).id == second.id


@pytest.mark.asyncio
async def test_close_is_conditional(session):
    repo = SqlAssignmentRepository(session)
    h = await _handler(session)
    a = await repo.add(_assignment(await _case(session), h.id))

    assert await repo.close(a.id, AssignmentStatus.COMPLETED, T0, time_to_complete=12) is True
    assert await repo.close(a.id, AssignmentStatus.COMPLETED, T0, time_to_complete=99) is False

    row = (await repo.find(case_id=a.case_id))[0]
    assert row.status == AssignmentStatus.COMPLETED
    assert row.time_to_complete == 12
    assert row.completed_at == T0


@pytest.mark.asyncio
async def test_active_for_handler_oldest_first(session):
    repo = SqlAssignmentRepository(session)
    h = await _handler(session)
    other = await _handler(session, name="other")
    ids = []
    for minutes in (30, 10, 20):
        c = await _case(session)
        await repo.add(_assignment(c, h.id, at=T0 + timedelta(minutes=minutes)))
        ids.append(c)
    await repo.add(_assignment(await _case(session), other.id, at=T0 - timedelta(days=1)))

    batch = await repo.get_active_for_handler(h.id, limit=2)

    assert [a.case_id for a in batch] == [ids[1], ids[2]]


@pytest.mark.asyncio
async def test_count_active_by_handler(session):
    repo = SqlAssignmentRepository(session)
    h1 = await _handler(session)
    h2 = await _handler(session, name="b")
    for _ in range(3):
        await repo.add(_assignment(await _case(session), h1.id))
    done = await repo.add(_assignment(await _case(session), h2.id))
    await repo.close(done.id, AssignmentStatus.COMPLETED, T0)

    assert await repo.count_active_by_handler() == {h1.id: 3}


# ─── Transactions & ledger on SQL ───────────────────────────────────


@pytest.mark.asyncio
async def test_atomic_rolls_back_every_write(session):
    handlers = SqlHandlerRepository(session)
    tx = SqlTransactionManager(session)
    h = await _handler(session)

    with pytest.raises(RuntimeError):
        async with tx.atomic():
            await handlers.increment_case_count(h.id, T0)
            raise RuntimeError("boom")

    assert (await handlers.get_by_id(h.id)).current_case_count == 0


def _ledger(session) -> AssignmentLedger:
    return AssignmentLedger(
        SqlHandlerRepository(session),
        SqlAssignmentRepository(session),
        SqlCaseRepository(session),
        SqlTransactionManager(session),
        clock=lambda: T0,
    )


@pytest.mark.asyncio
async def test_ledger_reassign_on_sql(session):
    ledger = _ledger(session)
    a = await _handler(session, name="A")
    b = await _handler(session, name="B")
    case_id = await _case(session)
    await ledger.create_assignment(case_id, a.id, AssignmentMethod.AUTO)

    await ledger.reassign_case(case_id, b.id, actor_id=3)
    await session.commit()

    handlers = SqlHandlerRepository(session)
    assert (await handlers.get_by_id(a.id)).current_case_count == 0
    assert (await handlers.get_by_id(b.id)).current_case_count == 1
    rows = await SqlAssignmentRepository(session).find(case_id=case_id)
    assert [r.status for r in rows] == [AssignmentStatus.REASSIGNED, AssignmentStatus.ACTIVE]
    active_rows = await session.scalar(
        select(func.count(CaseAssignmentModel.id)).where(
            CaseAssignmentModel.case_id == case_id, CaseAssignmentModel.status == "ACTIVE"
        )
    )
    assert active_rows == 1
    assert (await session.get(CaseModel, case_id, populate_existing=True)).assigned_to == b.id


@pytest.mark.asyncio
async def test_ledger_capacity_failure_leaves_no_trace(session):
    ledger = _ledger(session)
    full = await _handler(session, max_cases=1)
    await ledger.create_assignment(await _case(session), full.id, AssignmentMethod.AUTO)
    case_id = await _case(session)

    with pytest.raises(HandlerAtCapacity):
        await ledger.create_assignment(
            case_id, full.id, AssignmentMethod.AUTO, enforce_capacity=True
        )

    assert await SqlAssignmentRepository(session).get_active_for_case(case_id) is None
    assert (await SqlHandlerRepository(session).get_by_id(full.id)).current_case_count == 1
