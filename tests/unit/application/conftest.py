"""In-memory fakes of the ports, shared by the use-case tests."""

from __future__ import annotations

import copy
import random
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest

from casework.application.ports.assignment_repo import AssignmentRepository
from casework.application.ports.case_repo import CaseRepository
from casework.application.ports.handler_repo import HandlerRepository
from casework.application.ports.rule_repo import RuleRepository
from casework.application.ports.transaction import TransactionManager
from casework.application.use_cases.assignment_ledger import AssignmentLedger
from casework.application.use_cases.auto_assign import AutoAssignCaseUseCase
from casework.application.use_cases.balance_workload import BalanceWorkloadUseCase
from casework.application.use_cases.strategy_assigner import StrategyAssigner
from casework.domain.entities.assignment import Assignment
from casework.domain.entities.case import CaseAttributes
from casework.domain.entities.handler import Handler
from casework.domain.exceptions import AssignmentConflict
from casework.domain.policies.strategies import default_registry
from casework.domain.value_objects.enums import AssignmentMethod, AssignmentStatus

# ─── In-memory store ────────────────────────────────────────────────


class Store:
    def __init__(self):
        self.handlers: dict[int, Handler] = {}
        self.rules: dict = {}
        self.assignments: dict[int, Assignment] = {}
        self.cases: dict[int, CaseAttributes] = {}
        self.case_pointer: dict[int, int | None] = {}

    def snapshot(self) -> dict:
        return copy.deepcopy(self.__dict__)

    def restore(self, snapshot: dict) -> None:
        self.__dict__.update(snapshot)

    def active_rows(self, case_id: int | None = None) -> list[Assignment]:
        return [
            a for a in self.assignments.values()
            if a.status == AssignmentStatus.ACTIVE and (case_id is None or a.case_id == case_id)
        ]

    def assert_consistent(self) -> None:
        """Counters match ACTIVE rows; at most one ACTIVE row per case."""
        per_handler = Counter(a.assigned_to for a in self.active_rows())
        for h in self.handlers.values():
            assert h.current_case_count == per_handler.get(h.id, 0), f"handler {h.id} drifted"
        per_case = Counter(a.case_id for a in self.active_rows())
        assert all(n == 1 for n in per_case.values())


# ─── Fakes ──────────────────────────────────────────────────────────


class FakeHandlerRepo(HandlerRepository):
    def __init__(self, store: Store):
        self._st = store

    async def save(self, handler):
        handler.id = max(self._st.handlers, default=0) + 1
        self._st.handlers[handler.id] = copy.deepcopy(handler)
        return handler

    async def update(self, handler):
        stored = self._st.handlers[handler.id]
        for name in (
            "name", "role", "max_concurrent_cases", "is_active", "is_available",
            "carrier_specialties", "issue_type_specialties", "success_rate",
        ):
            setattr(stored, name, copy.deepcopy(getattr(handler, name)))
        return handler

    async def get_by_id(self, handler_id):
        h = self._st.handlers.get(handler_id)
        return copy.deepcopy(h) if h else None

    async def get_all(self):
        return [copy.deepcopy(h) for _, h in sorted(self._st.handlers.items())]

    async def get_active(self):
        return [h for h in await self.get_all() if h.is_active]

    async def increment_case_count(self, handler_id, assigned_at, enforce_capacity=False):
        h = self._st.handlers.get(handler_id)
        if h is None or (enforce_capacity and not h.has_capacity()):
            return False
        h.current_case_count += 1
        h.last_assigned_at = assigned_at
        return True

    async def decrement_case_count(self, handler_id, completed=False):
        h = self._st.handlers[handler_id]
        h.current_case_count = max(0, h.current_case_count - 1)
        if completed:
            h.total_cases_handled += 1

    async def set_case_count(self, handler_id, count):
        self._st.handlers[handler_id].current_case_count = count


class FakeRuleRepo(RuleRepository):
    def __init__(self, store: Store):
        self._st = store

    async def save(self, rule):
        rule.id = max(self._st.rules, default=0) + 1
        self._st.rules[rule.id] = copy.deepcopy(rule)
        return rule

    async def update(self, rule):
        count = self._st.rules[rule.id].assignment_count
        self._st.rules[rule.id] = copy.deepcopy(rule)
        self._st.rules[rule.id].assignment_count = count
        return rule

    async def get_by_id(self, rule_id):
        r = self._st.rules.get(rule_id)
        return copy.deepcopy(r) if r else None

    async def get_all(self):
        rules = sorted(self._st.rules.values(), key=lambda r: (-r.priority, r.id))
        return [copy.deepcopy(r) for r in rules]

    async def get_active(self):
        return [r for r in await self.get_all() if r.is_active]

    async def increment_assignment_count(self, rule_id):
        self._st.rules[rule_id].assignment_count += 1


class FakeAssignmentRepo(AssignmentRepository):
    def __init__(self, store: Store):
        self._st = store

    async def add(self, assignment):
        if self._st.active_rows(assignment.case_id):
            raise AssignmentConflict(f"Case {assignment.case_id} already has an active assignment")
        assignment.id = max(self._st.assignments, default=0) + 1
        self._st.assignments[assignment.id] = copy.deepcopy(assignment)
        return assignment

    async def get_active_for_case(self, case_id):
        rows = self._st.active_rows(case_id)
        return copy.deepcopy(rows[0]) if rows else None

    async def close(self, assignment_id, status, closed_at, time_to_complete=None):
        a = self._st.assignments.get(assignment_id)
        if a is None or a.status != AssignmentStatus.ACTIVE:
            return False
        a.status = status
        if status == AssignmentStatus.COMPLETED:
            a.completed_at = closed_at
            a.time_to_complete = time_to_complete
        return True

    async def get_active_for_handler(self, handler_id, limit):
        rows = [a for a in self._st.active_rows() if a.assigned_to == handler_id]
        rows.sort(key=lambda a: (a.assigned_at, a.id))
        return [copy.deepcopy(a) for a in rows[:limit]]

    async def find(self, case_id=None, handler_id=None, status=None):
        rows = [
            a for a in self._st.assignments.values()
            if (case_id is None or a.case_id == case_id)
            and (handler_id is None or a.assigned_to == handler_id)
            and (status is None or a.status == status)
        ]
        rows.sort(key=lambda a: (a.assigned_at, a.id))
        return [copy.deepcopy(a) for a in rows]

    async def count_active_by_handler(self):
        return dict(Counter(a.assigned_to for a in self._st.active_rows()))


class FakeCaseRepo(CaseRepository):
    def __init__(self, store: Store):
        self._st = store

    async def get_by_id(self, case_id):
        return self._st.cases.get(case_id)

    async def set_assigned_to(self, case_id, handler_id):
        self._st.case_pointer[case_id] = handler_id


class FakeTransactionManager(TransactionManager):
    """Snapshot on entry, restore on error: a failed unit leaves no trace."""

    def __init__(self, store: Store):
        self._st = store
        self.rollbacks = 0

    @asynccontextmanager
    async def atomic(self):
        snapshot = self._st.snapshot()
        try:
            yield
        except Exception:
            self._st.restore(snapshot)
            self.rollbacks += 1
            raise


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ─── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def store():
    return Store()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def handler_repo(store):
    return FakeHandlerRepo(store)


@pytest.fixture
def rule_repo(store):
    return FakeRuleRepo(store)


@pytest.fixture
def assignment_repo(store):
    return FakeAssignmentRepo(store)


@pytest.fixture
def case_repo(store):
    return FakeCaseRepo(store)


@pytest.fixture
def transactions(store):
    return FakeTransactionManager(store)


@pytest.fixture
def ledger(handler_repo, assignment_repo, case_repo, transactions, clock):
    return AssignmentLedger(handler_repo, assignment_repo, case_repo, transactions, clock=clock)


@pytest.fixture
def assigner(handler_repo):
    return StrategyAssigner(handler_repo, default_registry(random.Random(1234)))


@pytest.fixture
def auto_assign(case_repo, rule_repo, assigner, ledger):
    return AutoAssignCaseUseCase(case_repo, rule_repo, assigner, ledger)


@pytest.fixture
def balancer(handler_repo, assignment_repo, ledger):
    return BalanceWorkloadUseCase(handler_repo, assignment_repo, ledger, system_actor_id=1)


@pytest.fixture
def add_handler(store):
    def _add(hid: int, max_cases: int = 10, **kwargs) -> Handler:
        kwargs.setdefault("name", f"Handler {hid}")
        kwargs.setdefault("role", "agent")
        h = Handler(id=hid, max_concurrent_cases=max_cases, **kwargs)
        store.handlers[hid] = h
        return h

    return _add


@pytest.fixture
def add_case(store):
    def _add(cid: int, carrier="FEDEX", issue_type="DAMAGED", priority="HIGH", amount=10_000):
        case = CaseAttributes(
            id=cid, carrier=carrier, issue_type=issue_type,
            priority=priority, claimed_amount=amount,
        )
        store.cases[cid] = case
        return case

    return _add


@pytest.fixture
def give_cases(store, add_case, clock):
    """Seed ACTIVE assignments (and matching counters) for a handler."""

    def _give(handler_id: int, n: int, first_case_id: int) -> list[int]:
        ids = []
        for offset in range(n):
            cid = first_case_id + offset
            add_case(cid)
            aid = max(store.assignments, default=0) + 1
            store.assignments[aid] = Assignment(
                id=aid, case_id=cid, assigned_to=handler_id,
                assignment_method=AssignmentMethod.AUTO,
                assigned_at=clock.now - timedelta(minutes=n - offset),
            )
            store.case_pointer[cid] = handler_id
            store.handlers[handler_id].current_case_count += 1
            ids.append(cid)
        return ids

    return _give
