"""Tests for TeamDirectory — profiles, workload view, counter audit."""

from __future__ import annotations

import pytest

from casework.application.use_cases.team_directory import TeamDirectory
from casework.domain.entities.handler import Handler
from casework.domain.exceptions import HandlerNotFound, InvalidHandlerDefinition


@pytest.fixture
def directory(handler_repo, assignment_repo):
    return TeamDirectory(handler_repo, assignment_repo)


@pytest.mark.asyncio
async def test_register_resets_counters(directory, store):
    h = await directory.register_handler(
        Handler(id=None, name="Dana", role="agent", max_concurrent_cases=8, current_case_count=4)
    )
    assert h.id == 1
    assert store.handlers[1].current_case_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "  ", "max_concurrent_cases": 5},
        {"name": "Dana", "max_concurrent_cases": 0},
        {"name": "Dana", "max_concurrent_cases": 5, "success_rate": 101},
    ],
)
async def test_register_rejects_invalid_profiles(directory, kwargs):
    with pytest.raises(InvalidHandlerDefinition):
        await directory.register_handler(Handler(id=None, role="agent", **kwargs))


@pytest.mark.asyncio
async def test_update_profile_fields(directory, store, add_handler):
    add_handler(1)
    h = await directory.update_handler(
        1, is_available=False, carrier_specialties=["UPS", "DHL"], max_concurrent_cases=12
    )
    assert h.carrier_specialties == {"UPS", "DHL"}
    assert store.handlers[1].is_available is False
    assert store.handlers[1].max_concurrent_cases == 12


@pytest.mark.asyncio
async def test_update_refuses_counter_fields(directory, add_handler):
    add_handler(1)
    with pytest.raises(InvalidHandlerDefinition):
        await directory.update_handler(1, current_case_count=0)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field",
    ["name", "role", "max_concurrent_cases", "is_active", "is_available", "carrier_specialties", "success_rate"],
)
async def test_update_refuses_null_fields(directory, store, add_handler, field):
    add_handler(1)
    with pytest.raises(InvalidHandlerDefinition, match=field):
        await directory.update_handler(1, **{field: None})
    assert store.handlers[1].max_concurrent_cases == 10
    assert store.handlers[1].name == "Handler 1"


@pytest.mark.asyncio
async def test_update_unknown_handler(directory):
    with pytest.raises(HandlerNotFound):
        await directory.update_handler(5, name="x")


@pytest.mark.asyncio
async def test_list_filters(directory, add_handler):
    add_handler(1, role="senior", carrier_specialties={"FEDEX"})
    add_handler(2, role="agent", is_available=False)
    add_handler(3, role="agent", issue_type_specialties={"LOST"})

    assert [h.id for h in await directory.list_handlers(role="agent")] == [2, 3]
    assert [h.id for h in await directory.list_handlers(available=True)] == [1, 3]
    assert [h.id for h in await directory.list_handlers(specialty="FEDEX")] == [1]
    assert [h.id for h in await directory.list_handlers(specialty="LOST")] == [3]


@pytest.mark.asyncio
async def test_team_workload(directory, add_handler, give_cases):
    add_handler(1)
    add_handler(2, max_cases=4)
    add_handler(3, is_active=False)
    give_cases(1, 3, first_case_id=100)
    give_cases(2, 4, first_case_id=200)

    workload = await directory.get_team_workload()

    assert {h.id: h.utilization_rate() for h in workload.handlers} == {1: 30, 2: 100}
    assert workload.stats.total_members == 2
    assert workload.stats.total_caseload == 7
    assert workload.stats.at_capacity == 1


@pytest.mark.asyncio
async def test_audit_reports_and_repairs_drift(directory, store, add_handler, give_cases):
    add_handler(1)
    add_handler(2)
    give_cases(1, 3, first_case_id=100)
    store.handlers[1].current_case_count = 5
    store.handlers[2].current_case_count = 1

    drifts = await directory.audit_counters()
    assert {(d.handler_id, d.recorded, d.actual) for d in drifts} == {(1, 5, 3), (2, 1, 0)}
    assert store.handlers[1].current_case_count == 5

    await directory.audit_counters(repair=True)
    store.assert_consistent()
    assert await directory.audit_counters() == []
