"""Assignment endpoints — auto-assign, manual assign, reassign, complete, history."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from casework.adapters.persistence.database import get_session
from casework.adapters.persistence.repositories import SqlAssignmentRepository
from casework.application.use_cases.assignment_ledger import AssignmentLedger
from casework.application.use_cases.auto_assign import AutoAssignCaseUseCase
from casework.domain.entities.assignment import Assignment
from casework.domain.value_objects.enums import AssignmentStatus
from casework.infrastructure.api.dependencies import (
    get_assignment_repo,
    get_auto_assign_uc,
    get_ledger,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


# ── Request schemas ─────────────────────────────────────────────────

class ManualAssignRequest(BaseModel):
    case_id: int
    handler_id: int
    actor_id: int | None = None


class ReassignRequest(BaseModel):
    case_id: int
    new_handler_id: int
    actor_id: int | None = None
    reason: str | None = None
    expected_assignment_id: int | None = None


def assignment_to_dict(a: Assignment) -> dict:
    return {
        "id": a.id,
        "case_id": a.case_id,
        "assigned_to": a.assigned_to,
        "assignment_method": a.assignment_method.value,
        "assignment_rule_id": a.assignment_rule_id,
        "assigned_by": a.assigned_by,
        "assignment_reason": a.assignment_reason,
        "status": a.status.value,
        "assigned_at": a.assigned_at.isoformat() if a.assigned_at else None,
        "completed_at": a.completed_at.isoformat() if a.completed_at else None,
        "time_to_complete": a.time_to_complete,
    }


@router.post("/auto/{case_id}")
async def auto_assign(
    case_id: int,
    uc: AutoAssignCaseUseCase = Depends(get_auto_assign_uc),
    session: AsyncSession = Depends(get_session),
):
    """Route a case through the rules, falling back to least-loaded."""
    result = await uc.execute(case_id)
    await session.commit()
    return {
        "case_id": result.case_id,
        "handler_id": result.handler_id,
        "method": result.method.value if result.method else None,
        "rule_id": result.rule_id,
        "reason": result.reason,
        "needs_manual_assignment": result.needs_manual_assignment,
    }


@router.post("/manual")
async def manual_assign(
    body: ManualAssignRequest,
    ledger: AssignmentLedger = Depends(get_ledger),
    session: AsyncSession = Depends(get_session),
):
    assignment = await ledger.manual_assign(body.case_id, body.handler_id, body.actor_id)
    await session.commit()
    return assignment_to_dict(assignment)


@router.post("/reassign")
async def reassign(
    body: ReassignRequest,
    ledger: AssignmentLedger = Depends(get_ledger),
    session: AsyncSession = Depends(get_session),
):
    assignment = await ledger.reassign_case(
        body.case_id,
        body.new_handler_id,
        body.actor_id,
        reason=body.reason,
        expected_assignment_id=body.expected_assignment_id,
    )
    await session.commit()
    return assignment_to_dict(assignment)


@router.post("/complete/{case_id}")
async def complete(
    case_id: int,
    ledger: AssignmentLedger = Depends(get_ledger),
    session: AsyncSession = Depends(get_session),
):
    """Close the case's active assignment. Completing twice is a no-op."""
    assignment = await ledger.complete_assignment(case_id)
    await session.commit()
    return {
        "case_id": case_id,
        "completed": assignment is not None,
        "assignment": assignment_to_dict(assignment) if assignment else None,
    }


@router.get("")
async def list_assignments(
    case_id: int | None = None,
    handler_id: int | None = None,
    status: AssignmentStatus | None = None,
    repo: SqlAssignmentRepository = Depends(get_assignment_repo),
):
    assignments = await repo.find(case_id=case_id, handler_id=handler_id, status=status)
    return {
        "total": len(assignments),
        "assignments": [assignment_to_dict(a) for a in assignments],
    }
