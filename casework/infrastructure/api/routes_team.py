"""Team endpoints — handler directory, workload view, balancing, counter audit."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from casework.adapters.persistence.database import get_session
from casework.application.use_cases.balance_workload import BalanceWorkloadUseCase
from casework.application.use_cases.team_directory import TeamDirectory
from casework.domain.entities.handler import Handler
from casework.infrastructure.api.dependencies import get_balance_uc, get_team_directory

router = APIRouter(prefix="/team", tags=["team"])


class HandlerCreate(BaseModel):
    name: str
    role: str
    max_concurrent_cases: int = Field(gt=0)
    is_active: bool = True
    is_available: bool = True
    carrier_specialties: list[str] = []
    issue_type_specialties: list[str] = []
    success_rate: float = Field(default=0.0, ge=0, le=100)


class HandlerUpdate(BaseModel):
    name: str | None = None
    role: str | None = None
    max_concurrent_cases: int | None = Field(default=None, gt=0)
    is_active: bool | None = None
    is_available: bool | None = None
    carrier_specialties: list[str] | None = None
    issue_type_specialties: list[str] | None = None
    success_rate: float | None = Field(default=None, ge=0, le=100)


def handler_to_dict(h: Handler) -> dict:
    return {
        "id": h.id,
        "name": h.name,
        "role": h.role,
        "is_active": h.is_active,
        "is_available": h.is_available,
        "max_concurrent_cases": h.max_concurrent_cases,
        "current_case_count": h.current_case_count,
        "utilization_rate": h.utilization_rate(),
        "carrier_specialties": sorted(h.carrier_specialties),
        "issue_type_specialties": sorted(h.issue_type_specialties),
        "success_rate": h.success_rate,
        "total_cases_handled": h.total_cases_handled,
        "last_assigned_at": h.last_assigned_at.isoformat() if h.last_assigned_at else None,
    }


@router.get("/handlers")
async def list_handlers(
    role: str | None = None,
    available: bool | None = None,
    specialty: str | None = None,
    directory: TeamDirectory = Depends(get_team_directory),
):
    handlers = await directory.list_handlers(role=role, available=available, specialty=specialty)
    return {"total": len(handlers), "handlers": [handler_to_dict(h) for h in handlers]}


@router.post("/handlers", status_code=201)
async def register_handler(
    body: HandlerCreate,
    directory: TeamDirectory = Depends(get_team_directory),
    session: AsyncSession = Depends(get_session),
):
    handler = await directory.register_handler(
        Handler(
            id=None,
            name=body.name,
            role=body.role,
            max_concurrent_cases=body.max_concurrent_cases,
            is_active=body.is_active,
            is_available=body.is_available,
            carrier_specialties=set(body.carrier_specialties),
            issue_type_specialties=set(body.issue_type_specialties),
            success_rate=body.success_rate,
        )
    )
    await session.commit()
    return handler_to_dict(handler)


@router.patch("/handlers/{handler_id}")
async def update_handler(
    handler_id: int,
    body: HandlerUpdate,
    directory: TeamDirectory = Depends(get_team_directory),
    session: AsyncSession = Depends(get_session),
):
    handler = await directory.update_handler(handler_id, **body.model_dump(exclude_unset=True))
    await session.commit()
    return handler_to_dict(handler)


@router.get("/workload")
async def team_workload(directory: TeamDirectory = Depends(get_team_directory)):
    """Per-handler utilization plus team totals."""
    workload = await directory.get_team_workload()
    stats = workload.stats
    return {
        "handlers": [handler_to_dict(h) for h in workload.handlers],
        "stats": {
            "total_members": stats.total_members,
            "available": stats.available,
            "total_caseload": stats.total_caseload,
            "avg_caseload": stats.avg_caseload,
            "at_capacity": stats.at_capacity,
        },
    }


@router.post("/balance")
async def balance_workload(
    uc: BalanceWorkloadUseCase = Depends(get_balance_uc),
    session: AsyncSession = Depends(get_session),
):
    """Run one rebalancing pass now."""
    result = await uc.execute()
    await session.commit()
    return {
        "rebalanced_count": result.rebalanced_count,
        "skipped_count": result.skipped_count,
        "moves": [
            {
                "case_id": m.case_id,
                "from_handler_id": m.from_handler_id,
                "to_handler_id": m.to_handler_id,
            }
            for m in result.moves
        ],
    }


@router.get("/counters/audit")
async def audit_counters(
    repair: bool = False,
    directory: TeamDirectory = Depends(get_team_directory),
    session: AsyncSession = Depends(get_session),
):
    """Compare handler load counters with their ACTIVE assignment rows."""
    drifts = await directory.audit_counters(repair=repair)
    if repair:
        await session.commit()
    return {
        "repaired": repair,
        "drift": [
            {"handler_id": d.handler_id, "recorded": d.recorded, "actual": d.actual}
            for d in drifts
        ],
    }
