"""Assignment rule administration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from casework.adapters.persistence.database import get_session
from casework.application.use_cases.manage_rules import RuleAdministration
from casework.domain.entities.assignment_rule import AmountRange, AssignmentRule
from casework.domain.value_objects.enums import AssignmentStrategy
from casework.infrastructure.api.dependencies import get_rule_admin

router = APIRouter(prefix="/rules", tags=["rules"])


class AmountRangeBody(BaseModel):
    min: int
    max: int


class RuleCreate(BaseModel):
    name: str
    priority: int = 0
    strategy: AssignmentStrategy
    is_active: bool = True
    carrier: str | None = None
    issue_type: str | None = None
    priority_level: str | None = None
    amount_range: AmountRangeBody | None = None
    assign_to_role: str | None = None
    assign_to_handler_id: int | None = None


class RuleUpdate(BaseModel):
    name: str | None = None
    priority: int | None = None
    strategy: AssignmentStrategy | None = None
    is_active: bool | None = None
    carrier: str | None = None
    issue_type: str | None = None
    priority_level: str | None = None
    amount_range: AmountRangeBody | None = None
    assign_to_role: str | None = None
    assign_to_handler_id: int | None = None


def rule_to_dict(r: AssignmentRule) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "priority": r.priority,
        "strategy": r.strategy.value,
        "is_active": r.is_active,
        "carrier": r.carrier,
        "issue_type": r.issue_type,
        "priority_level": r.priority_level,
        "amount_range": (
            {"min": r.amount_range.min, "max": r.amount_range.max} if r.amount_range else None
        ),
        "assign_to_role": r.assign_to_role,
        "assign_to_handler_id": r.assign_to_handler_id,
        "assignment_count": r.assignment_count,
    }


@router.get("")
async def list_rules(
    active_only: bool = False,
    admin: RuleAdministration = Depends(get_rule_admin),
):
    rules = await admin.list_rules(active_only=active_only)
    return {"total": len(rules), "rules": [rule_to_dict(r) for r in rules]}


@router.post("", status_code=201)
async def create_rule(
    body: RuleCreate,
    admin: RuleAdministration = Depends(get_rule_admin),
    session: AsyncSession = Depends(get_session),
):
    fields = body.model_dump(exclude={"amount_range"})
    amount_range = (
        AmountRange(min=body.amount_range.min, max=body.amount_range.max)
        if body.amount_range
        else None
    )
    rule = await admin.create_rule(AssignmentRule(id=None, amount_range=amount_range, **fields))
    await session.commit()
    return rule_to_dict(rule)


@router.patch("/{rule_id}")
async def update_rule(
    rule_id: int,
    body: RuleUpdate,
    admin: RuleAdministration = Depends(get_rule_admin),
    session: AsyncSession = Depends(get_session),
):
    """Partial update; send null for a criterion to clear it."""
    rule = await admin.update_rule(rule_id, **body.model_dump(exclude_unset=True))
    await session.commit()
    return rule_to_dict(rule)
