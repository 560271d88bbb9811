"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from casework.adapters.persistence.database import get_session
from casework.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlCaseRepository,
    SqlHandlerRepository,
    SqlRuleRepository,
    SqlTransactionManager,
)
from casework.application.use_cases.assignment_ledger import AssignmentLedger
from casework.application.use_cases.auto_assign import AutoAssignCaseUseCase
from casework.application.use_cases.balance_workload import BalanceWorkloadUseCase
from casework.application.use_cases.manage_rules import RuleAdministration
from casework.application.use_cases.strategy_assigner import StrategyAssigner
from casework.application.use_cases.team_directory import TeamDirectory
from casework.config import settings
from casework.domain.policies.strategies import default_registry

# Re-export session dependency
get_db_session = get_session

# Strategies are stateless apart from RANDOM's generator; one registry per process
_registry = default_registry()


# ─── Builders (also used by the scheduler and CLI) ──────────────────


def build_ledger(session: AsyncSession) -> AssignmentLedger:
    return AssignmentLedger(
        handler_repo=SqlHandlerRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
        case_repo=SqlCaseRepository(session),
        transactions=SqlTransactionManager(session),
    )


def build_auto_assign(session: AsyncSession) -> AutoAssignCaseUseCase:
    return AutoAssignCaseUseCase(
        case_repo=SqlCaseRepository(session),
        rule_repo=SqlRuleRepository(session),
        assigner=StrategyAssigner(SqlHandlerRepository(session), _registry),
        ledger=build_ledger(session),
        max_attempts=settings.auto_assign_max_attempts,
    )


def build_balancer(session: AsyncSession) -> BalanceWorkloadUseCase:
    return BalanceWorkloadUseCase(
        handler_repo=SqlHandlerRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
        ledger=build_ledger(session),
        system_actor_id=settings.system_actor_id,
        batch_size=settings.rebalance_batch_size,
        overload_pct=settings.overload_threshold_pct,
        underload_pct=settings.underload_threshold_pct,
    )


# ─── Request-scoped dependencies ────────────────────────────────────


def get_assignment_repo(session: AsyncSession = Depends(get_session)) -> SqlAssignmentRepository:
    return SqlAssignmentRepository(session)


def get_ledger(session: AsyncSession = Depends(get_session)) -> AssignmentLedger:
    return build_ledger(session)


def get_auto_assign_uc(session: AsyncSession = Depends(get_session)) -> AutoAssignCaseUseCase:
    return build_auto_assign(session)


def get_balance_uc(session: AsyncSession = Depends(get_session)) -> BalanceWorkloadUseCase:
    return build_balancer(session)


def get_team_directory(session: AsyncSession = Depends(get_session)) -> TeamDirectory:
    return TeamDirectory(SqlHandlerRepository(session), SqlAssignmentRepository(session))


def get_rule_admin(session: AsyncSession = Depends(get_session)) -> RuleAdministration:
    return RuleAdministration(SqlRuleRepository(session), SqlHandlerRepository(session))
