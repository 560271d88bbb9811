"""AutoAssignCaseUseCase — rules → strategy → ledger for an incoming case."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from casework.application.ports.case_repo import CaseRepository
from casework.application.ports.rule_repo import RuleRepository
from casework.application.use_cases.assignment_ledger import AssignmentLedger
from casework.application.use_cases.strategy_assigner import StrategyAssigner
from casework.domain.entities.assignment_rule import AssignmentRule
from casework.domain.entities.case import CaseAttributes
from casework.domain.exceptions import CaseNotFound, HandlerAtCapacity
from casework.domain.policies.rule_matching import matching_rules
from casework.domain.policies.strategies import Selection
from casework.domain.value_objects.enums import AssignmentMethod, AssignmentStrategy

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY = AssignmentStrategy.LEAST_LOADED


@dataclass
class AutoAssignResult:
    """Outcome of one auto-assignment attempt."""

    case_id: int
    handler_id: int | None
    method: AssignmentMethod | None = None
    rule_id: int | None = None
    reason: str | None = None

    @property
    def needs_manual_assignment(self) -> bool:
        return self.handler_id is None


@dataclass(frozen=True)
class _Plan:
    selection: Selection
    rule: AssignmentRule | None


class AutoAssignCaseUseCase:
    """Orchestrates automatic assignment of a single case.

    Matching rules are tried in evaluation order; the first one whose
    filtered pool yields a handler fires. Otherwise the default
    LEAST_LOADED strategy runs over the whole team.
    """

    def __init__(
        self,
        case_repo: CaseRepository,
        rule_repo: RuleRepository,
        assigner: StrategyAssigner,
        ledger: AssignmentLedger,
        max_attempts: int = 3,
    ):
        self._cases = case_repo
        self._rules = rule_repo
        self._assigner = assigner
        self._ledger = ledger
        self._max_attempts = max_attempts

    async def execute(self, case_id: int) -> AutoAssignResult:
        case = await self._cases.get_by_id(case_id)
        if case is None:
            raise CaseNotFound(case_id)

        existing = await self._ledger.active_assignment(case_id)
        if existing is not None:
            logger.info("Case %d already assigned to handler %d", case_id, existing.assigned_to)
            return AutoAssignResult(
                case_id=case_id,
                handler_id=existing.assigned_to,
                method=existing.assignment_method,
                rule_id=existing.assignment_rule_id,
                reason=existing.assignment_reason,
            )

        rules = await self._rules.get_active()
        excluded: set[int] = set()

        for _ in range(self._max_attempts):
            plan = await self._plan(case, rules, excluded)
            if plan is None:
                break

            handler = plan.selection.handler
            method = AssignmentMethod.RULE_BASED if plan.rule else AssignmentMethod.AUTO
            rule_id = plan.rule.id if plan.rule else None
            reason = self._describe(plan)

            try:
                assignment = await self._ledger.create_assignment(
                    case_id, handler.id, method,
                    rule_id=rule_id, reason=reason, enforce_capacity=True,
                )
            except HandlerAtCapacity:
                logger.warning(
                    "Case %d: handler %d filled up during selection, retrying", case_id, handler.id
                )
                excluded.add(handler.id)
                continue

            if plan.rule is not None:
                await self._rules.increment_assignment_count(plan.rule.id)

            return AutoAssignResult(
                case_id=case_id,
                handler_id=assignment.assigned_to,
                method=assignment.assignment_method,
                rule_id=assignment.assignment_rule_id,
                reason=assignment.assignment_reason,
            )

        logger.warning("Case %d needs manual assignment: no eligible handler", case_id)
        return AutoAssignResult(case_id=case_id, handler_id=None)

    async def _plan(
        self, case: CaseAttributes, rules: list[AssignmentRule], excluded: set[int]
    ) -> _Plan | None:
        for rule in matching_rules(rules, case):
            selection = await self._assigner.assign(
                rule.strategy, case,
                role=rule.assign_to_role,
                handler_id=rule.assign_to_handler_id,
                exclude=excluded,
            )
            if selection is not None:
                return _Plan(selection=selection, rule=rule)
            logger.info("Case %d: rule '%s' matched but its pool is empty", case.id, rule.name)

        selection = await self._assigner.assign(DEFAULT_STRATEGY, case, exclude=excluded)
        if selection is None:
            return None
        return _Plan(selection=selection, rule=None)

    @staticmethod
    def _describe(plan: _Plan) -> str:
        if plan.rule is None:
            return f"Default {DEFAULT_STRATEGY.value}: {plan.selection.reason}"
        return f"Rule '{plan.rule.name}' ({plan.rule.strategy.value}): {plan.selection.reason}"
