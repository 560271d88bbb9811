"""BalanceWorkloadUseCase — one bounded pass moving cases off overloaded handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from casework.application.ports.assignment_repo import AssignmentRepository
from casework.application.ports.handler_repo import HandlerRepository
from casework.application.use_cases.assignment_ledger import AssignmentLedger
from casework.domain.entities.assignment import Assignment
from casework.domain.entities.handler import Handler
from casework.domain.exceptions import AssignmentError, HandlerAtCapacity
from casework.domain.policies.workload import (
    OVERLOAD_THRESHOLD_PCT,
    UNDERLOAD_THRESHOLD_PCT,
    partition_by_utilization,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebalanceMove:
    case_id: int
    from_handler_id: int
    to_handler_id: int


@dataclass
class BalanceResult:
    """Summary of one balancing pass."""

    rebalanced_count: int = 0
    skipped_count: int = 0
    moves: list[RebalanceMove] = field(default_factory=list)


class BalanceWorkloadUseCase:
    """Greedy single pass, meant to run on a schedule rather than converge.

    For every overloaded handler (most utilized first) up to ``batch_size``
    of its oldest ACTIVE assignments are moved to the least-utilized
    underloaded handler. The in-memory loads are updated after each
    persisted move; a target leaves the underloaded list once it reaches
    the underload threshold. A failed move is logged and skipped.
    """

    def __init__(
        self,
        handler_repo: HandlerRepository,
        assignment_repo: AssignmentRepository,
        ledger: AssignmentLedger,
        system_actor_id: int | None = None,
        batch_size: int = 5,
        overload_pct: float = OVERLOAD_THRESHOLD_PCT,
        underload_pct: float = UNDERLOAD_THRESHOLD_PCT,
    ):
        self._handlers = handler_repo
        self._assignments = assignment_repo
        self._ledger = ledger
        self._actor = system_actor_id
        self._batch_size = batch_size
        self._overload_pct = overload_pct
        self._underload_pct = underload_pct

    async def execute(self) -> BalanceResult:
        result = BalanceResult()
        handlers = await self._handlers.get_active()
        bands = partition_by_utilization(handlers, self._overload_pct, self._underload_pct)

        if not bands.overloaded or not bands.underloaded:
            logger.info(
                "Workload balanced: %d overloaded, %d underloaded — nothing to move",
                len(bands.overloaded), len(bands.underloaded),
            )
            return result

        underloaded = list(bands.underloaded)

        for source in bands.overloaded:
            if not underloaded:
                continue

            batch = await self._assignments.get_active_for_handler(source.id, self._batch_size)
            for assignment in batch:
                if not underloaded:
                    break

                target = await self._move(assignment, source, underloaded)
                if target is None:
                    result.skipped_count += 1
                    continue

                result.rebalanced_count += 1
                result.moves.append(
                    RebalanceMove(
                        case_id=assignment.case_id,
                        from_handler_id=source.id,
                        to_handler_id=target.id,
                    )
                )
                source.current_case_count = max(0, source.current_case_count - 1)
                target.current_case_count += 1

                if target.utilization() >= self._underload_pct:
                    underloaded.pop(0)
                else:
                    underloaded.sort(key=lambda h: h.utilization())

        logger.info(
            "Rebalance pass: moved %d case(s), skipped %d",
            result.rebalanced_count, result.skipped_count,
        )
        return result

    async def _move(
        self, assignment: Assignment, source: Handler, underloaded: list[Handler]
    ) -> Handler | None:
        """Reassign one case to the front target, moving down the list past full ones.

        Targets found full in storage are removed from ``underloaded``.
        Returns the receiving handler, or None if the case was not moved.
        """
        while underloaded:
            target = underloaded[0]
            try:
                await self._ledger.reassign_case(
                    assignment.case_id,
                    target.id,
                    self._actor,
                    reason=f"Workload rebalance from handler {source.id}",
                    enforce_capacity=True,
                    expected_assignment_id=assignment.id,
                )
            except HandlerAtCapacity:
                logger.warning(
                    "Rebalance: handler %d is full in storage, dropping it as a target",
                    target.id,
                )
                underloaded.pop(0)
                continue
            except AssignmentError as exc:
                logger.warning(
                    "Rebalance: skipping case %d (%d → %d): %s",
                    assignment.case_id, source.id, target.id, exc,
                )
                return None
            return target
        return None
