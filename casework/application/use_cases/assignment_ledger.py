"""AssignmentLedger — the only writer of assignment rows and handler load counters.

Every operation runs inside one TransactionManager.atomic() block, so the
assignment rows, the case pointer and the handler counters it touches
change together or not at all.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from casework.application.ports.assignment_repo import AssignmentRepository
from casework.application.ports.case_repo import CaseRepository
from casework.application.ports.handler_repo import HandlerRepository
from casework.application.ports.transaction import TransactionManager
from casework.domain.entities.assignment import Assignment
from casework.domain.exceptions import (
    AssignmentConflict,
    CaseNotFound,
    HandlerAtCapacity,
    HandlerNotFound,
)
from casework.domain.value_objects.enums import AssignmentMethod, AssignmentStatus

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end. Naive datetimes are taken as UTC."""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return max(0, int((end - start).total_seconds() // 60))


class AssignmentLedger:
    def __init__(
        self,
        handler_repo: HandlerRepository,
        assignment_repo: AssignmentRepository,
        case_repo: CaseRepository,
        transactions: TransactionManager,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._handlers = handler_repo
        self._assignments = assignment_repo
        self._cases = case_repo
        self._tx = transactions
        self._clock = clock

    async def active_assignment(self, case_id: int) -> Assignment | None:
        return await self._assignments.get_active_for_case(case_id)

    async def create_assignment(
        self,
        case_id: int,
        handler_id: int,
        method: AssignmentMethod,
        rule_id: int | None = None,
        assigned_by: int | None = None,
        reason: str | None = None,
        enforce_capacity: bool = False,
        expected_assignment_id: int | None = None,
    ) -> Assignment:
        """Bind a case to a handler.

        If the case already has an ACTIVE assignment it is closed as
        REASSIGNED (and its handler decremented) in the same unit of work.

        Args:
            enforce_capacity: reserve the slot with a conditional increment;
                raises HandlerAtCapacity if the handler filled up meanwhile.
            expected_assignment_id: optimistic check — the case's current
                ACTIVE assignment must be this one, otherwise AssignmentConflict.

        Raises:
            HandlerNotFound, CaseNotFound, AssignmentConflict, HandlerAtCapacity.
        """
        async with self._tx.atomic():
            if await self._handlers.get_by_id(handler_id) is None:
                raise HandlerNotFound(handler_id)
            if await self._cases.get_by_id(case_id) is None:
                raise CaseNotFound(case_id)

            now = self._clock()
            current = await self._assignments.get_active_for_case(case_id)

            if expected_assignment_id is not None and (
                current is None or current.id != expected_assignment_id
            ):
                raise AssignmentConflict(
                    f"Case {case_id} is no longer held by assignment {expected_assignment_id}"
                )

            if current is not None and current.assigned_to == handler_id:
                logger.info("Case %d already assigned to handler %d", case_id, handler_id)
                return current

            if current is not None:
                await self._close(current, AssignmentStatus.REASSIGNED, now)
                await self._handlers.decrement_case_count(current.assigned_to)

            reserved = await self._handlers.increment_case_count(
                handler_id, now, enforce_capacity=enforce_capacity
            )
            if not reserved:
                raise HandlerAtCapacity(handler_id)

            assignment = await self._assignments.add(
                Assignment(
                    id=None,
                    case_id=case_id,
                    assigned_to=handler_id,
                    assignment_method=method,
                    assigned_at=now,
                    assignment_rule_id=rule_id,
                    assigned_by=assigned_by,
                    assignment_reason=reason,
                )
            )
            await self._cases.set_assigned_to(case_id, handler_id)

        logger.info(
            "Case %d → handler %d (%s%s)%s",
            case_id, handler_id, method.value,
            f", rule {rule_id}" if rule_id is not None else "",
            f" from handler {current.assigned_to}" if current is not None else "",
        )
        return assignment

    async def manual_assign(self, case_id: int, handler_id: int, actor_id: int | None) -> Assignment:
        return await self.create_assignment(
            case_id, handler_id, AssignmentMethod.MANUAL,
            assigned_by=actor_id, reason="Manual assignment",
        )

    async def reassign_case(
        self,
        case_id: int,
        new_handler_id: int,
        actor_id: int | None,
        reason: str | None = None,
        enforce_capacity: bool = False,
        expected_assignment_id: int | None = None,
    ) -> Assignment:
        """Move a case to another handler; a plain assignment if it has none yet."""
        return await self.create_assignment(
            case_id,
            new_handler_id,
            AssignmentMethod.MANUAL,
            assigned_by=actor_id,
            reason=reason or "Reassigned",
            enforce_capacity=enforce_capacity,
            expected_assignment_id=expected_assignment_id,
        )

    async def complete_assignment(self, case_id: int) -> Assignment | None:
        """Close the case's ACTIVE assignment as COMPLETED.

        Idempotent: with no ACTIVE assignment this is a no-op returning None.
        """
        async with self._tx.atomic():
            current = await self._assignments.get_active_for_case(case_id)
            if current is None:
                logger.debug("Case %d has no active assignment to complete", case_id)
                return None

            now = self._clock()
            minutes = minutes_between(current.assigned_at, now)
            closed = await self._assignments.close(
                current.id, AssignmentStatus.COMPLETED, now, time_to_complete=minutes
            )
            if not closed:
                # Another caller closed it between our read and write
                logger.info("Case %d assignment %d already closed", case_id, current.id)
                return None
            await self._handlers.decrement_case_count(current.assigned_to, completed=True)

        current.status = AssignmentStatus.COMPLETED
        current.completed_at = now
        current.time_to_complete = minutes
        logger.info(
            "Case %d completed by handler %d in %d min", case_id, current.assigned_to, minutes
        )
        return current

    async def _close(self, assignment: Assignment, status: AssignmentStatus, at: datetime) -> None:
        closed = await self._assignments.close(assignment.id, status, at)
        if not closed:
            raise AssignmentConflict(
                f"Assignment {assignment.id} for case {assignment.case_id} was changed concurrently"
            )
        assignment.status = status
