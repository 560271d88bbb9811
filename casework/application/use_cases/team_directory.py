"""TeamDirectory — handler profiles, team workload view and counter audit."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from casework.application.ports.assignment_repo import AssignmentRepository
from casework.application.ports.handler_repo import HandlerRepository
from casework.domain.entities.handler import Handler
from casework.domain.exceptions import HandlerNotFound, InvalidHandlerDefinition
from casework.domain.policies.workload import TeamStats, team_stats

logger = logging.getLogger(__name__)

# Profile fields that update_handler may change; load counters are ledger-owned
EDITABLE_FIELDS = frozenset(
    {
        "name",
        "role",
        "max_concurrent_cases",
        "is_active",
        "is_available",
        "carrier_specialties",
        "issue_type_specialties",
        "success_rate",
    }
)


@dataclass(frozen=True)
class TeamWorkload:
    handlers: list[Handler]
    stats: TeamStats


@dataclass(frozen=True)
class CounterDrift:
    handler_id: int
    recorded: int
    actual: int


def _validate(handler: Handler) -> None:
    if not handler.name or not handler.name.strip():
        raise InvalidHandlerDefinition("Handler name must not be empty")
    if handler.max_concurrent_cases <= 0:
        raise InvalidHandlerDefinition("max_concurrent_cases must be greater than 0")
    if not 0 <= handler.success_rate <= 100:
        raise InvalidHandlerDefinition("success_rate must be between 0 and 100")


class TeamDirectory:
    def __init__(self, handler_repo: HandlerRepository, assignment_repo: AssignmentRepository):
        self._handlers = handler_repo
        self._assignments = assignment_repo

    async def register_handler(self, handler: Handler) -> Handler:
        _validate(handler)
        handler.current_case_count = 0
        handler.total_cases_handled = 0
        saved = await self._handlers.save(handler)
        logger.info("Registered handler %d (%s, role=%s)", saved.id, saved.name, saved.role)
        return saved

    async def update_handler(self, handler_id: int, **changes) -> Handler:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidHandlerDefinition(f"Fields not editable: {', '.join(sorted(unknown))}")

        handler = await self._handlers.get_by_id(handler_id)
        if handler is None:
            raise HandlerNotFound(handler_id)

        cleared = sorted(name for name, value in changes.items() if value is None)
        if cleared:
            raise InvalidHandlerDefinition(f"Fields cannot be null: {', '.join(cleared)}")

        for name, value in changes.items():
            if name in ("carrier_specialties", "issue_type_specialties"):
                value = set(value)
            setattr(handler, name, value)
        _validate(handler)
        return await self._handlers.update(handler)

    async def get_handler(self, handler_id: int) -> Handler:
        handler = await self._handlers.get_by_id(handler_id)
        if handler is None:
            raise HandlerNotFound(handler_id)
        return handler

    async def list_handlers(
        self,
        role: str | None = None,
        available: bool | None = None,
        specialty: str | None = None,
    ) -> list[Handler]:
        handlers = await self._handlers.get_all()
        if role is not None:
            handlers = [h for h in handlers if h.role == role]
        if available is not None:
            handlers = [h for h in handlers if h.is_available == available]
        if specialty is not None:
            handlers = [h for h in handlers if h.specializes_in(specialty)]
        return handlers

    async def get_team_workload(self) -> TeamWorkload:
        """Every active handler with its utilization, plus team-wide stats."""
        handlers = await self._handlers.get_active()
        return TeamWorkload(
            handlers=handlers,
            stats=team_stats(handlers),
        )

    async def audit_counters(self, repair: bool = False) -> list[CounterDrift]:
        """Compare each handler's counter with its ACTIVE assignment rows.

        With repair, drifted counters are rewritten to the row count.
        """
        actual = await self._assignments.count_active_by_handler()
        drifts = []
        for handler in await self._handlers.get_all():
            count = actual.get(handler.id, 0)
            if handler.current_case_count != count:
                drifts.append(
                    CounterDrift(
                        handler_id=handler.id,
                        recorded=handler.current_case_count,
                        actual=count,
                    )
                )

        for drift in drifts:
            logger.warning(
                "Handler %d counter drift: recorded=%d actual=%d",
                drift.handler_id, drift.recorded, drift.actual,
            )
            if repair:
                await self._handlers.set_case_count(drift.handler_id, drift.actual)
        return drifts
