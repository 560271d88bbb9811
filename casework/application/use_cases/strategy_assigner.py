"""StrategyAssigner — pick a handler for a case with one of the selection strategies."""

from __future__ import annotations

import logging
from collections.abc import Collection

from casework.application.ports.handler_repo import HandlerRepository
from casework.domain.entities.case import CaseAttributes
from casework.domain.policies.candidate_pool import build_candidate_pool
from casework.domain.policies.strategies import Selection, StrategyRegistry
from casework.domain.value_objects.enums import AssignmentStrategy

logger = logging.getLogger(__name__)


class StrategyAssigner:
    def __init__(self, handler_repo: HandlerRepository, registry: StrategyRegistry):
        self._handlers = handler_repo
        self._registry = registry

    async def assign(
        self,
        strategy: AssignmentStrategy,
        case: CaseAttributes,
        role: str | None = None,
        handler_id: int | None = None,
        exclude: Collection[int] = (),
    ) -> Selection | None:
        """Select a handler, or None when nobody passes the filters and capacity gate.

        Never raises for an empty pool; that is an expected outcome.
        """
        handlers = await self._handlers.get_active()
        pool = build_candidate_pool(handlers, role=role, handler_id=handler_id, exclude=exclude)
        if not pool:
            logger.debug(
                "Case %d: empty pool for %s (role=%s, handler=%s)",
                case.id, strategy.value, role, handler_id,
            )
            return None

        return self._registry.get(strategy).select(pool, case)
