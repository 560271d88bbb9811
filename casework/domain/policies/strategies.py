"""Selection strategies — pick one handler from an eligible, non-empty pool.

Each strategy is a small class behind the SelectionStrategy interface; the
StrategyRegistry maps AssignmentStrategy values to instances so new
strategies can be registered without touching the assigner.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass

from casework.domain.entities.case import CaseAttributes
from casework.domain.entities.handler import Handler
from casework.domain.policies.specialization import score_handler
from casework.domain.value_objects.enums import AssignmentStrategy


@dataclass(frozen=True)
class Selection:
    """Result of a strategy pick."""

    handler: Handler
    reason: str


class SelectionStrategy(ABC):
    kind: AssignmentStrategy

    def select(self, candidates: list[Handler], case: CaseAttributes) -> Selection:
        if not candidates:
            raise ValueError("Cannot select from an empty candidate list")
        return self._select(candidates, case)

    @abstractmethod
    def _select(self, candidates: list[Handler], case: CaseAttributes) -> Selection:
        ...


class RoundRobinStrategy(SelectionStrategy):
    """Handler idle the longest; never-assigned handlers go first."""

    kind = AssignmentStrategy.ROUND_ROBIN

    def _select(self, candidates, case):
        # min() keeps the first of equal keys, so ties follow input order
        chosen = min(
            candidates,
            key=lambda h: (h.last_assigned_at is not None, h.last_assigned_at or 0),
        )
        if chosen.last_assigned_at is None:
            reason = "Round robin: never assigned"
        else:
            reason = f"Round robin: last assigned {chosen.last_assigned_at.isoformat()}"
        return Selection(handler=chosen, reason=reason)


class LeastLoadedStrategy(SelectionStrategy):
    kind = AssignmentStrategy.LEAST_LOADED

    def _select(self, candidates, case):
        chosen = min(candidates, key=lambda h: h.current_case_count)
        return Selection(
            handler=chosen,
            reason=f"Least loaded ({chosen.current_case_count}/{chosen.max_concurrent_cases})",
        )


class RandomStrategy(SelectionStrategy):
    kind = AssignmentStrategy.RANDOM

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def _select(self, candidates, case):
        return Selection(handler=self._rng.choice(candidates), reason="Random pick")


class SpecializedStrategy(SelectionStrategy):
    """Highest specialization score; ties keep input order."""

    kind = AssignmentStrategy.SPECIALIZED

    def _select(self, candidates, case):
        scored = [(h, score_handler(h, case)) for h in candidates]
        chosen, best = max(scored, key=lambda pair: pair[1].score)
        return Selection(
            handler=chosen,
            reason=f"Specialized (score {best.score:.1f}): {best.reason}",
        )


class StrategyRegistry:
    def __init__(self, strategies: list[SelectionStrategy] | None = None):
        self._strategies: dict[AssignmentStrategy, SelectionStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: SelectionStrategy) -> None:
        self._strategies[strategy.kind] = strategy

    def get(self, kind: AssignmentStrategy) -> SelectionStrategy:
        try:
            return self._strategies[kind]
        except KeyError:
            raise ValueError(f"No strategy registered for {kind!r}") from None


def default_registry(rng: random.Random | None = None) -> StrategyRegistry:
    return StrategyRegistry(
        [
            RoundRobinStrategy(),
            LeastLoadedStrategy(),
            RandomStrategy(rng),
            SpecializedStrategy(),
        ]
    )
