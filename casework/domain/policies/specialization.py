"""SpecializationScorer — additive fitness score of a handler for a case."""

from __future__ import annotations

from dataclasses import dataclass

from casework.domain.entities.case import CaseAttributes
from casework.domain.entities.handler import Handler

CARRIER_WEIGHT = 40.0
ISSUE_TYPE_WEIGHT = 30.0
WORKLOAD_WEIGHT = 0.2
PERFORMANCE_WEIGHT = 0.1

CARRIER_LABEL = "Carrier specialist"
ISSUE_TYPE_LABEL = "Issue type specialist"
GENERAL_LABEL = "General assignment"


@dataclass(frozen=True)
class SpecializationScore:
    handler_id: int
    score: float
    reasons: tuple[str, ...]

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons) or GENERAL_LABEL


def score_handler(handler: Handler, case: CaseAttributes) -> SpecializationScore:
    """Score in [0, 100]:

      +40  case carrier in the handler's carrier specialties
      +30  case issue type in the handler's issue-type specialties
      +20  at most, for free capacity: 0.2 * (100 - utilization)
      +10  at most, for performance: 0.1 * success_rate
    """
    score = 0.0
    reasons: list[str] = []

    if case.carrier is not None and case.carrier in handler.carrier_specialties:
        score += CARRIER_WEIGHT
        reasons.append(CARRIER_LABEL)

    if case.issue_type is not None and case.issue_type in handler.issue_type_specialties:
        score += ISSUE_TYPE_WEIGHT
        reasons.append(ISSUE_TYPE_LABEL)

    score += max(0.0, 100 - handler.utilization()) * WORKLOAD_WEIGHT
    score += handler.success_rate * PERFORMANCE_WEIGHT

    return SpecializationScore(handler_id=handler.id, score=score, reasons=tuple(reasons))
