"""WorkloadPolicy — utilization bands used by the rebalancer and team stats."""

from __future__ import annotations

from dataclasses import dataclass

from casework.domain.entities.handler import Handler

OVERLOAD_THRESHOLD_PCT = 90.0
UNDERLOAD_THRESHOLD_PCT = 50.0


@dataclass(frozen=True)
class WorkloadBands:
    overloaded: list[Handler]
    underloaded: list[Handler]


def partition_by_utilization(
    handlers: list[Handler],
    overload_pct: float = OVERLOAD_THRESHOLD_PCT,
    underload_pct: float = UNDERLOAD_THRESHOLD_PCT,
) -> WorkloadBands:
    """Split active handlers into overloaded (> overload_pct) and underloaded (< underload_pct).

    Overloaded come most-utilized first. Underloaded come least-utilized
    first and must also be available, since they receive moved cases.
    Python's sort is stable, so equal utilizations keep input order.
    """
    active = [h for h in handlers if h.is_active]
    overloaded = sorted(
        (h for h in active if h.utilization() > overload_pct),
        key=lambda h: -h.utilization(),
    )
    underloaded = sorted(
        (h for h in active if h.is_available and h.utilization() < underload_pct),
        key=lambda h: h.utilization(),
    )
    return WorkloadBands(overloaded=overloaded, underloaded=underloaded)


@dataclass(frozen=True)
class TeamStats:
    total_members: int
    available: int
    total_caseload: int
    avg_caseload: float
    at_capacity: int


def team_stats(handlers: list[Handler]) -> TeamStats:
    total = sum(h.current_case_count for h in handlers)
    return TeamStats(
        total_members=len(handlers),
        available=sum(1 for h in handlers if h.is_available),
        total_caseload=total,
        avg_caseload=round(total / len(handlers), 2) if handlers else 0.0,
        at_capacity=sum(1 for h in handlers if not h.has_capacity()),
    )
