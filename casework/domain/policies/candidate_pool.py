"""CandidatePoolPolicy — which handlers may receive a new case right now."""

from __future__ import annotations

from collections.abc import Collection, Iterable

from casework.domain.entities.handler import Handler


def build_candidate_pool(
    handlers: Iterable[Handler],
    role: str | None = None,
    handler_id: int | None = None,
    exclude: Collection[int] = (),
) -> list[Handler]:
    """Filter handlers down to the eligible pool, preserving input order.

    1. Only active AND available handlers.
    2. Optional target filter from a matched rule (role and/or handler id).
    3. Hard capacity gate: current_case_count < max_concurrent_cases.
    """
    pool = []
    for h in handlers:
        if not h.is_assignable():
            continue
        if role is not None and h.role != role:
            continue
        if handler_id is not None and h.id != handler_id:
            continue
        if h.id in exclude:
            continue
        if not h.has_capacity():
            continue
        pool.append(h)
    return pool
