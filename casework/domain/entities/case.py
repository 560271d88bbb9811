"""Case attributes — the read-only view of a dispute case the engine routes on."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CaseAttributes:
    id: int
    carrier: str | None
    issue_type: str | None
    priority: str | None
    claimed_amount: int | None = None  # cents
