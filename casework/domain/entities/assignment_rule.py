"""AssignmentRule entity — an ordered policy that picks a strategy for matching cases."""

from dataclasses import dataclass

from casework.domain.value_objects.enums import AssignmentStrategy


@dataclass(frozen=True)
class AmountRange:
    """Inclusive claimed-amount bounds, in cents."""

    min: int
    max: int

    def contains(self, amount: int) -> bool:
        return self.min <= amount <= self.max


@dataclass
class AssignmentRule:
    id: int | None
    name: str
    priority: int
    strategy: AssignmentStrategy
    is_active: bool = True
    carrier: str | None = None
    issue_type: str | None = None
    priority_level: str | None = None
    amount_range: AmountRange | None = None
    assign_to_role: str | None = None
    assign_to_handler_id: int | None = None
    assignment_count: int = 0
