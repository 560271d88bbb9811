"""Handler entity — a team member who works dispute cases."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Handler:
    id: int | None
    name: str
    role: str
    max_concurrent_cases: int
    current_case_count: int = 0
    is_active: bool = True
    is_available: bool = True
    carrier_specialties: set[str] = field(default_factory=set)
    issue_type_specialties: set[str] = field(default_factory=set)
    success_rate: float = 0.0
    last_assigned_at: datetime | None = None
    total_cases_handled: int = 0

    def utilization(self) -> float:
        """Current load as a percentage of capacity (may exceed 100)."""
        if self.max_concurrent_cases <= 0:
            return 0.0
        return self.current_case_count / self.max_concurrent_cases * 100

    def utilization_rate(self) -> int:
        return round(self.utilization())

    def has_capacity(self) -> bool:
        return self.current_case_count < self.max_concurrent_cases

    def is_assignable(self) -> bool:
        return self.is_active and self.is_available

    def specializes_in(self, specialty: str) -> bool:
        return specialty in self.carrier_specialties or specialty in self.issue_type_specialties
