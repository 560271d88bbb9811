"""Assignment entity — the binding between a case and the handler working it."""

from dataclasses import dataclass
from datetime import datetime

from casework.domain.value_objects.enums import AssignmentMethod, AssignmentStatus


@dataclass
class Assignment:
    id: int | None
    case_id: int
    assigned_to: int
    assignment_method: AssignmentMethod
    assigned_at: datetime
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    assignment_rule_id: int | None = None
    assigned_by: int | None = None
    assignment_reason: str | None = None
    completed_at: datetime | None = None
    time_to_complete: int | None = None  # minutes

    def is_active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE
