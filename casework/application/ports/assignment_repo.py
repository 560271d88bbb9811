"""Port interface for assignment persistence."""

from abc import ABC, abstractmethod
from datetime import datetime

from casework.domain.entities.assignment import Assignment
from casework.domain.value_objects.enums import AssignmentStatus


class AssignmentRepository(ABC):
    @abstractmethod
    async def add(self, assignment: Assignment) -> Assignment:
        """Insert a new row.

        Raises AssignmentConflict if the case already has an ACTIVE row.
        """
        ...

    @abstractmethod
    async def get_active_for_case(self, case_id: int) -> Assignment | None:
        ...

    @abstractmethod
    async def close(
        self,
        assignment_id: int,
        status: AssignmentStatus,
        closed_at: datetime,
        time_to_complete: int | None = None,
    ) -> bool:
        """Move an ACTIVE row to a terminal status.

        Conditional on the row still being ACTIVE; returns False if it was not.
        """
        ...

    @abstractmethod
    async def get_active_for_handler(self, handler_id: int, limit: int) -> list[Assignment]:
        """Oldest-assigned first, ties by id."""
        ...

    @abstractmethod
    async def find(
        self,
        case_id: int | None = None,
        handler_id: int | None = None,
        status: AssignmentStatus | None = None,
    ) -> list[Assignment]:
        ...

    @abstractmethod
    async def count_active_by_handler(self) -> dict[int, int]:
        ...
