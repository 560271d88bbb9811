"""Port interface for the case store owned by case management."""

from abc import ABC, abstractmethod

from casework.domain.entities.case import CaseAttributes


class CaseRepository(ABC):
    @abstractmethod
    async def get_by_id(self, case_id: int) -> CaseAttributes | None:
        ...

    @abstractmethod
    async def set_assigned_to(self, case_id: int, handler_id: int | None) -> None:
        """Update the case's denormalized assignee pointer."""
        ...
