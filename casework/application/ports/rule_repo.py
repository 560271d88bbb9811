"""Port interface for assignment rule persistence."""

from abc import ABC, abstractmethod

from casework.domain.entities.assignment_rule import AssignmentRule


class RuleRepository(ABC):
    @abstractmethod
    async def save(self, rule: AssignmentRule) -> AssignmentRule:
        ...

    @abstractmethod
    async def update(self, rule: AssignmentRule) -> AssignmentRule:
        ...

    @abstractmethod
    async def get_by_id(self, rule_id: int) -> AssignmentRule | None:
        ...

    @abstractmethod
    async def get_all(self) -> list[AssignmentRule]:
        ...

    @abstractmethod
    async def get_active(self) -> list[AssignmentRule]:
        """Active rules ordered by priority DESC, id ASC."""
        ...

    @abstractmethod
    async def increment_assignment_count(self, rule_id: int) -> None:
        ...
