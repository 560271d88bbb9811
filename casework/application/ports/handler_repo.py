"""Port interface for the team directory (handler persistence)."""

from abc import ABC, abstractmethod
from datetime import datetime

from casework.domain.entities.handler import Handler


class HandlerRepository(ABC):
    @abstractmethod
    async def save(self, handler: Handler) -> Handler:
        ...

    @abstractmethod
    async def update(self, handler: Handler) -> Handler:
        """Persist profile fields. Load counters are only changed through the
        increment/decrement methods below."""
        ...

    @abstractmethod
    async def get_by_id(self, handler_id: int) -> Handler | None:
        ...

    @abstractmethod
    async def get_all(self) -> list[Handler]:
        ...

    @abstractmethod
    async def get_active(self) -> list[Handler]:
        ...

    @abstractmethod
    async def increment_case_count(
        self, handler_id: int, assigned_at: datetime, enforce_capacity: bool = False
    ) -> bool:
        """Atomically add one case and stamp last_assigned_at.

        With enforce_capacity the increment only happens while the handler is
        below max_concurrent_cases. Returns False when no row was updated.
        """
        ...

    @abstractmethod
    async def decrement_case_count(self, handler_id: int, completed: bool = False) -> None:
        """Atomically remove one case (never below zero).

        With completed, total_cases_handled is incremented in the same statement.
        """
        ...

    @abstractmethod
    async def set_case_count(self, handler_id: int, count: int) -> None:
        ...
