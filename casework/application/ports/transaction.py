"""Port interface for atomic units of work."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class TransactionManager(ABC):
    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """All writes inside the block commit together or roll back together."""
        ...
