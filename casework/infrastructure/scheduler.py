"""Periodic workload balancing inside the API process."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from casework.adapters.persistence.database import async_session_factory
from casework.application.use_cases.balance_workload import BalanceResult
from casework.infrastructure.api.dependencies import build_balancer

logger = logging.getLogger(__name__)


async def run_balance_pass() -> BalanceResult:
    """One balancing pass in its own session, committed on success."""
    async with async_session_factory() as session:
        result = await build_balancer(session).execute()
        await session.commit()
    return result


class WorkloadBalancerScheduler:
    """Runs a balancing pass every ``interval`` seconds until stopped.

    A failing pass is logged and the loop carries on with the next tick.
    """

    def __init__(
        self,
        interval: float,
        run_pass: Callable[[], Awaitable[BalanceResult]] = run_balance_pass,
    ):
        self._interval = interval
        self._run_pass = run_pass
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="workload-balancer")
        logger.info("Workload balancer scheduled every %ss", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Workload balancer stopped")

    async def tick(self) -> BalanceResult | None:
        try:
            result = await self._run_pass()
        except Exception:
            logger.exception("Workload balancing pass failed")
            return None
        logger.info(
            "Scheduled rebalance: moved %d, skipped %d",
            result.rebalanced_count, result.skipped_count,
        )
        return result

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.tick()
