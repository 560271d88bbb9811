"""Run workload balancing outside the API process.

Usage:
    python -m casework.tools.rebalance               # one pass
    python -m casework.tools.rebalance --loop        # every REBALANCE_INTERVAL_SECONDS
    python -m casework.tools.rebalance --loop --interval 600
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from casework.adapters.persistence.database import engine
from casework.config import settings
from casework.infrastructure.scheduler import WorkloadBalancerScheduler, run_balance_pass

logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def _run_once() -> None:
    try:
        result = await run_balance_pass()
    finally:
        await engine.dispose()

    print(f"\n{'='*50}")
    print(f"Rebalanced: {result.rebalanced_count}  Skipped: {result.skipped_count}")
    for move in result.moves:
        print(f"  case {move.case_id}: handler {move.from_handler_id} → {move.to_handler_id}")
    print(f"{'='*50}\n")


async def _run_forever(interval: float) -> None:
    scheduler = WorkloadBalancerScheduler(interval)
    try:
        while True:
            await scheduler.tick()
            await asyncio.sleep(interval)
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Move cases off overloaded handlers")
    parser.add_argument(
        "--loop", action="store_true",
        help="Keep running, one pass per interval",
    )
    parser.add_argument(
        "--interval", type=int, default=settings.rebalance_interval_seconds,
        help=f"Seconds between passes with --loop (default: {settings.rebalance_interval_seconds})",
    )
    args = parser.parse_args()

    if args.interval <= 0:
        parser.error("--interval must be positive")

    if args.loop:
        logger.info("Rebalancing every %ds, Ctrl+C to stop", args.interval)
        try:
            asyncio.run(_run_forever(args.interval))
        except KeyboardInterrupt:
            logger.info("Stopped")
    else:
        asyncio.run(_run_once())


if __name__ == "__main__":
    main()
