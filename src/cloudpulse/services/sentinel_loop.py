from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from cloudpulse.state import AppState

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
async def run_once(state: AppState):
    """Run the sentinel once and remember the result for the last-run endpoint."""
    result = await state.sentinel.run()
    state.last_run = result
    return result


# PUBLIC_INTERFACE
async def sentinel_loop(state: AppState, shutdown_event: asyncio.Event) -> None:
    """
    Background loop that runs the sentinel on a fixed cadence.

    A failed run has already been reported by the sentinel itself; the loop logs it
    and carries on with the next tick. Runs never overlap within one process.
    """
    interval = max(1, int(state.config.sentinel_interval_sec))
    logger.info("Sentinel loop started (interval=%ss)", interval)

    while not shutdown_event.is_set():
        tick_started = datetime.now(timezone.utc)
        try:
            await run_once(state)
        except Exception:
            logger.exception("Sentinel loop tick failed")

        elapsed = (datetime.now(timezone.utc) - tick_started).total_seconds()
        sleep_for = max(0.1, interval - elapsed)
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=sleep_for)
        except asyncio.TimeoutError:
            pass

    logger.info("Sentinel loop stopped")
