"""Cancellable periodic loop shared by the inbox poller and index synchronizer.

Each tick runs one cycle; an exception from a cycle is logged and the loop
keeps its schedule. The loop only suspends at the startup delay and the
inter-tick wait, both of which return early when the stop event is set.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


async def wait_or_stop(stop: asyncio.Event, seconds: float) -> bool:
    """Sleep up to `seconds`; returns True if the stop event was set meanwhile."""
    if stop.is_set():
        return True
    if seconds <= 0:
        return stop.is_set()
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    return stop.is_set()


async def run_periodic(
    name: str,
    cycle: Callable[[], Awaitable[Any]],
    *,
    stop: asyncio.Event,
    enabled: bool,
    interval_seconds: float,
    startup_delay_seconds: float = 0,
) -> int:
    """Run `cycle` every `interval_seconds` until `stop` is set. Returns cycles run."""
    if not enabled:
        logger.info("%s is disabled", name)
        return 0

    logger.info(
        "%s started (interval=%ss, startup delay=%ss)", name, interval_seconds, startup_delay_seconds
    )
    cycles = 0
    if await wait_or_stop(stop, startup_delay_seconds):
        logger.info("%s stopped before first cycle", name)
        return cycles

    while not stop.is_set():
        try:
            await cycle()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s cycle failed", name)
        cycles += 1

        if await wait_or_stop(stop, interval_seconds):
            break

    logger.info("%s stopped after %d cycles", name, cycles)
    return cycles
