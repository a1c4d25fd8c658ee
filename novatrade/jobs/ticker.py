from __future__ import annotations

import asyncio
import logging
import traceback

from novatrade.engine import MarketEngine


async def price_tick_loop(engine: MarketEngine, interval: float = 1.0) -> None:
    """
    Background loop:
    one scheduler turn per interval (simulate -> evaluate orders -> persist).
    Skipped while the session is closed.
    """
    log = logging.getLogger("price_ticker")

    while True:
        try:
            event = await engine.run_tick()
            if event is not None and (event.fills or event.stale):
                log.info("Tick fills=%d stale=%d", len(event.fills), len(event.stale))
        except Exception as e:
            # Keep loop alive even if one turn fails, but log the error.
            log.error("Price tick failed error=%s", repr(e))
            log.error(traceback.format_exc())

        await asyncio.sleep(interval)


async def clock_loop(engine: MarketEngine, interval: float = 1.0) -> None:
    """
    Background loop:
    re-evaluates the market session (OPEN/CLOSED) every interval.
    """
    log = logging.getLogger("session_clock")

    while True:
        try:
            engine.session.evaluate()
        except Exception as e:
            log.error("Session evaluation failed error=%s", repr(e))
            log.error(traceback.format_exc())

        await asyncio.sleep(interval)
