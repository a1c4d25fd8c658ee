from __future__ import annotations

import asyncio
import logging
import traceback
from dataclasses import dataclass, field
from typing import Dict, List

from novatrade.engine import MarketEngine
from novatrade.providers.base import PriceOracle

log = logging.getLogger("oracle_sync")


@dataclass
class SyncReport:
    requested: int = 0
    applied: List[str] = field(default_factory=list)
    failed_batches: int = 0
    sources: List[Dict[str, str]] = field(default_factory=list)


def chunked(items: List[str], size: int) -> List[List[str]]:
    size = max(1, int(size))
    return [items[i:i + size] for i in range(0, len(items), size)]


async def sync_market_prices(
    engine: MarketEngine,
    oracle: PriceOracle,
    batch_size: int = 15,
    timeout_s: float = 20.0,
) -> SyncReport:
    """
    Pull real prices for every instrument, batch by batch.

    - each batch has its own timeout
    - a failing batch is logged and skipped; other batches still count
    - the merged result is applied to the market in one synchronous step
    """
    symbols = engine.store.symbols()
    report = SyncReport(requested=len(symbols))
    prices: Dict[str, float] = {}
    sources: List[Dict[str, str]] = []

    for batch in chunked(symbols, batch_size):
        try:
            quote = await asyncio.wait_for(oracle.fetch_prices(batch), timeout=timeout_s)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            report.failed_batches += 1
            log.error("Oracle batch failed symbols=%s error=%s", ",".join(batch), repr(e))
            continue

        prices.update({s.upper(): p for s, p in quote.prices.items() if s.upper() in batch})
        sources.extend(quote.sources)

    report.applied = engine.apply_oracle_prices(prices, sources)
    report.sources = sources[:5]
    log.info(
        "Oracle sync done requested=%d applied=%d failed_batches=%d",
        report.requested,
        len(report.applied),
        report.failed_batches,
    )
    return report


async def auto_sync_loop(
    engine: MarketEngine,
    oracle: PriceOracle,
    interval: float,
    batch_size: int = 15,
    timeout_s: float = 20.0,
) -> None:
    """
    Background loop:
    periodically overlays oracle prices on the simulated market.
    """
    while True:
        try:
            await sync_market_prices(engine, oracle, batch_size=batch_size, timeout_s=timeout_s)
        except Exception as e:
            log.error("Oracle sync failed error=%s", repr(e))
            log.error(traceback.format_exc())

        await asyncio.sleep(interval)
