import asyncio
import unittest
from datetime import datetime, timezone

from novatrade.engine import MarketEngine
from novatrade.jobs.oracle_sync import chunked, sync_market_prices
from novatrade.market.catalog import DEFAULT_CATALOG
from novatrade.market.session import MarketSession
from novatrade.market.simulator import PriceSimulator
from novatrade.market.store import MarketStore
from novatrade.providers.base import NullOracle, OracleQuote, PriceOracle
from novatrade.storage.memory import InMemoryRepository
from novatrade.trading.errors import ExternalSyncFailure

NOW = datetime(2024, 1, 2, 5, 0, tzinfo=timezone.utc)


class FakeOracle(PriceOracle):
    """Quotes 1000 + batch position per symbol; fails or stalls batches holding `broken` or `slow` symbols."""

    def __init__(self, broken=(), slow=()):
        self.broken = set(broken)
        self.slow = set(slow)
        self.batches = []

    async def fetch_prices(self, symbols):
        self.batches.append(list(symbols))
        if self.broken & set(symbols):
            raise ExternalSyncFailure("bad batch")
        if self.slow & set(symbols):
            await asyncio.sleep(10)
        return OracleQuote(
            prices={s: 1000.0 + i for i, s in enumerate(symbols)},
            sources=[{"title": "NSE", "uri": "https://www.nseindia.com"}],
        )


def make_engine():
    engine = MarketEngine(
        store=MarketStore(),
        simulator=PriceSimulator(),
        session=MarketSession(now_fn=lambda: NOW),
        repository=InMemoryRepository(),
    )
    engine.seed(DEFAULT_CATALOG, now=NOW)
    return engine


class TestChunked(unittest.TestCase):
    def test_chunks(self):
        self.assertEqual(chunked(["a", "b", "c", "d", "e"], 2), [["a", "b"], ["c", "d"], ["e"]])
        self.assertEqual(chunked([], 15), [])
        self.assertEqual(chunked(["a"], 0), [["a"]])


class TestSyncMarketPrices(unittest.IsolatedAsyncioTestCase):
    async def test_all_batches_apply(self):
        engine = make_engine()
        oracle = FakeOracle()

        report = await sync_market_prices(engine, oracle, batch_size=15)

        self.assertEqual([len(b) for b in oracle.batches], [15, 15, 15, 5])
        self.assertEqual(report.requested, 50)
        self.assertEqual(len(report.applied), 50)
        self.assertEqual(report.failed_batches, 0)
        self.assertEqual(engine.store.get(DEFAULT_CATALOG[0].symbol).current_price, 1000.0)
        self.assertLessEqual(len(engine.store.sources), 5)

    async def test_failed_batch_keeps_partial_results(self):
        engine = make_engine()
        broken = DEFAULT_CATALOG[20].symbol
        untouched = engine.store.get(broken).current_price

        report = await sync_market_prices(engine, FakeOracle(broken=[broken]), batch_size=15)

        self.assertEqual(report.failed_batches, 1)
        self.assertEqual(len(report.applied), 35)
        self.assertEqual(engine.store.get(broken).current_price, untouched)
        self.assertEqual(engine.store.get(DEFAULT_CATALOG[0].symbol).current_price, 1000.0)

    async def test_batch_timeout_counts_as_failure(self):
        engine = make_engine()
        slow = DEFAULT_CATALOG[0].symbol

        report = await sync_market_prices(engine, FakeOracle(slow=[slow]), batch_size=15, timeout_s=0.05)

        self.assertEqual(report.failed_batches, 1)
        self.assertEqual(len(report.applied), 35)

    async def test_null_oracle_is_a_no_op(self):
        engine = make_engine()
        before = engine.store.prices()

        report = await sync_market_prices(engine, NullOracle())

        self.assertEqual(report.applied, [])
        self.assertEqual(engine.store.prices(), before)


if __name__ == "__main__":
    unittest.main()
