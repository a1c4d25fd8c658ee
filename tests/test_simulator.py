import random
import unittest
from datetime import datetime, timedelta, timezone

from novatrade.market.catalog import DEFAULT_CATALOG, CatalogEntry
from novatrade.market.simulator import PRICE_EPSILON, PriceSimulator, append_point
from novatrade.models.market import Instrument, OHLCPoint

T0 = datetime(2024, 1, 2, 4, 0, tzinfo=timezone.utc)


def flat_instrument(symbol="TCS", prices=(100.0,)):
    history = tuple(
        OHLCPoint(timestamp=T0 + timedelta(seconds=i), open=p, high=p, low=p, close=p)
        for i, p in enumerate(prices)
    )
    return Instrument(symbol=symbol, name=symbol, sector="IT", history=history, session_open=prices[0])


class TestPriceSimulator(unittest.TestCase):
    def setUp(self):
        self.sim = PriceSimulator(rng=random.Random(7))
        self.entry = CatalogEntry(symbol="TCS", name="Tata Consultancy Services", price=3480.0, sector="IT")

    def test_seed_history_shape(self):
        inst = self.sim.seed_history(self.entry, end=T0)

        self.assertEqual(len(inst.history), 30)
        self.assertEqual(inst.history[-1].timestamp, T0)
        self.assertEqual(inst.history[0].timestamp, T0 - timedelta(seconds=29))
        self.assertEqual(inst.current_price, inst.history[-1].close)
        self.assertEqual(inst.session_open, inst.history[0].close)

    def test_seed_starts_below_nominal_price(self):
        inst = self.sim.seed_history(self.entry, end=T0)
        # first open is the discounted nominal price
        self.assertAlmostEqual(inst.history[0].open, 3480.0 * 0.95)

    def test_points_are_consistent(self):
        inst = self.sim.seed_history(self.entry, end=T0)
        for _ in range(200):
            inst = self.sim.step(inst, T0)

        for prev, point in zip(inst.history, inst.history[1:]):
            self.assertEqual(point.open, prev.close)
        for point in inst.history:
            self.assertGreaterEqual(point.high, max(point.open, point.close))
            self.assertLessEqual(point.low, min(point.open, point.close))
            self.assertGreaterEqual(point.close, PRICE_EPSILON)

    def test_history_is_capped(self):
        inst = self.sim.seed_history(self.entry, end=T0)
        for i in range(25):
            inst = self.sim.step(inst, T0 + timedelta(seconds=i + 1))

        self.assertEqual(len(inst.history), 50)
        # oldest points were evicted first
        self.assertEqual(inst.history[-1].timestamp, T0 + timedelta(seconds=25))

    def test_step_returns_new_instrument(self):
        inst = self.sim.seed_history(self.entry, end=T0)
        before = inst.history

        nxt = self.sim.step(inst, T0)

        self.assertIsNot(nxt, inst)
        self.assertEqual(inst.history, before)
        self.assertEqual(len(nxt.history), len(before) + 1)

    def test_close_never_drops_below_epsilon(self):
        sim = PriceSimulator(tick_volatility=0.99, rng=random.Random(1))
        inst = flat_instrument(prices=(0.02,))
        for _ in range(100):
            inst = sim.step(inst, T0)
            self.assertGreaterEqual(inst.current_price, PRICE_EPSILON)

    def test_catalog_is_unique(self):
        symbols = [e.symbol for e in DEFAULT_CATALOG]
        self.assertEqual(len(symbols), 50)
        self.assertEqual(len(set(symbols)), len(symbols))


class TestInstrument(unittest.TestCase):
    def test_derived_fields(self):
        inst = flat_instrument(prices=(100.0, 110.0, 125.0))

        self.assertEqual(inst.current_price, 125.0)
        self.assertEqual(inst.absolute_change, 25.0)
        self.assertEqual(inst.percent_change, 25.0)
        self.assertEqual(inst.session_change_percent, 25.0)

    def test_baseline_follows_window(self):
        inst = flat_instrument(prices=(100.0, 200.0))
        point = OHLCPoint(timestamp=T0, open=200.0, high=200.0, low=200.0, close=200.0)

        moved = append_point(inst, point, max_history=2)

        # window is now [200, 200]; session_open stays pinned
        self.assertEqual(moved.percent_change, 0.0)
        self.assertEqual(moved.session_open, 100.0)
        self.assertEqual(moved.session_change_percent, 100.0)

    def test_empty_history_rejected(self):
        with self.assertRaises(ValueError):
            Instrument(symbol="X", name="X", sector="IT", history=(), session_open=1.0)


if __name__ == "__main__":
    unittest.main()
