import unittest
from datetime import datetime, timezone

from novatrade.market.session import MarketSession


def at_utc(hour, minute=0):
    return datetime(2024, 1, 2, hour, minute, tzinfo=timezone.utc)


class TestMarketSession(unittest.TestCase):
    def setUp(self):
        # Asia/Kolkata is UTC+5:30, so 09:00 local is 03:30 UTC
        self.now = at_utc(10)
        self.session = MarketSession(tz="Asia/Kolkata", open_hour=9, close_hour=15, now_fn=lambda: self.now)

    def test_open_during_hours(self):
        self.assertTrue(self.session.evaluate(at_utc(4)))  # 09:30 local
        self.assertTrue(self.session.evaluate(at_utc(9, 29)))  # 14:59 local

    def test_close_hour_is_exclusive(self):
        self.assertFalse(self.session.evaluate(at_utc(9, 30)))  # 15:00 local
        self.assertFalse(self.session.evaluate(at_utc(3, 29)))  # 08:59 local

    def test_closed_in_the_evening(self):
        self.assertFalse(self.session.evaluate(at_utc(14, 30)))  # 20:00 local
        self.assertFalse(self.session.is_open)

    def test_override_opens_immediately(self):
        self.assertFalse(self.session.is_open)  # constructed at 15:30 local

        self.assertTrue(self.session.set_override(True))
        self.assertTrue(self.session.is_open)

        self.assertFalse(self.session.set_override(False))
        self.assertFalse(self.session.is_open)

    def test_override_survives_clock_evaluation(self):
        self.session.set_override(True)
        self.assertTrue(self.session.evaluate(at_utc(14, 30)))

    def test_toggle(self):
        self.assertTrue(self.session.toggle_override())
        self.assertFalse(self.session.toggle_override())

    def test_naive_time_is_utc(self):
        self.assertTrue(self.session.evaluate(datetime(2024, 1, 2, 4, 0)))

    def test_status(self):
        status = self.session.status()
        self.assertEqual(status["timezone"], "Asia/Kolkata")
        self.assertEqual(status["open_hour"], 9)
        self.assertFalse(status["override"])
        self.assertTrue(status["local_time"].startswith("2024-01-02T15:30"))


if __name__ == "__main__":
    unittest.main()
