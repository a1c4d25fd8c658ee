import os
import unittest
from unittest import mock

from novatrade.config import get_settings


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = get_settings()

        self.assertEqual(settings.history_cap, 50)
        self.assertEqual(settings.seed_length, 30)
        self.assertEqual(settings.oracle_batch_size, 15)
        self.assertEqual(settings.market_timezone, "Asia/Kolkata")
        self.assertEqual(settings.oracle_provider, "NONE")
        self.assertTrue(settings.evaluate_all_users)

    def test_sizes_must_be_positive(self):
        for name in ("HISTORY_CAP", "SEED_LENGTH", "ORACLE_BATCH_SIZE"):
            for raw in ("0", "-3"):
                with self.subTest(name=name, raw=raw):
                    with mock.patch.dict(os.environ, {name: raw}, clear=True):
                        with self.assertRaises(RuntimeError):
                            get_settings()

    def test_bad_number(self):
        with mock.patch.dict(os.environ, {"TICK_INTERVAL_SECONDS": "fast"}, clear=True):
            with self.assertRaises(RuntimeError):
                get_settings()

    def test_bad_market_hours(self):
        with mock.patch.dict(os.environ, {"MARKET_OPEN_HOUR": "16", "MARKET_CLOSE_HOUR": "15"}, clear=True):
            with self.assertRaises(RuntimeError):
                get_settings()

    def test_gemini_needs_key(self):
        with mock.patch.dict(os.environ, {"ORACLE_PROVIDER": "gemini"}, clear=True):
            with self.assertRaises(RuntimeError):
                get_settings()


if __name__ == "__main__":
    unittest.main()
