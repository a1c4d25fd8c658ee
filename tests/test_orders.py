import unittest
from dataclasses import replace
from datetime import datetime, timezone

from novatrade.models.account import OrderKind, TradeKind, User
from novatrade.trading.execution import execute_buy
from novatrade.trading.orders import evaluate_orders

T0 = datetime(2024, 1, 2, 4, 0, tzinfo=timezone.utc)


def holder(qty=10, price=100.0, stop_loss=None, take_profit=None):
    user = User(id="u1", username="alice", email="alice@test.com", balance=100000.0)
    user, _ = execute_buy(user, "TCS", qty, price, stop_loss=stop_loss, take_profit=take_profit, now=T0)
    return user


class TestEvaluateOrders(unittest.TestCase):
    def test_no_trigger_keeps_everything(self):
        user = holder(stop_loss=90.0, take_profit=120.0)
        result = evaluate_orders(user, {"TCS": 100.0}, now=T0)

        self.assertFalse(result.changed)
        self.assertIs(result.user, user)

    def test_stop_loss_fires_at_trigger(self):
        user = holder(stop_loss=90.0)
        result = evaluate_orders(user, {"TCS": 90.0}, now=T0)

        self.assertEqual(len(result.fills), 1)
        order, trade = result.fills[0]
        self.assertEqual(order.kind, OrderKind.STOP_LOSS)
        self.assertEqual(trade.kind, TradeKind.SL_TRIGGER)
        self.assertEqual(trade.price, 90.0)
        self.assertEqual(trade.realized_pl, -100.0)
        self.assertEqual(result.user.active_orders, [])
        self.assertNotIn("TCS", result.user.portfolio)

    def test_take_profit_fires_above_trigger(self):
        user = holder(take_profit=120.0)
        result = evaluate_orders(user, {"TCS": 121.0}, now=T0)

        self.assertEqual([t.kind for t in result.trades], [TradeKind.TP_TRIGGER])
        self.assertEqual(result.user.balance, 99000.0 + 1210.0)

    def test_trigger_sells_whole_order_quantity(self):
        # starting balance 100000: buy 10 @ 100, SL @ 95, price drops to 94
        user = holder(qty=10, price=100.0, stop_loss=95.0)
        result = evaluate_orders(user, {"TCS": 94.0}, now=T0)

        self.assertEqual(result.trades[0].quantity, 10)
        self.assertEqual(result.trades[0].realized_pl, -60.0)
        self.assertEqual(result.user.balance, 99940.0)

    def test_stop_loss_scenario(self):
        user = holder(qty=10, price=100.0, stop_loss=90.0)
        self.assertEqual(user.balance, 99000.0)

        result = evaluate_orders(user, {"TCS": 80.0}, now=T0)

        trade = result.trades[0]
        self.assertEqual((trade.kind, trade.quantity, trade.price), (TradeKind.SL_TRIGGER, 10, 80.0))
        self.assertEqual(trade.realized_pl, -200.0)
        self.assertEqual(result.user.balance, 99800.0)
        self.assertEqual(result.user.portfolio, {})
        self.assertEqual(result.user.active_orders, [])

    def test_fires_on_first_qualifying_price_only(self):
        user = holder(stop_loss=90.0, take_profit=110.0)

        for price in (90.01, 109.99):
            user = evaluate_orders(user, {"TCS": price}, now=T0).user
            self.assertEqual(len(user.active_orders), 2)

        result = evaluate_orders(user, {"TCS": 110.0}, now=T0)
        self.assertEqual([t.kind for t in result.trades], [TradeKind.TP_TRIGGER])

        # the take-profit is gone and the stop-loss has nothing left to sell
        after = evaluate_orders(result.user, {"TCS": 50.0}, now=T0)
        self.assertEqual(after.fills, [])
        self.assertEqual(len(after.stale), 1)

    def test_stale_order_is_dropped(self):
        user = holder(qty=10, stop_loss=90.0)
        # position shrank behind the order's back
        user = replace(user, portfolio={"TCS": replace(user.portfolio["TCS"], quantity=4)})

        result = evaluate_orders(user, {"TCS": 80.0}, now=T0)

        self.assertEqual(result.fills, [])
        self.assertEqual(len(result.stale), 1)
        self.assertEqual(result.user.active_orders, [])
        self.assertEqual(result.user.portfolio["TCS"].quantity, 4)

    def test_second_order_sees_first_fill(self):
        # two 5-unit stop-losses on a 5-unit position; only one can execute
        user = holder(qty=5, stop_loss=90.0)
        user, _ = execute_buy(user, "TCS", 5, 100.0, stop_loss=91.0, now=T0)
        user = replace(user, portfolio={"TCS": replace(user.portfolio["TCS"], quantity=5)})

        result = evaluate_orders(user, {"TCS": 85.0}, now=T0)

        self.assertEqual(len(result.fills), 1)
        self.assertEqual(len(result.stale), 1)
        self.assertEqual(result.user.active_orders, [])

    def test_orders_without_price_are_kept(self):
        user = holder(stop_loss=90.0)
        result = evaluate_orders(user, {"INFY": 1.0}, now=T0)

        self.assertFalse(result.changed)
        self.assertEqual(len(result.user.active_orders), 1)

    def test_untriggered_orders_survive_a_fill(self):
        user = holder(qty=10, stop_loss=90.0, take_profit=150.0)
        user, _ = execute_buy(user, "INFY", 2, 50.0, stop_loss=40.0, now=T0)

        result = evaluate_orders(user, {"TCS": 89.0, "INFY": 55.0}, now=T0)

        remaining = sorted((o.symbol, o.kind.value) for o in result.user.active_orders)
        self.assertEqual(remaining, [("INFY", "STOP_LOSS"), ("TCS", "TAKE_PROFIT")])


if __name__ == "__main__":
    unittest.main()
