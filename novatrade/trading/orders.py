from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional

from novatrade.models.account import TRIGGER_TRADE_KIND, ConditionalOrder, Trade, User
from novatrade.trading.execution import execute_sell

log = logging.getLogger("order_book")


@dataclass
class Evaluation:
    """
    Result of one evaluation pass for one user.

    user:  merged snapshot after every fill in this pass
    fills: (order, trade) pairs that executed
    stale: triggered orders dropped because the position no longer covers them
    """
    user: User
    fills: List[tuple] = field(default_factory=list)
    stale: List[ConditionalOrder] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.fills or self.stale)

    @property
    def trades(self) -> List[Trade]:
        return [t for _, t in self.fills]


def evaluate_orders(
    user: User,
    prices: Dict[str, float],
    now: Optional[datetime] = None,
) -> Evaluation:
    """
    Check every resting order of `user` against `prices`.

    STOP_LOSS fires when price <= trigger, TAKE_PROFIT when price >= trigger.
    Orders whose symbol has no price are kept. A fired order is always
    removed; it executes only if the running snapshot still holds enough
    quantity, otherwise it is recorded as stale.
    """
    result = Evaluation(user=user)
    if not user.active_orders:
        return result

    snapshot = user
    kept: List[ConditionalOrder] = []

    for order in user.active_orders:
        price = prices.get(order.symbol)
        if price is None or not order.is_triggered(price):
            kept.append(order)
            continue

        if snapshot.holding(order.symbol) < order.quantity:
            log.info(
                "Dropping stale %s order=%s user=%s symbol=%s qty=%d held=%d",
                order.kind.value,
                order.id,
                user.id,
                order.symbol,
                order.quantity,
                snapshot.holding(order.symbol),
            )
            result.stale.append(order)
            continue

        snapshot, trade = execute_sell(
            snapshot,
            order.symbol,
            order.quantity,
            price,
            kind=TRIGGER_TRADE_KIND[order.kind],
            now=now,
        )
        result.fills.append((order, trade))

    if result.changed:
        result.user = replace(snapshot, active_orders=kept)
    return result
