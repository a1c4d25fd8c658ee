from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Tuple

from novatrade.models.account import (
    ConditionalOrder,
    OrderKind,
    Position,
    Trade,
    TradeKind,
    User,
)
from novatrade.trading.errors import InsufficientFunds, InsufficientPosition, InvalidQuantity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _check_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or int(quantity) != quantity or quantity <= 0:
        raise InvalidQuantity(f"quantity must be a positive integer, got {quantity!r}")
    return int(quantity)


def execute_buy(
    user: User,
    symbol: str,
    quantity: int,
    price: float,
    stop_loss: Optional[float] = None,
    take_profit: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Tuple[User, Trade]:
    """
    Buy `quantity` units at `price`.

    - cost = price * quantity, debited from balance
    - position average cost becomes (old_qty*old_avg + cost) / (old_qty + quantity)
    - optional stop_loss / take_profit create conditional orders covering `quantity`

    Returns (new_user, trade). The input user is left untouched.
    Raises InsufficientFunds when balance < cost.
    """
    quantity = _check_quantity(quantity)
    now = now or utcnow()
    cost = price * quantity

    if user.balance < cost:
        raise InsufficientFunds(
            f"need {cost:.2f} to buy {quantity} {symbol}, balance is {user.balance:.2f}"
        )

    current = user.portfolio.get(symbol)
    held = current.quantity if current else 0
    held_cost = current.quantity * current.average_buy_price if current else 0.0
    new_qty = held + quantity

    portfolio = dict(user.portfolio)
    portfolio[symbol] = Position(quantity=new_qty, average_buy_price=(held_cost + cost) / new_qty)

    trade = Trade(
        id=new_id("TR"),
        symbol=symbol,
        kind=TradeKind.BUY,
        quantity=quantity,
        price=price,
        timestamp=now,
        total_value=cost,
    )

    orders = list(user.active_orders)
    if stop_loss is not None:
        orders.append(
            ConditionalOrder(
                id=new_id("ORD-SL"),
                symbol=symbol,
                kind=OrderKind.STOP_LOSS,
                trigger_price=float(stop_loss),
                quantity=quantity,
                created_at=now,
            )
        )
    if take_profit is not None:
        orders.append(
            ConditionalOrder(
                id=new_id("ORD-TP"),
                symbol=symbol,
                kind=OrderKind.TAKE_PROFIT,
                trigger_price=float(take_profit),
                quantity=quantity,
                created_at=now,
            )
        )

    updated = replace(
        user,
        balance=user.balance - cost,
        portfolio=portfolio,
        active_orders=orders,
        trade_history=user.trade_history + [trade],
    )
    return updated, trade


def execute_sell(
    user: User,
    symbol: str,
    quantity: int,
    price: float,
    kind: TradeKind = TradeKind.SELL,
    now: Optional[datetime] = None,
) -> Tuple[User, Trade]:
    """
    Sell `quantity` units at `price` and book realized P/L against the
    average buy price.

    A manual SELL that closes the position also purges every resting order
    on the symbol. Triggered sells (SL_TRIGGER / TP_TRIGGER) leave the other
    orders alone; the evaluator removes the order that fired.

    Returns (new_user, trade). Raises InsufficientPosition when the user
    holds less than `quantity`.
    """
    quantity = _check_quantity(quantity)
    if kind == TradeKind.BUY:
        raise ValueError("execute_sell cannot record a BUY trade")

    now = now or utcnow()
    current = user.portfolio.get(symbol)
    if current is None or current.quantity < quantity:
        held = current.quantity if current else 0
        raise InsufficientPosition(f"cannot sell {quantity} {symbol}, holding {held}")

    revenue = price * quantity
    realized_pl = revenue - current.average_buy_price * quantity
    remaining = current.quantity - quantity

    portfolio = dict(user.portfolio)
    if remaining == 0:
        del portfolio[symbol]
    else:
        portfolio[symbol] = replace(current, quantity=remaining)

    orders = list(user.active_orders)
    if remaining == 0 and kind == TradeKind.SELL:
        orders = [o for o in orders if o.symbol != symbol]

    trade = Trade(
        id=new_id("TR"),
        symbol=symbol,
        kind=kind,
        quantity=quantity,
        price=price,
        timestamp=now,
        total_value=revenue,
        realized_pl=realized_pl,
    )

    updated = replace(
        user,
        balance=user.balance + revenue,
        portfolio=portfolio,
        active_orders=orders,
        trade_history=user.trade_history + [trade],
    )
    return updated, trade


def cancel_order(user: User, order_id: str) -> Tuple[User, Optional[ConditionalOrder]]:
    """Remove one resting order by id. Returns (new_user, removed_order or None)."""
    removed = next((o for o in user.active_orders if o.id == order_id), None)
    if removed is None:
        return user, None
    orders = [o for o in user.active_orders if o.id != order_id]
    return replace(user, active_orders=orders), removed
