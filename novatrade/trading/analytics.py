from __future__ import annotations

from typing import Dict, List, Optional

from novatrade.models.account import User
from novatrade.storage.codec import trade_to_dict


def summarize(user: User, prices: Dict[str, float]) -> Dict[str, object]:
    """
    Portfolio and performance summary.

    Realized figures come from closing trades in the history; unrealized
    figures value open positions at `prices` (positions without a price are
    valued at cost).
    """
    closing = [t for t in user.trade_history if t.is_closing]
    total_realized = sum(t.realized_pl or 0.0 for t in closing)
    wins = [t for t in closing if (t.realized_pl or 0.0) > 0]

    best = max(closing, key=lambda t: t.realized_pl or 0.0) if closing else None
    worst = min(closing, key=lambda t: t.realized_pl or 0.0) if closing else None

    cumulative: List[Dict[str, object]] = []
    running = 0.0
    for t in sorted(closing, key=lambda t: t.timestamp):
        running += t.realized_pl or 0.0
        cumulative.append({"timestamp": t.timestamp.isoformat(), "cumulative": running})

    market_value = 0.0
    cost_basis = 0.0
    positions: List[Dict[str, object]] = []
    for symbol, pos in user.portfolio.items():
        price: Optional[float] = prices.get(symbol)
        cost = pos.average_buy_price * pos.quantity
        value = (price if price is not None else pos.average_buy_price) * pos.quantity
        market_value += value
        cost_basis += cost
        positions.append(
            {
                "symbol": symbol,
                "quantity": pos.quantity,
                "avg_buy_price": pos.average_buy_price,
                "price": price,
                "market_value": value,
                "unrealized_pl": value - cost,
            }
        )

    return {
        "balance": user.balance,
        "market_value": market_value,
        "cost_basis": cost_basis,
        "unrealized_pl": market_value - cost_basis,
        "net_worth": user.balance + market_value,
        "total_realized_pl": total_realized,
        "closed_trades": len(closing),
        "win_rate": (len(wins) / len(closing)) * 100 if closing else 0.0,
        "best_trade": trade_to_dict(best) if best else None,
        "worst_trade": trade_to_dict(worst) if worst else None,
        "cumulative_pl": cumulative,
        "positions": positions,
    }
