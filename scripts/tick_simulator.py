from __future__ import annotations

import argparse
import asyncio
import random
from datetime import datetime, timedelta, timezone

from novatrade.engine import MarketEngine
from novatrade.market.catalog import DEFAULT_CATALOG
from novatrade.market.session import MarketSession
from novatrade.market.simulator import PriceSimulator
from novatrade.market.store import MarketStore
from novatrade.storage.memory import InMemoryRepository


async def run(symbol: str = "TCS", seconds: int = 120, seed: int = 42) -> None:
    """
    Runs the market engine offline for `seconds` simulated seconds.

    - One tick per simulated second; the session override keeps the market open.
    - A demo trader buys 10 units of `symbol` with a stop-loss 0.5% below and
      a take-profit 0.5% above the entry price.
    - Each fill is printed as it happens, then a price summary at the end.
    """
    engine = MarketEngine(
        store=MarketStore(),
        simulator=PriceSimulator(rng=random.Random(seed)),
        session=MarketSession(),
        repository=InMemoryRepository(),
    )
    ts = datetime.now(timezone.utc).replace(microsecond=0)
    engine.seed(DEFAULT_CATALOG, now=ts)

    admin = await engine.login("operator", is_admin=True)
    await engine.set_override(admin.id, True)

    trader = await engine.login("demo")
    entry = engine.price_of(symbol)
    await engine.buy(trader.id, symbol, 10, stop_loss=round(entry * 0.995, 2), take_profit=round(entry * 1.005, 2))

    print(f"Simulating {seconds} ticks; bought 10 {symbol} @ {entry:.2f}\n")

    for _ in range(seconds):
        ts += timedelta(seconds=1)
        event = await engine.run_tick(ts)
        for uid, trade in event.fills:
            print(
                f"[{trade.kind.value}] {trade.symbol} qty={trade.quantity} "
                f"@ {trade.price:.2f} pl={trade.realized_pl:.2f} ({ts.isoformat()})"
            )

    inst = engine.store.get(symbol)
    user = engine.get_user(trader.id)
    print("\nDone.")
    print(f"{symbol}: {inst.current_price:.2f} ({inst.percent_change:+.2f}% over {len(inst.history)} points)")
    print(f"Balance: {user.balance:.2f}  open orders: {len(user.active_orders)}  holding: {user.holding(symbol)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--symbol", default="TCS")
    parser.add_argument("--seconds", type=int, default=120)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    asyncio.run(run(args.symbol.upper(), args.seconds, args.seed))
