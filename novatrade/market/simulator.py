from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from novatrade.market.catalog import CatalogEntry
from novatrade.models.market import Instrument, OHLCPoint

# Floor for simulated prices; a walk can never reach zero or go negative.
PRICE_EPSILON = 0.01


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def append_point(instrument: Instrument, point: OHLCPoint, max_history: int) -> Instrument:
    """
    Return a new Instrument with `point` appended.
    Oldest points are evicted (FIFO) so history never exceeds max_history.
    """
    history = instrument.history + (point,)
    if len(history) > max_history:
        history = history[-max_history:]

    return Instrument(
        symbol=instrument.symbol,
        name=instrument.name,
        sector=instrument.sector,
        history=history,
        session_open=instrument.session_open,
    )


@dataclass
class PriceSimulator:
    """
    Bounded random walk for synthetic OHLC prices.

    seed phase: one warm-up series per instrument (larger volatility)
    tick phase: one new point per instrument per tick (smaller volatility)

    Noise on high/low is proportional to the previous close and never
    negative, so high >= max(open, close) and low <= min(open, close).
    """
    tick_volatility: float = 0.0015
    tick_noise: float = 0.0005
    seed_volatility: float = 0.005
    seed_noise: float = 0.002
    seed_length: int = 30
    seed_discount: float = 0.95
    max_history: int = 50
    rng: Optional[random.Random] = None

    def __post_init__(self) -> None:
        if self.rng is None:
            self.rng = random.Random()

    def next_point(
        self,
        prev_close: float,
        ts: datetime,
        volatility: float,
        noise: float,
    ) -> OHLCPoint:
        change = self.rng.uniform(-volatility, volatility)
        new_close = max(PRICE_EPSILON, prev_close * (1 + change))
        open_ = prev_close

        wiggle = max(0.0, prev_close) * noise
        high = max(open_, new_close) + self.rng.uniform(0.0, wiggle)
        low = min(open_, new_close) - self.rng.uniform(0.0, wiggle)

        return OHLCPoint(timestamp=ts, open=open_, high=high, low=low, close=new_close)

    def seed_history(
        self,
        entry: CatalogEntry,
        end: Optional[datetime] = None,
        step: timedelta = timedelta(seconds=1),
    ) -> Instrument:
        """Build the warm-up series for one catalog entry, ending at `end`."""
        end = end or utcnow()
        start = end - step * (self.seed_length - 1)

        price = entry.price * self.seed_discount
        points: List[OHLCPoint] = []
        for i in range(self.seed_length):
            point = self.next_point(price, start + step * i, self.seed_volatility, self.seed_noise)
            points.append(point)
            price = point.close

        history = tuple(points[-self.max_history:])
        return Instrument(
            symbol=entry.symbol,
            name=entry.name,
            sector=entry.sector,
            history=history,
            session_open=history[0].close,
        )

    def step(self, instrument: Instrument, ts: Optional[datetime] = None) -> Instrument:
        """Advance one instrument by a single tick."""
        point = self.next_point(
            instrument.current_price,
            ts or utcnow(),
            self.tick_volatility,
            self.tick_noise,
        )
        return append_point(instrument, point, self.max_history)
