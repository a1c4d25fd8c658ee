from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from novatrade.market.simulator import PRICE_EPSILON, PriceSimulator, append_point
from novatrade.models.market import Instrument, OHLCPoint


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MarketStore:
    """
    In-memory instrument storage, owned by the market engine.

    instruments[symbol] -> latest Instrument (frozen; replaced on every update)
    last_updated        -> when any instrument was last replaced
    sources             -> provenance of the last oracle sync (max 5)

    Readers receive the frozen Instrument objects themselves or a tuple
    snapshot; there is no way to mutate market state except through the
    methods below.
    """
    max_history: int = 50
    instruments: Dict[str, Instrument] = field(default_factory=dict)
    last_updated: Optional[datetime] = None
    sources: List[Dict[str, str]] = field(default_factory=list)

    def touch(self) -> None:
        self.last_updated = utcnow()

    def load(self, instruments: Iterable[Instrument]) -> None:
        """Replace the whole market in one shot (used at startup)."""
        self.instruments = {i.symbol: i for i in instruments}
        self.touch()

    def get(self, symbol: str) -> Optional[Instrument]:
        return self.instruments.get(symbol.upper())

    def snapshot(self) -> Tuple[Instrument, ...]:
        return tuple(self.instruments.values())

    def prices(self) -> Dict[str, float]:
        return {s: i.current_price for s, i in self.instruments.items()}

    def symbols(self) -> List[str]:
        return list(self.instruments)

    def advance(self, simulator: PriceSimulator, ts: Optional[datetime] = None) -> Dict[str, float]:
        """
        Step every instrument once and swap the whole mapping at the end.
        Returns the new price map.
        """
        ts = ts or utcnow()
        self.instruments = {s: simulator.step(i, ts) for s, i in self.instruments.items()}
        self.touch()
        return self.prices()

    def set_price(self, symbol: str, price: float, ts: Optional[datetime] = None) -> Optional[Instrument]:
        """
        Append a flat point (open == high == low == close == price).
        Used by admin overrides and oracle syncs. Returns None for unknown symbols.
        """
        current = self.get(symbol)
        if current is None:
            return None

        price = max(PRICE_EPSILON, float(price))
        point = OHLCPoint(timestamp=ts or utcnow(), open=price, high=price, low=price, close=price)
        updated = append_point(current, point, self.max_history)
        self.instruments[current.symbol] = updated
        self.touch()
        return updated

    def apply_prices(self, updates: Dict[str, float], ts: Optional[datetime] = None) -> List[str]:
        """Apply many flat updates at once. Returns the symbols that were applied."""
        ts = ts or utcnow()
        applied: List[str] = []
        for symbol, price in updates.items():
            if self.set_price(symbol, price, ts) is not None:
                applied.append(symbol.upper())
        return applied
