from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple


@dataclass(frozen=True)
class OHLCPoint:
    """
    One candle of the simulated price series.

    timestamp: when the point was produced (UTC)
    open/high/low/close: prices for that tick
    high >= max(open, close) and low <= min(open, close) always hold.
    """
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float


@dataclass(frozen=True)
class Instrument:
    """
    A tradable symbol and its bounded rolling history.

    Instances are never mutated: every tick produces a new Instrument.

    current_price: always history[-1].close
    percent_change / absolute_change: relative to history[0].close, so the
      baseline moves with the rolling window
    session_open: close of the first seed point, pinned for the process lifetime
    """
    symbol: str
    name: str
    sector: str
    history: Tuple[OHLCPoint, ...]
    session_open: float
    current_price: float = field(init=False)
    percent_change: float = field(init=False)
    absolute_change: float = field(init=False)

    def __post_init__(self) -> None:
        if not self.history:
            raise ValueError(f"Instrument {self.symbol} needs at least one history point")

        last = self.history[-1].close
        first = self.history[0].close
        object.__setattr__(self, "current_price", last)
        object.__setattr__(self, "absolute_change", last - first)
        object.__setattr__(
            self, "percent_change", ((last - first) / first) * 100 if first else 0.0
        )

    @property
    def session_change_percent(self) -> float:
        if not self.session_open:
            return 0.0
        return ((self.current_price - self.session_open) / self.session_open) * 100
