from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class OracleQuote:
    """
    Best-effort answer from a price oracle.

    prices: symbol -> price; symbols missing here simply get no update
    sources: provenance links [{"title": ..., "uri": ...}]
    """
    prices: Dict[str, float] = field(default_factory=dict)
    sources: List[Dict[str, str]] = field(default_factory=list)


class PriceOracle(ABC):
    """
    Oracle contract (interface).

    Any oracle must implement:
    - fetch_prices(): latest prices for one batch of symbols

    Implementations raise ExternalSyncFailure when the batch fails; callers
    are expected to chunk their symbol lists.
    """

    @abstractmethod
    async def fetch_prices(self, symbols: List[str]) -> OracleQuote:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class NullOracle(PriceOracle):
    """Oracle used when no external price source is configured. Never updates anything."""

    async def fetch_prices(self, symbols: List[str]) -> OracleQuote:
        return OracleQuote()
