from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

log = logging.getLogger("market_session")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketSession:
    """
    Market session clock.

    OPEN when open_hour <= local hour < close_hour, or when the operator
    override is on. Otherwise CLOSED.

    evaluate() is called by the clock loop every second; set_override()
    re-evaluates immediately so callers never wait for the next clock tick.
    """

    def __init__(
        self,
        tz: str = "Asia/Kolkata",
        open_hour: int = 9,
        close_hour: int = 15,
        now_fn: Callable[[], datetime] = utcnow,
    ):
        self.tz = ZoneInfo(tz)
        self.open_hour = open_hour
        self.close_hour = close_hour
        self.now_fn = now_fn
        self.override = False
        self.is_open = False
        self.evaluate()

    def local_now(self, now: Optional[datetime] = None) -> datetime:
        now = now or self.now_fn()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz)

    def within_hours(self, now: Optional[datetime] = None) -> bool:
        hour = self.local_now(now).hour
        return self.open_hour <= hour < self.close_hour

    def evaluate(self, now: Optional[datetime] = None) -> bool:
        """Recompute is_open. Logs OPEN/CLOSED transitions."""
        was_open = self.is_open
        self.is_open = self.within_hours(now) or self.override
        if self.is_open != was_open:
            log.info(
                "Market %s (override=%s, local=%s)",
                "OPEN" if self.is_open else "CLOSED",
                self.override,
                self.local_now(now).strftime("%H:%M:%S"),
            )
        return self.is_open

    def set_override(self, enabled: bool) -> bool:
        self.override = bool(enabled)
        log.warning("Market override set to %s", self.override)
        return self.evaluate()

    def toggle_override(self) -> bool:
        return self.set_override(not self.override)

    def status(self) -> dict:
        local = self.local_now()
        return {
            "is_open": self.is_open,
            "override": self.override,
            "local_time": local.isoformat(),
            "timezone": str(self.tz),
            "open_hour": self.open_hour,
            "close_hour": self.close_hour,
        }
