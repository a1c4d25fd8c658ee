from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class OrderKind(str, Enum):
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


class TradeKind(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    SL_TRIGGER = "SL_TRIGGER"
    TP_TRIGGER = "TP_TRIGGER"


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    BANNED = "BANNED"


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


# Trade kind produced when a conditional order of a given kind fires.
TRIGGER_TRADE_KIND = {
    OrderKind.STOP_LOSS: TradeKind.SL_TRIGGER,
    OrderKind.TAKE_PROFIT: TradeKind.TP_TRIGGER,
}


@dataclass(frozen=True)
class Position:
    quantity: int
    average_buy_price: float


@dataclass(frozen=True)
class ConditionalOrder:
    """
    Resting stop-loss / take-profit instruction.

    Orders are never edited; cancelling or triggering removes them.
    """
    id: str
    symbol: str
    kind: OrderKind
    trigger_price: float
    quantity: int
    created_at: datetime

    def is_triggered(self, price: float) -> bool:
        if self.kind == OrderKind.STOP_LOSS:
            return price <= self.trigger_price
        return price >= self.trigger_price


@dataclass(frozen=True)
class Trade:
    """
    Immutable ledger entry.

    realized_pl is set only for closing trades (SELL, SL_TRIGGER, TP_TRIGGER).
    """
    id: str
    symbol: str
    kind: TradeKind
    quantity: int
    price: float
    timestamp: datetime
    total_value: float
    realized_pl: Optional[float] = None

    @property
    def is_closing(self) -> bool:
        return self.kind != TradeKind.BUY


@dataclass
class User:
    """
    Aggregate root for one trader.

    Trading functions never mutate a User in place; they build a new one so a
    whole trading action lands as a single snapshot.
    """
    id: str
    username: str
    email: str
    balance: float
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    portfolio: Dict[str, Position] = field(default_factory=dict)
    active_orders: List[ConditionalOrder] = field(default_factory=list)
    trade_history: List[Trade] = field(default_factory=list)
    wishlist: List[str] = field(default_factory=list)
    kyc_verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def holding(self, symbol: str) -> int:
        position = self.portfolio.get(symbol)
        return position.quantity if position else 0


@dataclass(frozen=True)
class SupportTicket:
    id: str
    user_id: str
    subject: str
    message: str
    status: TicketStatus
    timestamp: datetime


@dataclass(frozen=True)
class AuditEntry:
    id: str
    action: str
    actor_id: str
    timestamp: datetime
    target_id: Optional[str] = None
    details: Optional[str] = None


@dataclass(frozen=True)
class ChatMessage:
    id: str
    sender: str
    role: UserRole
    text: str
    timestamp: datetime
