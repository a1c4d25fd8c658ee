from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from novatrade.models.account import (
    AuditEntry,
    ChatMessage,
    ConditionalOrder,
    OrderKind,
    Position,
    SupportTicket,
    TicketStatus,
    Trade,
    TradeKind,
    User,
    UserRole,
    UserStatus,
)
from novatrade.models.market import Instrument, OHLCPoint

# Plain-dict mappers for everything that goes through persistence or the API.
# Floats stay floats and datetimes become ISO-8601 strings, so a JSON round
# trip gives back equal objects.


def _ts(dt: datetime) -> str:
    return dt.isoformat()


def _parse_ts(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


def point_to_dict(p: OHLCPoint) -> Dict[str, Any]:
    return {"timestamp": _ts(p.timestamp), "open": p.open, "high": p.high, "low": p.low, "close": p.close}


def point_from_dict(d: Dict[str, Any]) -> OHLCPoint:
    return OHLCPoint(
        timestamp=_parse_ts(d["timestamp"]),
        open=float(d["open"]),
        high=float(d["high"]),
        low=float(d["low"]),
        close=float(d["close"]),
    )


def instrument_to_dict(i: Instrument, include_history: bool = True) -> Dict[str, Any]:
    out = {
        "symbol": i.symbol,
        "name": i.name,
        "sector": i.sector,
        "price": i.current_price,
        "change": i.percent_change,
        "change_amount": i.absolute_change,
        "session_open": i.session_open,
        "session_change": i.session_change_percent,
    }
    if include_history:
        out["history"] = [point_to_dict(p) for p in i.history]
    return out


def instrument_from_dict(d: Dict[str, Any]) -> Instrument:
    return Instrument(
        symbol=d["symbol"],
        name=d["name"],
        sector=d["sector"],
        history=tuple(point_from_dict(p) for p in d["history"]),
        session_open=float(d["session_open"]),
    )


def order_to_dict(o: ConditionalOrder) -> Dict[str, Any]:
    return {
        "id": o.id,
        "symbol": o.symbol,
        "type": o.kind.value,
        "trigger_price": o.trigger_price,
        "quantity": o.quantity,
        "timestamp": _ts(o.created_at),
    }


def order_from_dict(d: Dict[str, Any]) -> ConditionalOrder:
    return ConditionalOrder(
        id=d["id"],
        symbol=d["symbol"],
        kind=OrderKind(d["type"]),
        trigger_price=float(d["trigger_price"]),
        quantity=int(d["quantity"]),
        created_at=_parse_ts(d["timestamp"]),
    )


def trade_to_dict(t: Trade) -> Dict[str, Any]:
    out = {
        "id": t.id,
        "symbol": t.symbol,
        "type": t.kind.value,
        "quantity": t.quantity,
        "price": t.price,
        "timestamp": _ts(t.timestamp),
        "total_value": t.total_value,
    }
    if t.realized_pl is not None:
        out["profit_loss"] = t.realized_pl
    return out


def trade_from_dict(d: Dict[str, Any]) -> Trade:
    pl = d.get("profit_loss")
    return Trade(
        id=d["id"],
        symbol=d["symbol"],
        kind=TradeKind(d["type"]),
        quantity=int(d["quantity"]),
        price=float(d["price"]),
        timestamp=_parse_ts(d["timestamp"]),
        total_value=float(d["total_value"]),
        realized_pl=float(pl) if pl is not None else None,
    )


def user_to_dict(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "balance": u.balance,
        "role": u.role.value,
        "status": u.status.value,
        "portfolio": {
            s: {"quantity": p.quantity, "avg_buy_price": p.average_buy_price}
            for s, p in u.portfolio.items()
        },
        "active_orders": [order_to_dict(o) for o in u.active_orders],
        "trade_history": [trade_to_dict(t) for t in u.trade_history],
        "wishlist": list(u.wishlist),
        "kyc_verified": u.kyc_verified,
    }


def user_from_dict(d: Dict[str, Any]) -> User:
    # Older records may lack active_orders / wishlist.
    return User(
        id=d["id"],
        username=d["username"],
        email=d.get("email") or f"{d['username']}@test.com",
        balance=float(d["balance"]),
        role=UserRole(d.get("role", "USER")),
        status=UserStatus(d.get("status", "ACTIVE")),
        portfolio={
            s: Position(quantity=int(p["quantity"]), average_buy_price=float(p["avg_buy_price"]))
            for s, p in (d.get("portfolio") or {}).items()
        },
        active_orders=[order_from_dict(o) for o in d.get("active_orders") or []],
        trade_history=[trade_from_dict(t) for t in d.get("trade_history") or []],
        wishlist=list(d.get("wishlist") or []),
        kyc_verified=bool(d.get("kyc_verified", False)),
    )


def ticket_to_dict(t: SupportTicket) -> Dict[str, Any]:
    return {
        "id": t.id,
        "user_id": t.user_id,
        "subject": t.subject,
        "message": t.message,
        "status": t.status.value,
        "timestamp": _ts(t.timestamp),
    }


def ticket_from_dict(d: Dict[str, Any]) -> SupportTicket:
    return SupportTicket(
        id=d["id"],
        user_id=d["user_id"],
        subject=d["subject"],
        message=d["message"],
        status=TicketStatus(d["status"]),
        timestamp=_parse_ts(d["timestamp"]),
    )


def audit_to_dict(e: AuditEntry) -> Dict[str, Any]:
    return {
        "id": e.id,
        "action": e.action,
        "actor_id": e.actor_id,
        "target_id": e.target_id,
        "details": e.details,
        "timestamp": _ts(e.timestamp),
    }


def audit_from_dict(d: Dict[str, Any]) -> AuditEntry:
    return AuditEntry(
        id=d["id"],
        action=d["action"],
        actor_id=d["actor_id"],
        target_id=d.get("target_id"),
        details=d.get("details"),
        timestamp=_parse_ts(d["timestamp"]),
    )


def chat_to_dict(m: ChatMessage) -> Dict[str, Any]:
    return {
        "id": m.id,
        "sender": m.sender,
        "role": m.role.value,
        "text": m.text,
        "timestamp": _ts(m.timestamp),
    }


def chat_from_dict(d: Dict[str, Any]) -> ChatMessage:
    return ChatMessage(
        id=d["id"],
        sender=d["sender"],
        role=UserRole(d["role"]),
        text=d["text"],
        timestamp=_parse_ts(d["timestamp"]),
    )
