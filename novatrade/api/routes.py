from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Query, WebSocket

from novatrade.engine import TickEvent
from novatrade.jobs.oracle_sync import sync_market_prices
from novatrade.logging_setup import recent_records
from novatrade.models.account import ChatMessage, SupportTicket, TicketStatus
from novatrade.models.api import (
    BuyRequest,
    ChatRequest,
    LoginRequest,
    PriceUpdate,
    SellRequest,
    StatusUpdate,
    TicketRequest,
)
from novatrade.state import engine, oracle, repository, settings
from novatrade.storage import codec
from novatrade.trading.analytics import summarize
from novatrade.trading.errors import TicketNotFound, UnknownSymbol

router = APIRouter()
log = logging.getLogger("api")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def market_payload(include_history: bool = True) -> dict:
    return {
        "is_open": engine.session.is_open,
        "last_updated": engine.store.last_updated.isoformat() if engine.store.last_updated else None,
        "sources": engine.store.sources,
        "stocks": [codec.instrument_to_dict(i, include_history) for i in engine.store.snapshot()],
    }


# -------------------------
# Market
# -------------------------
@router.get("/market")
def market(history: bool = Query(True, description="Include OHLC history per stock")):
    return market_payload(include_history=history)


@router.get("/market/{symbol}")
def market_symbol(symbol: str):
    instrument = engine.store.get(symbol)
    if instrument is None:
        raise UnknownSymbol(f"unknown symbol {symbol}")
    return codec.instrument_to_dict(instrument)


@router.get("/session")
def session_status():
    return engine.session.status()


@router.post("/session/override")
async def session_override(
    actor_id: str = Query(..., description="Admin user id"),
    enabled: bool = Query(..., description="Force the market open"),
):
    is_open = await engine.set_override(actor_id, enabled)
    return {"ok": True, "override": engine.session.override, "is_open": is_open}


# -------------------------
# Users / trading
# -------------------------
@router.post("/users/login")
async def login(req: LoginRequest):
    user = await engine.login(req.username.strip(), is_admin=req.is_admin, email=req.email)
    return codec.user_to_dict(user)


@router.get("/users/{user_id}")
def get_user(user_id: str):
    return codec.user_to_dict(engine.get_user(user_id))


@router.post("/users/{user_id}/logout")
def logout(user_id: str):
    engine.logout(user_id)
    return {"ok": True}


@router.post("/users/{user_id}/buy")
async def buy(user_id: str, req: BuyRequest):
    trade = await engine.buy(user_id, req.symbol, req.quantity, req.stop_loss, req.take_profit)
    return {"trade": codec.trade_to_dict(trade), "user": codec.user_to_dict(engine.get_user(user_id))}


@router.post("/users/{user_id}/sell")
async def sell(user_id: str, req: SellRequest):
    trade = await engine.sell(user_id, req.symbol, req.quantity)
    return {"trade": codec.trade_to_dict(trade), "user": codec.user_to_dict(engine.get_user(user_id))}


@router.delete("/users/{user_id}/orders/{order_id}")
async def cancel_order(user_id: str, order_id: str):
    order = await engine.cancel_order(user_id, order_id)
    return {"ok": True, "cancelled": codec.order_to_dict(order)}


@router.post("/users/{user_id}/wishlist/{symbol}")
async def toggle_wishlist(user_id: str, symbol: str):
    wishlist = await engine.toggle_wishlist(user_id, symbol)
    return {"wishlist": wishlist}


@router.post("/users/{user_id}/reset")
async def reset_account(user_id: str):
    user = await engine.reset_account(user_id)
    return codec.user_to_dict(user)


@router.get("/users/{user_id}/analytics")
def analytics(user_id: str):
    return summarize(engine.get_user(user_id), engine.store.prices())


@router.post("/users/{user_id}/tickets")
async def create_ticket(user_id: str, req: TicketRequest):
    engine.get_user(user_id)
    ticket = SupportTicket(
        id=f"TKT-{uuid.uuid4().hex[:12]}",
        user_id=user_id,
        subject=req.subject,
        message=req.message,
        status=TicketStatus.OPEN,
        timestamp=utcnow(),
    )
    await repository.create_ticket(ticket)
    return codec.ticket_to_dict(ticket)


@router.get("/users/{user_id}/tickets")
async def user_tickets(user_id: str):
    return [codec.ticket_to_dict(t) for t in await repository.get_tickets_for_user(user_id)]


# -------------------------
# Admin
# -------------------------
@router.get("/admin/users")
def admin_users(actor_id: str = Query(...)):
    engine.require_admin(actor_id)
    return [codec.user_to_dict(u) for u in engine.users.values()]


@router.patch("/admin/users/{user_id}/status")
async def admin_user_status(user_id: str, req: StatusUpdate):
    user = await engine.set_user_status(req.actor_id, user_id, req.status)
    return codec.user_to_dict(user)


@router.delete("/admin/users/{user_id}")
async def admin_delete_user(user_id: str, actor_id: str = Query(...)):
    await engine.delete_user(actor_id, user_id)
    return {"ok": True}


@router.post("/admin/prices/{symbol}")
async def admin_set_price(symbol: str, req: PriceUpdate):
    instrument = await engine.set_price(req.actor_id, symbol, req.price)
    return codec.instrument_to_dict(instrument, include_history=False)


@router.post("/admin/sync")
async def admin_sync(actor_id: str = Query(...)):
    """
    Overlay oracle prices on the simulated market.
    Batches that fail are skipped; the rest still apply.
    """
    engine.require_admin(actor_id)
    report = await sync_market_prices(
        engine,
        oracle,
        batch_size=settings.oracle_batch_size,
        timeout_s=settings.oracle_timeout_seconds,
    )
    return {
        "ok": True,
        "requested": report.requested,
        "applied": report.applied,
        "failed_batches": report.failed_batches,
        "sources": report.sources,
    }


@router.get("/admin/logs")
async def admin_logs(
    actor_id: str = Query(...),
    source: str = Query("audit", description="audit | process"),
    count: int = Query(100, ge=1, le=500),
):
    engine.require_admin(actor_id)
    if source == "process":
        return {"records": recent_records.get_records(count)}
    logs = await repository.get_logs()
    return {"records": [codec.audit_to_dict(e) for e in logs[:count]]}


@router.get("/admin/tickets")
async def admin_tickets(actor_id: str = Query(...)):
    engine.require_admin(actor_id)
    return [codec.ticket_to_dict(t) for t in await repository.get_all_tickets()]


@router.post("/admin/tickets/{ticket_id}/resolve")
async def admin_resolve_ticket(ticket_id: str, actor_id: str = Query(...)):
    engine.require_admin(actor_id)
    ticket = next((t for t in await repository.get_all_tickets() if t.id == ticket_id), None)
    if ticket is None:
        raise TicketNotFound(f"ticket {ticket_id} not found")

    resolved = SupportTicket(
        id=ticket.id,
        user_id=ticket.user_id,
        subject=ticket.subject,
        message=ticket.message,
        status=TicketStatus.RESOLVED,
        timestamp=ticket.timestamp,
    )
    await repository.update_ticket(resolved)
    await engine.audit("RESOLVE_TICKET", actor_id, ticket_id)
    return codec.ticket_to_dict(resolved)


# -------------------------
# Community chat
# -------------------------
@router.get("/chat")
async def chat_history(limit: int = Query(50, ge=1, le=500)):
    return [codec.chat_to_dict(m) for m in await repository.get_chat_history(limit)]


@router.post("/chat")
async def chat_post(req: ChatRequest):
    user = engine.get_user(req.user_id)
    message = ChatMessage(
        id=f"MSG-{uuid.uuid4().hex[:12]}",
        sender=user.username,
        role=user.role,
        text=req.text,
        timestamp=utcnow(),
    )
    await repository.save_chat_message(message)
    return codec.chat_to_dict(message)


# -------------------------
# Live feed
# -------------------------
def tick_payload(event: TickEvent) -> dict:
    return {
        "timestamp": event.timestamp.isoformat(),
        "stocks": [
            {
                **codec.instrument_to_dict(i, include_history=False),
                "last": codec.point_to_dict(i.history[-1]),
            }
            for i in event.instruments
        ],
        "fills": [{"user_id": uid, **codec.trade_to_dict(t)} for uid, t in event.fills],
    }


@router.websocket("/ws/ticks")
async def ws_ticks(websocket: WebSocket, user_id: Optional[str] = None):
    """
    Streams one JSON message per tick.
    With user_id, fills are filtered down to that user's trades.
    """
    queue: asyncio.Queue = asyncio.Queue(maxsize=100)

    def on_tick(event: TickEvent) -> None:
        if queue.full():
            queue.get_nowait()  # slow consumer: drop the oldest tick
        queue.put_nowait(event)

    async def send_ticks() -> None:
        while True:
            event = await queue.get()
            payload = tick_payload(event)
            if user_id is not None:
                payload["fills"] = [f for f in payload["fills"] if f["user_id"] == user_id]
            await websocket.send_json(payload)

    async def wait_disconnect() -> None:
        # client messages are ignored; only the close matters
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    unsubscribe = engine.subscribe(on_tick)
    tasks = []
    try:
        await websocket.accept()
        tasks = [asyncio.ensure_future(send_ticks()), asyncio.ensure_future(wait_disconnect())]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                log.info("Tick feed closed user_id=%s error=%s", user_id, repr(task.exception()))
    finally:
        for task in tasks:
            task.cancel()
        unsubscribe()
        await asyncio.gather(*tasks, return_exceptions=True)
