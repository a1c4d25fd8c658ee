from __future__ import annotations

import asyncio
import logging
import traceback
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from novatrade.config import Settings
from novatrade.market.catalog import DEFAULT_CATALOG, CatalogEntry
from novatrade.market.session import MarketSession
from novatrade.market.simulator import PriceSimulator
from novatrade.market.store import MarketStore
from novatrade.models.account import (
    ConditionalOrder,
    Trade,
    User,
    UserRole,
    UserStatus,
)
from novatrade.models.market import Instrument
from novatrade.storage.base import Repository
from novatrade.trading import execution
from novatrade.trading.errors import (
    AccountSuspended,
    MarketClosed,
    OrderNotFound,
    PermissionDenied,
    UnknownSymbol,
    UserNotFound,
)
from novatrade.trading.orders import evaluate_orders

log = logging.getLogger("market_engine")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TickEvent:
    """
    One scheduler turn, published to subscribers after state is swapped.

    fills: (user_id, trade) for every conditional order that executed
    stale: (user_id, order) for every triggered order that was dropped
    """
    timestamp: datetime
    instruments: Tuple[Instrument, ...]
    prices: Dict[str, float]
    fills: Tuple[Tuple[str, Trade], ...] = ()
    stale: Tuple[Tuple[str, ConditionalOrder], ...] = ()


TickListener = Callable[[TickEvent], None]


@dataclass
class MarketEngine:
    """
    Single writer for market and account state.

    A scheduler turn (step) runs: simulate every instrument -> evaluate every
    eligible user's resting orders against the new prices -> swap in one
    merged snapshot per user. Nothing in step() awaits, so no other coroutine
    can observe a half-applied tick. Persistence and audit writes happen
    afterwards in run_tick().
    """
    store: MarketStore
    simulator: PriceSimulator
    session: MarketSession
    repository: Repository
    starting_balance: float = 100000.0
    evaluate_all_users: bool = True
    users: Dict[str, User] = field(default_factory=dict)
    active_sessions: Set[str] = field(default_factory=set)
    _listeners: List[TickListener] = field(default_factory=list)
    _save_lock: Optional[asyncio.Lock] = None
    _login_lock: Optional[asyncio.Lock] = None

    @classmethod
    def from_settings(cls, settings: Settings, repository: Repository, rng=None) -> "MarketEngine":
        simulator = PriceSimulator(
            tick_volatility=settings.tick_volatility,
            seed_volatility=settings.seed_volatility,
            seed_length=settings.seed_length,
            max_history=settings.history_cap,
            rng=rng,
        )
        session = MarketSession(
            tz=settings.market_timezone,
            open_hour=settings.market_open_hour,
            close_hour=settings.market_close_hour,
        )
        return cls(
            store=MarketStore(max_history=settings.history_cap),
            simulator=simulator,
            session=session,
            repository=repository,
            starting_balance=settings.starting_balance,
            evaluate_all_users=settings.evaluate_all_users,
        )

    # -------------------------
    # Setup
    # -------------------------
    def seed(self, catalog: Iterable[CatalogEntry] = DEFAULT_CATALOG, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        self.store.load(self.simulator.seed_history(entry, end=now) for entry in catalog)
        log.info("Seeded %d instruments", len(self.store.instruments))

    async def load_users(self) -> int:
        """Pull every persisted user into memory. Failures leave the engine empty but running."""
        try:
            loaded = await self.repository.get_all_users()
        except Exception as e:
            log.error("Loading users failed error=%s", repr(e))
            log.error(traceback.format_exc())
            return 0

        for user in loaded:
            self.users[user.id] = user
        log.info("Loaded %d users", len(loaded))
        return len(loaded)

    def subscribe(self, listener: TickListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------
    # Scheduler turn
    # -------------------------
    def eligible_users(self) -> List[str]:
        if self.evaluate_all_users:
            return list(self.users)
        return [uid for uid in self.users if uid in self.active_sessions]

    def step(self, now: Optional[datetime] = None) -> Optional[TickEvent]:
        """Run one tick if the market is open. Returns None when closed."""
        if not self.session.is_open:
            return None

        now = now or utcnow()
        prices = self.store.advance(self.simulator, now)

        fills: List[Tuple[str, Trade]] = []
        stale: List[Tuple[str, ConditionalOrder]] = []
        updated: Dict[str, User] = {}

        for uid in self.eligible_users():
            result = evaluate_orders(self.users[uid], prices, now=now)
            if not result.changed:
                continue
            updated[uid] = result.user
            fills.extend((uid, trade) for trade in result.trades)
            stale.extend((uid, order) for order in result.stale)

        # one merged swap for the whole tick
        self.users.update(updated)

        return TickEvent(
            timestamp=now,
            instruments=self.store.snapshot(),
            prices=prices,
            fills=tuple(fills),
            stale=tuple(stale),
        )

    async def run_tick(self, now: Optional[datetime] = None) -> Optional[TickEvent]:
        event = self.step(now)
        if event is None:
            return None

        self._publish(event)

        for uid, trade in event.fills:
            log.info(
                "Order executed user=%s %s %s qty=%d @ %.2f pl=%.2f",
                uid,
                trade.kind.value,
                trade.symbol,
                trade.quantity,
                trade.price,
                trade.realized_pl or 0.0,
            )
            await self.audit(trade.kind.value, uid, trade.symbol, f"Auto execution @ {trade.price:.2f}")

        for uid, order in event.stale:
            await self.audit(
                "STALE_ORDER",
                uid,
                order.symbol,
                f"{order.kind.value} {order.id} dropped: position below {order.quantity}",
            )

        changed = {uid for uid, _ in event.fills} | {uid for uid, _ in event.stale}
        await self.persist(changed)
        return event

    def _publish(self, event: TickEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                log.error("Tick listener failed error=%s", repr(e))
                log.error(traceback.format_exc())

    # -------------------------
    # Persistence / audit
    # -------------------------
    def _lock(self, name: str) -> asyncio.Lock:
        # created on first use, inside the running loop
        lock = getattr(self, name)
        if lock is None:
            lock = asyncio.Lock()
            setattr(self, name, lock)
        return lock

    async def persist(self, user_ids: Iterable[str]) -> None:
        """Write the latest in-memory snapshot of each user. Failures are logged, not raised."""
        async with self._lock("_save_lock"):
            for uid in user_ids:
                user = self.users.get(uid)
                if user is None:
                    continue
                try:
                    await self.repository.save_user(user)
                except Exception as e:
                    log.error("Saving user failed user=%s error=%s", uid, repr(e))
                    log.error(traceback.format_exc())

    async def audit(
        self,
        action: str,
        actor_id: str,
        target_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        try:
            await self.repository.log_activity(action, actor_id, target_id, details)
        except Exception as e:
            log.error("Audit write failed action=%s actor=%s error=%s", action, actor_id, repr(e))

    # -------------------------
    # Accounts
    # -------------------------
    def get_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFound(f"user {user_id} not found")
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    async def login(self, username: str, is_admin: bool = False, email: Optional[str] = None) -> User:
        """
        Get-or-create a user by username and mark its session active.
        Logins are serialized so concurrent first logins share one account.
        """
        async with self._lock("_login_lock"):
            user = self.find_by_username(username)
            if user is None:
                try:
                    user = await self.repository.get_user(username)
                except Exception as e:
                    log.error("Loading user failed username=%s error=%s", username, repr(e))
                    user = None

            if user is None:
                user = User(
                    id=uuid.uuid4().hex,
                    username=username,
                    email=email or f"{username}@test.com",
                    balance=self.starting_balance,
                    role=UserRole.ADMIN if is_admin else UserRole.USER,
                )
                log.info("Created user username=%s role=%s", username, user.role.value)

            if user.status == UserStatus.BANNED:
                raise AccountSuspended(f"user {username} is banned")

            self.users[user.id] = user
            self.active_sessions.add(user.id)
            await self.persist([user.id])
            return user

    def logout(self, user_id: str) -> None:
        self.active_sessions.discard(user_id)

    def require_admin(self, actor_id: str) -> User:
        actor = self.get_user(actor_id)
        if not actor.is_admin:
            raise PermissionDenied(f"user {actor_id} is not an admin")
        return actor

    def _require_tradable(self, user: User) -> None:
        if user.status == UserStatus.BANNED:
            raise AccountSuspended(f"user {user.username} is banned")
        if not self.session.is_open and not user.is_admin:
            raise MarketClosed("market is closed")

    def price_of(self, symbol: str) -> float:
        instrument = self.store.get(symbol)
        if instrument is None:
            raise UnknownSymbol(f"unknown symbol {symbol}")
        return instrument.current_price

    # -------------------------
    # Manual trading
    # -------------------------
    async def buy(
        self,
        user_id: str,
        symbol: str,
        quantity: int,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
    ) -> Trade:
        user = self.get_user(user_id)
        self._require_tradable(user)
        symbol = symbol.upper()
        price = self.price_of(symbol)

        updated, trade = execution.execute_buy(user, symbol, quantity, price, stop_loss, take_profit)
        self.users[user_id] = updated
        log.info("BUY user=%s %s qty=%d @ %.2f", user_id, symbol, trade.quantity, price)

        await self.persist([user_id])
        return trade

    async def sell(self, user_id: str, symbol: str, quantity: int) -> Trade:
        user = self.get_user(user_id)
        self._require_tradable(user)
        symbol = symbol.upper()
        price = self.price_of(symbol)

        updated, trade = execution.execute_sell(user, symbol, quantity, price)
        self.users[user_id] = updated
        log.info(
            "SELL user=%s %s qty=%d @ %.2f pl=%.2f", user_id, symbol, trade.quantity, price, trade.realized_pl
        )

        await self.persist([user_id])
        return trade

    async def cancel_order(self, user_id: str, order_id: str) -> ConditionalOrder:
        user = self.get_user(user_id)
        updated, removed = execution.cancel_order(user, order_id)
        if removed is None:
            raise OrderNotFound(f"order {order_id} not found")

        self.users[user_id] = updated
        await self.persist([user_id])
        return removed

    async def toggle_wishlist(self, user_id: str, symbol: str) -> List[str]:
        user = self.get_user(user_id)
        symbol = symbol.upper()
        if self.store.get(symbol) is None:
            raise UnknownSymbol(f"unknown symbol {symbol}")

        if symbol in user.wishlist:
            wishlist = [s for s in user.wishlist if s != symbol]
        else:
            wishlist = user.wishlist + [symbol]

        self.users[user_id] = replace(user, wishlist=wishlist)
        await self.persist([user_id])
        return wishlist

    async def reset_account(self, user_id: str) -> User:
        user = self.get_user(user_id)
        updated = replace(
            user,
            balance=self.starting_balance,
            portfolio={},
            active_orders=[],
            trade_history=[],
        )
        self.users[user_id] = updated
        await self.audit("RESET_ACCOUNT", user_id, user_id)
        await self.persist([user_id])
        return updated

    # -------------------------
    # Admin
    # -------------------------
    async def set_override(self, actor_id: str, enabled: bool) -> bool:
        self.require_admin(actor_id)
        is_open = self.session.set_override(enabled)
        await self.audit("MARKET_OVERRIDE", actor_id, details=f"override={enabled} open={is_open}")
        return is_open

    async def set_price(self, actor_id: str, symbol: str, price: float) -> Instrument:
        self.require_admin(actor_id)
        updated = self.store.set_price(symbol, price)
        if updated is None:
            raise UnknownSymbol(f"unknown symbol {symbol}")
        await self.audit("SET_PRICE", actor_id, updated.symbol, f"price={updated.current_price:.2f}")
        return updated

    async def set_user_status(self, actor_id: str, user_id: str, status: UserStatus) -> User:
        self.require_admin(actor_id)
        user = replace(self.get_user(user_id), status=status)
        self.users[user_id] = user
        if status == UserStatus.BANNED:
            self.active_sessions.discard(user_id)
        await self.audit("USER_STATUS", actor_id, user_id, status.value)
        await self.persist([user_id])
        return user

    async def delete_user(self, actor_id: str, user_id: str) -> None:
        self.require_admin(actor_id)
        self.get_user(user_id)
        self.users.pop(user_id, None)
        self.active_sessions.discard(user_id)
        # waits out any save of this user that is already in flight
        async with self._lock("_save_lock"):
            try:
                await self.repository.delete_user(user_id)
            except Exception as e:
                log.error("Deleting user failed user=%s error=%s", user_id, repr(e))
        await self.audit("DELETE_USER", actor_id, user_id)

    def apply_oracle_prices(self, prices: Dict[str, float], sources: List[Dict[str, str]]) -> List[str]:
        """Apply a merged oracle result in one synchronous swap."""
        applied = self.store.apply_prices(prices)
        if sources:
            self.store.sources = sources[:5]
        return applied
