"""SQLite repository: one table per record type, JSON payload plus indexed lookup columns."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sqlite3
import threading
from typing import Any, Callable, List, Optional

from novatrade.models.account import AuditEntry, ChatMessage, SupportTicket, User
from novatrade.storage import codec
from novatrade.storage.base import Repository
from novatrade.trading.errors import PersistenceFailure

log = logging.getLogger("sqlite_repository")

SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL UNIQUE,
        payload TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS tickets (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        payload TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS logs (
        id TEXT PRIMARY KEY,
        timestamp TEXT NOT NULL,
        payload TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS chat (
        id TEXT PRIMARY KEY,
        timestamp TEXT NOT NULL,
        payload TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_tickets_user_id ON tickets(user_id);
    CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs(timestamp);
    CREATE INDEX IF NOT EXISTS idx_chat_timestamp ON chat(timestamp);
"""


class SqliteRepository(Repository):
    """
    File-backed repository.

    A single connection is shared behind a lock; every call runs in a worker
    thread so the event loop (and the tick scheduler) never blocks on disk.
    Any sqlite3 error surfaces as PersistenceFailure.
    """

    def __init__(self, db_path: str):
        self._db_path = db_path
        if db_path != ":memory:":
            parent = os.path.dirname(db_path)
            if parent:
                os.makedirs(parent, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._conn.executescript(SCHEMA)
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    async def _run(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        def call():
            with self._lock:
                try:
                    result = fn(self._conn)
                    self._conn.commit()
                    return result
                except sqlite3.Error as e:
                    self._conn.rollback()
                    raise PersistenceFailure(f"sqlite error on {self._db_path}: {e}") from e

        return await asyncio.to_thread(call)

    # --- Users ---

    async def get_user(self, username: str) -> Optional[User]:
        row = await self._run(
            lambda c: c.execute("SELECT payload FROM users WHERE username=?", (username,)).fetchone()
        )
        return codec.user_from_dict(json.loads(row["payload"])) if row else None

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        row = await self._run(
            lambda c: c.execute("SELECT payload FROM users WHERE id=?", (user_id,)).fetchone()
        )
        return codec.user_from_dict(json.loads(row["payload"])) if row else None

    async def save_user(self, user: User) -> None:
        payload = json.dumps(codec.user_to_dict(user))
        await self._run(
            lambda c: c.execute(
                """INSERT INTO users (id, username, payload) VALUES (?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET username=excluded.username, payload=excluded.payload""",
                (user.id, user.username, payload),
            )
        )

    async def delete_user(self, user_id: str) -> None:
        await self._run(lambda c: c.execute("DELETE FROM users WHERE id=?", (user_id,)))

    async def get_all_users(self) -> List[User]:
        rows = await self._run(lambda c: c.execute("SELECT payload FROM users ORDER BY rowid").fetchall())
        return [codec.user_from_dict(json.loads(r["payload"])) for r in rows]

    # --- Tickets ---

    async def create_ticket(self, ticket: SupportTicket) -> None:
        payload = json.dumps(codec.ticket_to_dict(ticket))
        await self._run(
            lambda c: c.execute(
                "INSERT INTO tickets (id, user_id, timestamp, payload) VALUES (?, ?, ?, ?)",
                (ticket.id, ticket.user_id, ticket.timestamp.isoformat(), payload),
            )
        )

    async def update_ticket(self, ticket: SupportTicket) -> None:
        payload = json.dumps(codec.ticket_to_dict(ticket))
        await self._run(
            lambda c: c.execute(
                """INSERT INTO tickets (id, user_id, timestamp, payload) VALUES (?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET payload=excluded.payload""",
                (ticket.id, ticket.user_id, ticket.timestamp.isoformat(), payload),
            )
        )

    async def get_all_tickets(self) -> List[SupportTicket]:
        rows = await self._run(
            lambda c: c.execute("SELECT payload FROM tickets ORDER BY rowid DESC").fetchall()
        )
        return [codec.ticket_from_dict(json.loads(r["payload"])) for r in rows]

    async def get_tickets_for_user(self, user_id: str) -> List[SupportTicket]:
        rows = await self._run(
            lambda c: c.execute(
                "SELECT payload FROM tickets WHERE user_id=? ORDER BY rowid DESC", (user_id,)
            ).fetchall()
        )
        return [codec.ticket_from_dict(json.loads(r["payload"])) for r in rows]

    # --- Audit log ---

    async def append_log(self, entry: AuditEntry) -> None:
        payload = json.dumps(codec.audit_to_dict(entry))
        await self._run(
            lambda c: c.execute(
                "INSERT INTO logs (id, timestamp, payload) VALUES (?, ?, ?)",
                (entry.id, entry.timestamp.isoformat(), payload),
            )
        )

    async def get_logs(self) -> List[AuditEntry]:
        rows = await self._run(
            lambda c: c.execute("SELECT payload FROM logs ORDER BY timestamp DESC, rowid DESC").fetchall()
        )
        return [codec.audit_from_dict(json.loads(r["payload"])) for r in rows]

    # --- Chat ---

    async def save_chat_message(self, message: ChatMessage) -> None:
        payload = json.dumps(codec.chat_to_dict(message))
        await self._run(
            lambda c: c.execute(
                "INSERT INTO chat (id, timestamp, payload) VALUES (?, ?, ?)",
                (message.id, message.timestamp.isoformat(), payload),
            )
        )

    async def get_chat_history(self, limit: int = 50) -> List[ChatMessage]:
        rows = await self._run(
            lambda c: c.execute(
                "SELECT payload FROM chat ORDER BY timestamp DESC, rowid DESC LIMIT ?", (limit,)
            ).fetchall()
        )
        return [codec.chat_from_dict(json.loads(r["payload"])) for r in reversed(rows)]
