from __future__ import annotations

import copy
from typing import Dict, List, Optional

from novatrade.models.account import AuditEntry, ChatMessage, SupportTicket, User
from novatrade.storage.base import Repository


class InMemoryRepository(Repository):
    """
    Dict-backed repository for tests and single-process runs.

    Users are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.tickets: Dict[str, SupportTicket] = {}
        self.logs: List[AuditEntry] = []
        self.chat: List[ChatMessage] = []

    async def get_user(self, username: str) -> Optional[User]:
        for user in self.users.values():
            if user.username == username:
                return copy.deepcopy(user)
        return None

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def save_user(self, user: User) -> None:
        self.users[user.id] = copy.deepcopy(user)

    async def delete_user(self, user_id: str) -> None:
        self.users.pop(user_id, None)

    async def get_all_users(self) -> List[User]:
        return [copy.deepcopy(u) for u in self.users.values()]

    async def create_ticket(self, ticket: SupportTicket) -> None:
        self.tickets[ticket.id] = ticket

    async def update_ticket(self, ticket: SupportTicket) -> None:
        self.tickets[ticket.id] = ticket

    async def get_all_tickets(self) -> List[SupportTicket]:
        return list(reversed(list(self.tickets.values())))

    async def get_tickets_for_user(self, user_id: str) -> List[SupportTicket]:
        return [t for t in await self.get_all_tickets() if t.user_id == user_id]

    async def append_log(self, entry: AuditEntry) -> None:
        self.logs.append(entry)

    async def get_logs(self) -> List[AuditEntry]:
        return sorted(self.logs, key=lambda e: e.timestamp, reverse=True)

    async def save_chat_message(self, message: ChatMessage) -> None:
        self.chat.append(message)

    async def get_chat_history(self, limit: int = 50) -> List[ChatMessage]:
        msgs = sorted(self.chat, key=lambda m: m.timestamp)
        return msgs[-limit:] if limit else msgs
