from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from novatrade.models.account import AuditEntry, ChatMessage, SupportTicket, User


class Repository(ABC):
    """
    Persistence contract (interface).

    Any backend must implement:
    - users: get by username / id, upsert, delete, list
    - tickets: append, update, list (newest first), lookup by user_id
    - audit log: append, list (newest first)
    - chat: append, last N messages (oldest first)

    Every method is async and may raise PersistenceFailure.
    """

    @abstractmethod
    async def get_user(self, username: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    async def save_user(self, user: User) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_all_users(self) -> List[User]:
        raise NotImplementedError

    @abstractmethod
    async def create_ticket(self, ticket: SupportTicket) -> None:
        raise NotImplementedError

    @abstractmethod
    async def update_ticket(self, ticket: SupportTicket) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_all_tickets(self) -> List[SupportTicket]:
        raise NotImplementedError

    @abstractmethod
    async def get_tickets_for_user(self, user_id: str) -> List[SupportTicket]:
        raise NotImplementedError

    @abstractmethod
    async def append_log(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_logs(self) -> List[AuditEntry]:
        raise NotImplementedError

    @abstractmethod
    async def save_chat_message(self, message: ChatMessage) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_chat_history(self, limit: int = 50) -> List[ChatMessage]:
        raise NotImplementedError

    async def log_activity(
        self,
        action: str,
        actor_id: str,
        target_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            id=f"LOG-{uuid.uuid4().hex[:12]}",
            action=action,
            actor_id=actor_id,
            target_id=target_id,
            details=details,
            timestamp=datetime.now(timezone.utc),
        )
        await self.append_log(entry)
        return entry

    def close(self) -> None:
        pass
