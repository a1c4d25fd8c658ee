from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from novatrade.models.account import UserStatus


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    is_admin: bool = False
    email: Optional[str] = None


class BuyRequest(BaseModel):
    """stop_loss / take_profit are optional trigger prices covering the bought quantity."""

    symbol: str
    quantity: int = Field(..., gt=0)
    stop_loss: Optional[float] = Field(None, gt=0)
    take_profit: Optional[float] = Field(None, gt=0)


class SellRequest(BaseModel):
    symbol: str
    quantity: int = Field(..., gt=0)


class PriceUpdate(BaseModel):
    actor_id: str
    price: float = Field(..., gt=0)


class StatusUpdate(BaseModel):
    actor_id: str
    status: UserStatus


class TicketRequest(BaseModel):
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    user_id: str
    text: str = Field(..., min_length=1, max_length=2000)
