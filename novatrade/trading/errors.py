from __future__ import annotations


class TradingError(Exception):
    """Base class for errors caused by a single trading action. No state is changed."""

    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InsufficientFunds(TradingError):
    pass


class InsufficientPosition(TradingError):
    pass


class InvalidQuantity(TradingError):
    pass


class UnknownSymbol(TradingError):
    status_code = 404


class OrderNotFound(TradingError):
    status_code = 404


class UserNotFound(TradingError):
    status_code = 404


class TicketNotFound(TradingError):
    status_code = 404


class MarketClosed(TradingError):
    status_code = 409


class AccountSuspended(TradingError):
    status_code = 403


class PermissionDenied(TradingError):
    status_code = 403


class PersistenceFailure(Exception):
    """A save/load against the repository failed. In-memory state stays authoritative."""


class ExternalSyncFailure(Exception):
    """An oracle batch failed or returned unusable data."""
