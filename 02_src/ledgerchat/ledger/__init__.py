"""Ledger module."""

from .adapter import (
    EventHandler,
    ILedgerClient,
    ILedgerQueryAdapter,
    LostHandler,
    PendingOperation,
    Receipt,
    SubscriptionHandle,
)
from .sqlite_ledger import LedgerAccount, SQLiteLedger

__all__ = [
    "EventHandler",
    "LostHandler",
    "ILedgerClient",
    "ILedgerQueryAdapter",
    "PendingOperation",
    "Receipt",
    "SubscriptionHandle",
    "LedgerAccount",
    "SQLiteLedger",
]
