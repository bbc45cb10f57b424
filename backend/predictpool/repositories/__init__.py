"""Repository abstractions for ledger persistence."""

from .base import LedgerStore, RetentionPolicy
from .ledger_repository import SqlLedgerStore
from .memory_store import InMemoryLedgerStore

__all__ = [
    "InMemoryLedgerStore",
    "LedgerStore",
    "RetentionPolicy",
    "SqlLedgerStore",
]
