"""Database layer - engine ownership and declarative base."""

from ledger_kernel.db.base import Base, UUIDString
from ledger_kernel.db.engine import DEFAULT_DATABASE_URL, LedgerDatabase

__all__ = [
    "Base",
    "UUIDString",
    "LedgerDatabase",
    "DEFAULT_DATABASE_URL",
]
