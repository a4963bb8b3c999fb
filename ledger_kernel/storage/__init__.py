"""Durable storage: versioned documents, change broadcast, collection bridges."""

from ledger_kernel.storage.bridge import PersistenceBridge
from ledger_kernel.storage.change_bus import ChangeBus, ChangeEvent
from ledger_kernel.storage.document_store import DocumentSnapshot, DocumentStore, serialize

# Document keys shared by every context of one school ledger.
ACCOUNTS_KEY = "SCHOOL_CATALOG_ACCOUNTS"
JOURNAL_KEY = "SCHOOL_JOURNAL_ENTRIES"
SUPPLIERS_KEY = "SCHOOL_SUPPLIERS_ACCOUNTS"
TREASURY_KEY = "SCHOOL_TREASURY_ACCOUNTS"

__all__ = [
    "ACCOUNTS_KEY",
    "ChangeBus",
    "ChangeEvent",
    "DocumentSnapshot",
    "DocumentStore",
    "JOURNAL_KEY",
    "PersistenceBridge",
    "SUPPLIERS_KEY",
    "TREASURY_KEY",
    "serialize",
]
