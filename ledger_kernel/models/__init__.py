"""ORM models for the ledger kernel."""

from ledger_kernel.models.document import StorageScope, StoredDocument

__all__ = [
    "StorageScope",
    "StoredDocument",
]
