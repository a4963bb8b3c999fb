"""
Module: ledger_kernel.models.document
Responsibility: ORM persistence for the client-local document store -- one
    row per serialized collection (the account forest, the journal log,
    supplier and treasury records, year-close records).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (scope, doc_key) is unique (uq_document_scope_key).
    - version starts at 1 and increases by exactly 1 on every write; the
      storage layer compares it before writing (optimistic concurrency).
    - checksum is the SHA-256 of payload, kept for cheap change detection.

Failure modes:
    - IntegrityError if two writers race to create the same document; the
      storage layer turns this into OptimisticLockError.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class StorageScope(str, Enum):
    """Namespaces for stored documents."""

    FINANCE_DATA = "FINANCE_DATA"
    SETTINGS = "SETTINGS"


class StoredDocument(Base):
    """
    A serialized JSON document keyed by scope + name.

    Contract:
        payload holds the exact JSON text last written; readers compare it
        against their own last-written serialization to decide whether to
        re-hydrate.
    """

    __tablename__ = "ledger_documents"

    __table_args__ = (
        UniqueConstraint("scope", "doc_key", name="uq_document_scope_key"),
        Index("idx_document_scope", "scope"),
    )

    scope: Mapped[str] = mapped_column(String(40), nullable=False)

    doc_key: Mapped[str] = mapped_column(String(200), nullable=False)

    payload: Mapped[str] = mapped_column(Text, nullable=False)

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    checksum: Mapped[str] = mapped_column(String(64), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StoredDocument {self.scope}/{self.doc_key} v{self.version}>"
