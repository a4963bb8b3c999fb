"""
DocumentStore -- versioned JSON documents keyed by scope + name.

Responsibility:
    Reads and writes serialized collections (``SCHOOL_CATALOG_ACCOUNTS``,
    ``SCHOOL_JOURNAL_ENTRIES``, year-close records, ...) in the
    ``ledger_documents`` table, enforcing a per-document version stamp.

Architecture position:
    Kernel > Storage.  May import from db/ and models/.  Knows nothing
    about accounts or journals -- payloads are opaque JSON text.

Invariants enforced:
    - A write with ``expected_version`` succeeds only if the stored version
      equals it (0 meaning "document must not exist yet"); the new version
      is expected_version + 1.
    - Writes with ``expected_version=None`` are unconditional (used for
      single-writer records such as year-close flags).
    - Every write runs inside ``LedgerDatabase.session_scope()``.

Failure modes:
    - OptimisticLockError on a version mismatch or on a create race
      (IntegrityError on uq_document_scope_key).
    - SQLAlchemy errors propagate after rollback.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.exceptions import OptimisticLockError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.document import StorageScope, StoredDocument

logger = get_logger("storage.documents")


def serialize(value: Any) -> str:
    """Canonical JSON text for a payload (stable key order as given)."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _checksum(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class DocumentSnapshot:
    """Stored payload text and its version (0 when the document is absent)."""

    scope: str
    key: str
    payload: str | None
    version: int

    @property
    def exists(self) -> bool:
        return self.payload is not None

    def decode(self, default: Any = None) -> Any:
        if self.payload is None:
            return default
        return json.loads(self.payload)


class DocumentStore:
    """
    Durable client-local store over a LedgerDatabase.

    Contract:
        Callers pass JSON-compatible values or pre-serialized text; the
        store never interprets payload content.
    """

    def __init__(self, database: LedgerDatabase):
        self.database = database

    @staticmethod
    def _scope_value(scope: StorageScope | str) -> str:
        return scope.value if isinstance(scope, StorageScope) else str(scope)

    def read(self, scope: StorageScope | str, key: str) -> DocumentSnapshot:
        scope_value = self._scope_value(scope)
        with self.database.session_scope() as session:
            row = session.execute(
                select(StoredDocument).where(
                    StoredDocument.scope == scope_value,
                    StoredDocument.doc_key == key,
                )
            ).scalar_one_or_none()
            if row is None:
                return DocumentSnapshot(scope_value, key, None, 0)
            return DocumentSnapshot(scope_value, key, row.payload, row.version)

    def load(self, scope: StorageScope | str, key: str, default: Any = None) -> Any:
        return self.read(scope, key).decode(default)

    def write(
        self,
        scope: StorageScope | str,
        key: str,
        payload: str,
        expected_version: int | None = None,
    ) -> int:
        """
        Store ``payload`` text; returns the new version.

        Raises:
            OptimisticLockError: stored version differs from
                ``expected_version``.
        """
        scope_value = self._scope_value(scope)
        document_key = f"{scope_value}/{key}"
        try:
            with self.database.session_scope() as session:
                row = session.execute(
                    select(StoredDocument).where(
                        StoredDocument.scope == scope_value,
                        StoredDocument.doc_key == key,
                    )
                ).scalar_one_or_none()
                current_version = row.version if row is not None else 0
                if expected_version is not None and current_version != expected_version:
                    raise OptimisticLockError(
                        document_key, expected_version, current_version
                    )

                new_version = current_version + 1
                if row is None:
                    session.add(
                        StoredDocument(
                            scope=scope_value,
                            doc_key=key,
                            payload=payload,
                            version=new_version,
                            checksum=_checksum(payload),
                            updated_at=datetime.now(timezone.utc),
                        )
                    )
                else:
                    row.payload = payload
                    row.version = new_version
                    row.checksum = _checksum(payload)
                    row.updated_at = datetime.now(timezone.utc)
        except IntegrityError as exc:
            raise OptimisticLockError(
                document_key, expected_version or 0, -1
            ) from exc

        logger.info(
            "document_saved",
            extra={
                "scope": scope_value,
                "key": key,
                "version": new_version,
                "bytes": len(payload.encode("utf-8")),
            },
        )
        return new_version

    def save(
        self,
        scope: StorageScope | str,
        key: str,
        value: Any,
        expected_version: int | None = None,
    ) -> int:
        return self.write(scope, key, serialize(value), expected_version)

    def delete(self, scope: StorageScope | str, key: str) -> bool:
        scope_value = self._scope_value(scope)
        with self.database.session_scope() as session:
            row = session.execute(
                select(StoredDocument).where(
                    StoredDocument.scope == scope_value,
                    StoredDocument.doc_key == key,
                )
            ).scalar_one_or_none()
            if row is None:
                return False
            session.delete(row)
        logger.info("document_deleted", extra={"scope": scope_value, "key": key})
        return True

    def keys(self, scope: StorageScope | str) -> list[str]:
        scope_value = self._scope_value(scope)
        with self.database.session_scope() as session:
            return list(
                session.execute(
                    select(StoredDocument.doc_key)
                    .where(StoredDocument.scope == scope_value)
                    .order_by(StoredDocument.doc_key)
                ).scalars()
            )
