"""
Module: ledger_kernel.db.base
Responsibility: Declarative base class for the kernel's SQLAlchemy models.
    Provides the UUID primary key convention and the type annotation map
    that keeps column types consistent.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/, selectors/, domain/,
    or storage/.

Invariants enforced:
    - UUID primary keys stored as String(36) for SQLite/PostgreSQL
      portability.
    - datetime maps to DateTime(timezone=True) -- always timezone-aware.
    - int maps to BigInteger -- safe for monotonic version counters.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all kernel models.

    Contract:
        Every ORM model inherits from Base, receiving a uuid4 primary key
        and the shared type_annotation_map.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )
