"""
YearCloseGate -- financial-year open/closed state.

Responsibility:
    Answers "is this school's academic year closed?" and records the close.
    The state lives in two stored documents per (school, year):

    - ``FINANCIAL_YEAR_CLOSE__{school}__{year}`` -- structured record
      ``{"isClosed": bool, "closeDate": iso|null, "summary": {...}|null}``.
    - ``FINANCIAL_YEAR_LOCKED__{school}__{year}`` -- legacy flag, the
      string "true" when locked.

Architecture position:
    Kernel > Services.  Read by LedgerMutationGuard before every mutation;
    written only by ``close_financial_year``.

Invariants enforced:
    - A year counts as closed if the structured record says so OR the
      legacy flag is "true".
    - Blank school / year ids normalize to "SCHOOL" / "YEAR".
    - Closing an already-closed year is refused.

Failure modes:
    - FinancialYearClosedError from ``close_financial_year`` when the year
      is already closed.
    - An unreadable structured record is logged and treated as absent, so
      the legacy flag still decides.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.settings import normalize_scope
from ledger_kernel.exceptions import FinancialYearClosedError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.document import StorageScope
from ledger_kernel.storage.document_store import DocumentStore

logger = get_logger("services.year_close")


def close_storage_key(school_id: str | None, academic_year_id: str | None) -> str:
    school, year = normalize_scope(school_id, academic_year_id)
    return f"FINANCIAL_YEAR_CLOSE__{school}__{year}"


def legacy_lock_key(school_id: str | None, academic_year_id: str | None) -> str:
    school, year = normalize_scope(school_id, academic_year_id)
    return f"FINANCIAL_YEAR_LOCKED__{school}__{year}"


@dataclass(frozen=True)
class FinancialCloseState:
    """Structured close record for one school year."""

    is_closed: bool = False
    close_date: datetime | None = None
    summary: dict[str, Any] | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isClosed": self.is_closed,
            "closeDate": self.close_date.isoformat() if self.close_date else None,
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "FinancialCloseState":
        if not isinstance(data, dict):
            return cls()
        return cls(
            is_closed=data.get("isClosed") is True,
            close_date=_parse_close_date(data.get("closeDate")),
            summary=data.get("summary"),
        )


def _parse_close_date(value: Any) -> datetime | None:
    """ISO timestamp (a trailing Z allowed); None when absent or unparseable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(
            "year_close_record_unreadable",
            extra={"field": "closeDate", "value": str(value)},
        )
        return None


class YearCloseGate:
    """
    Reads and writes the financial-year close state.

    Contract:
        Stateless apart from the store; every call re-reads so a close
        written by another context takes effect immediately.

    Non-goals:
        - Does NOT compute the close summary; callers pass it in.
        - No re-open operation.
    """

    def __init__(self, store: DocumentStore, clock: Clock | None = None):
        self.store = store
        self._clock = clock or SystemClock()

    def get_close_state(
        self, school_id: str | None, academic_year_id: str | None
    ) -> FinancialCloseState:
        key = close_storage_key(school_id, academic_year_id)
        try:
            data = self.store.load(StorageScope.FINANCE_DATA, key)
        except json.JSONDecodeError:
            logger.warning("year_close_record_unreadable", extra={"key": key})
            return FinancialCloseState()
        return FinancialCloseState.from_dict(data)

    def _legacy_locked(self, school_id: str | None, academic_year_id: str | None) -> bool:
        key = legacy_lock_key(school_id, academic_year_id)
        snapshot = self.store.read(StorageScope.FINANCE_DATA, key)
        if snapshot.payload is None:
            return False
        try:
            value = snapshot.decode()
        except json.JSONDecodeError:
            value = snapshot.payload
        return value is True or str(value).strip().lower() == "true"

    def is_financial_year_closed(
        self, school_id: str | None, academic_year_id: str | None
    ) -> bool:
        if self.get_close_state(school_id, academic_year_id).is_closed:
            return True
        return self._legacy_locked(school_id, academic_year_id)

    def close_financial_year(
        self,
        school_id: str | None,
        academic_year_id: str | None,
        summary: dict[str, Any] | None = None,
    ) -> FinancialCloseState:
        """Mark the year closed; every later mutation for it is refused."""
        school, year = normalize_scope(school_id, academic_year_id)
        if self.is_financial_year_closed(school, year):
            raise FinancialYearClosedError(school, year, "close_financial_year")

        state = FinancialCloseState(
            is_closed=True, close_date=self._clock.now(), summary=summary
        )
        self.store.save(
            StorageScope.FINANCE_DATA, close_storage_key(school, year), state.to_dict()
        )
        self.store.save(StorageScope.FINANCE_DATA, legacy_lock_key(school, year), "true")

        logger.info(
            "financial_year_closed",
            extra={
                "school_id": school,
                "academic_year_id": year,
                "close_date": state.close_date.isoformat() if state.close_date else None,
            },
        )
        return state
