"""
Journal -- append-only journal log value objects.

Responsibility:
    Defines ``JournalEntry`` / ``JournalLine`` and their status and source
    enumerations, the totals/balance computation, and the JSON wire shape
    (camelCase, including the legacy ``Academic_Year_ID`` and
    ``rejectReason`` keys accepted on read).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Line amounts are non-negative (clamped on construction by the
      journal service, see ``normalize_lines``).
    - ``is_balanced`` iff |total_debit - total_credit| <= 0.01.
    - Only APPROVED and POSTED entries count toward ledger totals.

Failure modes:
    - KeyError from ``JournalEntry.from_dict`` when ``id`` is missing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

from ledger_kernel.domain.money import BALANCE_TOLERANCE, ZERO, clamp_amount, round_money


class JournalStatus(str, Enum):
    """Lifecycle: DRAFT -> POSTED -> APPROVED | REJECTED."""

    DRAFT = "DRAFT"
    POSTED = "POSTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @classmethod
    def normalize(cls, value: str | None) -> "JournalStatus":
        """Unknown or missing statuses load as DRAFT."""
        try:
            return cls((value or "").upper())
        except ValueError:
            return cls.DRAFT


class JournalSource(str, Enum):
    """Screen or integration that produced an entry."""

    PAYROLL = "payroll"
    RECEIPTS = "receipts"
    PAYMENTS = "payments"
    MANUAL = "manual"
    ASSETS = "assets"
    INVENTORY_RECEIVE = "inventory-receive"
    INVENTORY_ISSUE = "inventory-issue"


# Statuses whose lines count toward ledger totals and block account deletion.
EFFECTIVE_STATUSES: frozenset[JournalStatus] = frozenset(
    {JournalStatus.APPROVED, JournalStatus.POSTED}
)


@dataclass(frozen=True)
class JournalLine:
    """One debit/credit line; exactly one side is normally non-zero."""

    id: str
    account_id: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    note: str | None = None
    cost_center_id: str | None = None

    @property
    def net(self) -> Decimal:
        """Signed balance effect: debit minus credit."""
        return self.debit - self.credit

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "accountId": self.account_id,
            "debit": str(self.debit),
            "credit": str(self.credit),
        }
        if self.note is not None:
            data["note"] = self.note
        if self.cost_center_id is not None:
            data["costCenterId"] = self.cost_center_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JournalLine:
        return cls(
            id=str(data.get("id") or data.get("accountId")),
            account_id=str(data["accountId"]),
            debit=clamp_amount(data.get("debit")),
            credit=clamp_amount(data.get("credit")),
            note=data.get("note"),
            cost_center_id=data.get("costCenterId"),
        )


def normalize_lines(lines: Iterable[JournalLine]) -> tuple[JournalLine, ...]:
    """Clamp every line amount to a non-negative Decimal."""
    return tuple(
        JournalLine(
            id=line.id,
            account_id=line.account_id,
            debit=clamp_amount(line.debit),
            credit=clamp_amount(line.credit),
            note=line.note,
            cost_center_id=line.cost_center_id,
        )
        for line in lines
    )


def compute_totals(lines: Iterable[JournalLine]) -> tuple[Decimal, Decimal, bool]:
    """Return (total_debit, total_credit, is_balanced)."""
    total_debit = ZERO
    total_credit = ZERO
    for line in lines:
        total_debit += clamp_amount(line.debit)
        total_credit += clamp_amount(line.credit)
    total_debit = round_money(total_debit)
    total_credit = round_money(total_credit)
    return total_debit, total_credit, abs(total_debit - total_credit) <= BALANCE_TOLERANCE


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class JournalEntry:
    """
    A journal entry: header plus lines.

    Contract:
        Totals and ``is_balanced`` are computed by the journal service from
        ``lines``; ``from_dict`` trusts what was stored.

    Non-goals:
        - Does NOT post to account balances; approval does that through
          the BalancePoster.
    """

    id: str
    journal_no: int
    entry_date: date | None
    description: str
    source: str
    status: JournalStatus
    lines: tuple[JournalLine, ...] = field(default_factory=tuple)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    is_balanced: bool = True
    created_at: datetime | None = None
    created_by: str | None = None
    academic_year_id: str | None = None
    source_ref_id: str | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    rejection_reason: str | None = None

    @property
    def is_effective(self) -> bool:
        """APPROVED or POSTED."""
        return self.status in EFFECTIVE_STATUSES

    def counts_for_year(self, academic_year_id: str | None) -> bool:
        """Entries without a year tag count for every year."""
        return not self.academic_year_id or self.academic_year_id == academic_year_id

    def references(self, account_id: str) -> bool:
        return any(line.account_id == account_id for line in self.lines)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "journalNo": self.journal_no,
            "date": self.entry_date.isoformat() if self.entry_date else None,
            "description": self.description,
            "source": self.source,
            "status": self.status.value,
            "lines": [line.to_dict() for line in self.lines],
            "totalDebit": str(self.total_debit),
            "totalCredit": str(self.total_credit),
            "isBalanced": self.is_balanced,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "createdBy": self.created_by,
        }
        optional = {
            "academicYearId": self.academic_year_id,
            "sourceRefId": self.source_ref_id,
            "approvedAt": self.approved_at.isoformat() if self.approved_at else None,
            "approvedBy": self.approved_by,
            "rejectionReason": self.rejection_reason,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JournalEntry:
        lines = tuple(JournalLine.from_dict(line) for line in data.get("lines") or ())
        total_debit, total_credit, balanced = compute_totals(lines)
        return cls(
            id=str(data["id"]),
            journal_no=int(data.get("journalNo") or 0),
            entry_date=_parse_date(data.get("date")),
            description=str(data.get("description", "")),
            source=str(data.get("source") or JournalSource.MANUAL.value),
            status=JournalStatus.normalize(data.get("status")),
            lines=lines,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=data.get("isBalanced", balanced),
            created_at=_parse_datetime(data.get("createdAt")),
            created_by=data.get("createdBy"),
            academic_year_id=(
                data.get("academicYearId") or data.get("Academic_Year_ID") or None
            ),
            source_ref_id=data.get("sourceRefId"),
            approved_at=_parse_datetime(data.get("approvedAt")),
            approved_by=data.get("approvedBy"),
            rejection_reason=data.get("rejectionReason") or data.get("rejectReason"),
        )
