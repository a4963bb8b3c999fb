"""
JournalLogService -- the append-only journal entry log.

Responsibility:
    Creates, edits (while DRAFT), posts, approves and rejects journal
    entries, persisting them under ``SCHOOL_JOURNAL_ENTRIES``.  Approval
    pushes each line's debit - credit into account balances through the
    BalancePoster.

Architecture position:
    Kernel > Services.  Depends on BalancePoster (and through it the chart
    service) and on LedgerMutationGuard for the year-close check.

Invariants enforced:
    - Line amounts are clamped to non-negative values on entry.
    - ``is_balanced`` iff |total_debit - total_credit| <= 0.01.
    - Entries from integrations (any source other than "manual") skip
      DRAFT and are created POSTED.
    - Journal numbers increase monotonically.
    - Only DRAFT entries can be edited; only POSTED entries can be
      approved or rejected; no entry can be deleted.
    - Approval requires a balanced entry whose every line account exists.
    - Approval either posts balances and records APPROVED, or leaves both
      untouched.

Failure modes:
    - JournalEntryNotFoundError, InvalidJournalTransitionError,
      UnbalancedEntryError, JournalImmutableError,
      AccountNotFoundError, FinancialYearClosedError,
      OptimisticLockError (journal written by another context).
"""

from dataclasses import replace
from datetime import date
from typing import Any, Iterable
from uuid import uuid4

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.journal import (
    JournalEntry,
    JournalLine,
    JournalSource,
    JournalStatus,
    compute_totals,
    normalize_lines,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    InvalidJournalTransitionError,
    JournalEntryNotFoundError,
    JournalImmutableError,
    LedgerKernelError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.balance_poster import BalancePoster, Posting
from ledger_kernel.storage.bridge import PersistenceBridge

logger = get_logger("services.journal_log")

DEFAULT_REJECTION_REASON = "Rejected by reviewer"


def encode_entries(entries: Iterable[JournalEntry]) -> list[dict[str, Any]]:
    return [entry.to_dict() for entry in entries]


def decode_entries(data: Any) -> list[JournalEntry]:
    return [JournalEntry.from_dict(item) for item in data or ()]


def make_line(
    account_id: str,
    debit: Any = None,
    credit: Any = None,
    note: str | None = None,
    cost_center_id: str | None = None,
) -> JournalLine:
    return JournalLine(
        id=str(uuid4()),
        account_id=account_id,
        debit=debit,
        credit=credit,
        note=note,
        cost_center_id=cost_center_id,
    )


class JournalLogService:
    """
    Journal entry lifecycle: DRAFT -> POSTED -> APPROVED | REJECTED.

    Contract:
        Every transition validates first and persists once.  Approval
        posts balances before the entry is marked APPROVED; if the
        journal write then fails the balances stay posted and the entry
        stays POSTED, so approving again would double-post -- callers
        must ``refresh()`` after an OptimisticLockError.
    """

    def __init__(
        self,
        bridge: PersistenceBridge[list[JournalEntry]],
        poster: BalancePoster,
        academic_year_id: str | None = None,
        clock: Clock | None = None,
    ):
        self.bridge = bridge
        self.poster = poster
        self.academic_year_id = academic_year_id
        self._clock = clock or SystemClock()
        self._entries: list[JournalEntry] = []

    @property
    def guard(self):
        return self.poster.chart.guard

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        self._entries = self.bridge.load() or []
        logger.info("journal_loaded", extra={"entry_count": len(self._entries)})

    def replace_all(self, entries: Iterable[JournalEntry]) -> None:
        self._entries = list(entries)
        logger.info("journal_rehydrated", extra={"entry_count": len(self._entries)})

    def refresh(self) -> bool:
        stored = self.bridge.refresh()
        if stored is None:
            return False
        self.replace_all(stored)
        return True

    def _commit(self, entries: list[JournalEntry]) -> None:
        self.bridge.commit(entries)
        self._entries = entries

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entries(self) -> list[JournalEntry]:
        return list(self._entries)

    def get(self, entry_id: str) -> JournalEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def require(self, entry_id: str) -> JournalEntry:
        entry = self.get(entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(entry_id)
        return entry

    def next_journal_no(self) -> int:
        return max((entry.journal_no for entry in self._entries), default=0) + 1

    def entries_for_account(self, account_id: str) -> list[JournalEntry]:
        return [entry for entry in self._entries if entry.references(account_id)]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def add_entry(
        self,
        description: str,
        lines: Iterable[JournalLine],
        *,
        source: JournalSource | str = JournalSource.MANUAL,
        entry_date: date | None = None,
        status: JournalStatus | str = JournalStatus.DRAFT,
        source_ref_id: str | None = None,
        academic_year_id: str | None = None,
        created_by: str | None = "system",
        entry_id: str | None = None,
    ) -> JournalEntry:
        self.guard.require_open_year("add_journal_entry")
        source_value = source.value if isinstance(source, JournalSource) else str(source)
        status = JournalStatus.normalize(
            status.value if isinstance(status, JournalStatus) else status
        )
        if source_value != JournalSource.MANUAL.value and status == JournalStatus.DRAFT:
            status = JournalStatus.POSTED

        normalized = normalize_lines(lines)
        total_debit, total_credit, balanced = compute_totals(normalized)
        entry = JournalEntry(
            id=entry_id or str(uuid4()),
            journal_no=self.next_journal_no(),
            entry_date=entry_date or self._clock.today(),
            description=description,
            source=source_value,
            status=status,
            lines=normalized,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=balanced,
            created_at=self._clock.now(),
            created_by=created_by,
            academic_year_id=academic_year_id or self.academic_year_id,
            source_ref_id=source_ref_id,
        )
        self._commit([*self._entries, entry])
        logger.info(
            "journal_entry_added",
            extra={
                "entry_id": entry.id,
                "journal_no": entry.journal_no,
                "source": entry.source,
                "status": entry.status.value,
                "is_balanced": entry.is_balanced,
            },
        )
        return entry

    def _replace(self, updated: JournalEntry) -> None:
        self._commit([updated if e.id == updated.id else e for e in self._entries])

    def update_entry(
        self,
        entry_id: str,
        *,
        description: str | None = None,
        lines: Iterable[JournalLine] | None = None,
        entry_date: date | None = None,
    ) -> JournalEntry:
        """Edit a DRAFT entry; totals are recomputed when lines change."""
        self.guard.require_open_year("update_journal_entry")
        entry = self.require(entry_id)
        if entry.status != JournalStatus.DRAFT:
            raise InvalidJournalTransitionError(entry_id, entry.status.value, "update")

        changes: dict[str, Any] = {}
        if description is not None:
            changes["description"] = description
        if entry_date is not None:
            changes["entry_date"] = entry_date
        if lines is not None:
            normalized = normalize_lines(lines)
            total_debit, total_credit, balanced = compute_totals(normalized)
            changes.update(
                lines=normalized,
                total_debit=total_debit,
                total_credit=total_credit,
                is_balanced=balanced,
            )
        updated = replace(entry, **changes)
        self._replace(updated)
        logger.info("journal_entry_updated", extra={"entry_id": entry_id})
        return updated

    def post_entry(self, entry_id: str) -> JournalEntry:
        """Submit a DRAFT entry for approval."""
        self.guard.require_open_year("post_journal_entry")
        entry = self.require(entry_id)
        if entry.status != JournalStatus.DRAFT:
            raise InvalidJournalTransitionError(entry_id, entry.status.value, "post")
        updated = replace(entry, status=JournalStatus.POSTED)
        self._replace(updated)
        logger.info("journal_entry_posted", extra={"entry_id": entry_id})
        return updated

    def approve_entry(self, entry_id: str, approved_by: str | None = "system") -> JournalEntry:
        """
        Approve a POSTED, balanced entry and post its lines to balances.

        Each line contributes debit - credit to its account.  The journal
        document must be current before any balance moves, and balances are
        reversed if the status change then fails to persist.
        """
        self.guard.require_open_year("approve_journal_entry")
        entry = self.require(entry_id)
        if entry.status != JournalStatus.POSTED:
            raise InvalidJournalTransitionError(entry_id, entry.status.value, "approve")
        total_debit, total_credit, balanced = compute_totals(entry.lines)
        if not balanced:
            raise UnbalancedEntryError(entry_id, str(total_debit), str(total_credit))
        tree = self.poster.chart.tree
        for line in entry.lines:
            if line.account_id not in tree:
                raise AccountNotFoundError(line.account_id)

        self.bridge.require_current()
        postings = [
            Posting(line.account_id, line.net, entry.description) for line in entry.lines
        ]
        self.poster.post_transactions(postings)
        updated = replace(
            entry,
            status=JournalStatus.APPROVED,
            approved_at=self._clock.now(),
            approved_by=approved_by,
        )
        try:
            self._replace(updated)
        except LedgerKernelError:
            self.poster.reverse(postings)
            logger.warning(
                "journal_approval_reversed",
                extra={"entry_id": entry_id, "journal_no": entry.journal_no},
            )
            raise
        logger.info(
            "journal_entry_approved",
            extra={
                "entry_id": entry_id,
                "journal_no": entry.journal_no,
                "total_debit": total_debit,
                "total_credit": total_credit,
            },
        )
        return updated

    def reject_entry(self, entry_id: str, reason: str | None = None) -> JournalEntry:
        self.guard.require_open_year("reject_journal_entry")
        entry = self.require(entry_id)
        if entry.status != JournalStatus.POSTED:
            raise InvalidJournalTransitionError(entry_id, entry.status.value, "reject")
        updated = replace(
            entry,
            status=JournalStatus.REJECTED,
            rejection_reason=reason or DEFAULT_REJECTION_REASON,
        )
        self._replace(updated)
        logger.info(
            "journal_entry_rejected",
            extra={"entry_id": entry_id, "reason": updated.rejection_reason},
        )
        return updated

    def delete_entry(self, entry_id: str) -> None:
        """The journal is append-only; deletion is always refused."""
        self.require(entry_id)
        logger.warning("journal_delete_refused", extra={"entry_id": entry_id})
        raise JournalImmutableError(entry_id)
