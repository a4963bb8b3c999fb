"""
LedgerContext -- composition root for one school ledger.

Responsibility:
    Wires the document store, year-close gate, mutation guard, chart of
    accounts, balance poster, journal log and satellite services for one
    (school, academic year), loads them from storage, and keeps them in
    sync with other contexts through the ChangeBus.

Architecture position:
    Kernel > top level.  The CLI and tests build one of these; nothing in
    the kernel reaches for a global instance.

Invariants enforced:
    - Every service of a context shares one AccountTree and one guard.
    - A change written by another context on the same bus is re-read and
      replaces this context's in-memory copy wholesale.

Failure modes:
    - Whatever loading raises (corrupt payload, SQLAlchemy errors).
"""

from __future__ import annotations

from typing import Any, Callable
from uuid import uuid4

from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.account_tree import AccountTree
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.settings import LedgerSettings
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.document import StorageScope
from ledger_kernel.selectors.subtree_selector import SubtreeAggregator
from ledger_kernel.services.balance_poster import BalancePoster
from ledger_kernel.services.chart_of_accounts import (
    ChartOfAccountsService,
    decode_accounts,
    encode_accounts,
)
from ledger_kernel.services.journal_log import (
    JournalLogService,
    decode_entries,
    encode_entries,
)
from ledger_kernel.services.mutation_guard import LedgerMutationGuard
from ledger_kernel.services.suppliers import (
    SupplierService,
    decode_suppliers,
    encode_suppliers,
)
from ledger_kernel.services.treasury import (
    TreasuryService,
    decode_treasury,
    encode_treasury,
)
from ledger_kernel.services.year_close import FinancialCloseState, YearCloseGate
from ledger_kernel.storage import (
    ACCOUNTS_KEY,
    JOURNAL_KEY,
    SUPPLIERS_KEY,
    TREASURY_KEY,
)
from ledger_kernel.storage.bridge import PersistenceBridge
from ledger_kernel.storage.change_bus import ChangeBus
from ledger_kernel.storage.document_store import DocumentStore

logger = get_logger("context")


class LedgerContext:
    """
    One open ledger.

    Usage:
        with LedgerContext(database, settings, bus=bus) as ledger:
            ledger.chart.add_account(...)
            ledger.poster.post_transactions([...])
            ledger.aggregator().report_totals()
    """

    def __init__(
        self,
        database: LedgerDatabase,
        settings: LedgerSettings | None = None,
        *,
        bus: ChangeBus | None = None,
        clock: Clock | None = None,
        context_id: str | None = None,
    ):
        self.database = database
        self.settings = settings or LedgerSettings()
        self.bus = bus or ChangeBus()
        self.clock = clock or SystemClock()
        self.context_id = context_id or str(uuid4())
        self._unsubscribers: list[Callable[[], None]] = []

        self.store = DocumentStore(database)
        self.year_gate = YearCloseGate(self.store, self.clock)
        self.guard = LedgerMutationGuard(
            self.year_gate, self.settings.school_id, self.settings.academic_year_id
        )
        self.tree = AccountTree()

        self.chart = ChartOfAccountsService(
            self.tree,
            self._bridge(ACCOUNTS_KEY, encode_accounts, decode_accounts),
            self.guard,
            seed_accounts=self.settings.seed_accounts,
            code_suffix_width=self.settings.code_suffix_width,
        )
        self.poster = BalancePoster(self.chart)
        self.journal = JournalLogService(
            self._bridge(JOURNAL_KEY, encode_entries, decode_entries),
            self.poster,
            academic_year_id=self.settings.academic_year_id,
            clock=self.clock,
        )
        self.guard.attach_journal(self.journal.entries)
        self.suppliers = SupplierService(
            self.chart,
            self._bridge(SUPPLIERS_KEY, encode_suppliers, decode_suppliers),
            self.settings.supplier_folder,
        )
        self.treasury = TreasuryService(
            self.chart,
            self._bridge(TREASURY_KEY, encode_treasury, decode_treasury),
            self.settings.bank_folder,
            self.settings.cash_folder,
            default_currency=self.settings.default_currency,
        )
        self.guard.attach_owners(self.suppliers.owners)
        self.guard.attach_owners(self.treasury.owners)

    def _bridge(
        self,
        key: str,
        encode: Callable[[Any], Any],
        decode: Callable[[Any], Any],
    ) -> PersistenceBridge:
        return PersistenceBridge(
            self.store,
            self.bus,
            StorageScope.FINANCE_DATA,
            key,
            encode,
            decode,
            origin=self.context_id,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> LedgerContext:
        """Load every collection and start listening for other writers."""
        with LogContext.bind(
            school_id=self.settings.school_id,
            academic_year_id=self.settings.academic_year_id,
            context_id=self.context_id,
        ):
            self.chart.load()
            self.journal.load()
            self.suppliers.load()
            self.treasury.load()
        self._unsubscribers = [
            self.chart.bridge.subscribe(self.chart.replace_all),
            self.journal.bridge.subscribe(self.journal.replace_all),
            self.suppliers.bridge.subscribe(self.suppliers.replace_all),
            self.treasury.bridge.subscribe(self.treasury.replace_all),
        ]
        logger.info(
            "ledger_opened",
            extra={
                "account_count": len(self.tree),
                "entry_count": len(self.journal.entries()),
            },
        )
        return self

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def refresh(self) -> bool:
        """Re-read every collection; True if anything changed."""
        changed = [
            self.chart.refresh(),
            self.journal.refresh(),
            self.suppliers.refresh(),
            self.treasury.refresh(),
        ]
        return any(changed)

    def __enter__(self) -> LedgerContext:
        return self.open()

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read side / year close
    # ------------------------------------------------------------------

    def aggregator(self) -> SubtreeAggregator:
        """A fresh aggregator over the current chart and journal."""
        return SubtreeAggregator(
            self.tree,
            self.journal.entries(),
            academic_year_id=self.settings.academic_year_id,
            report_root_codes=self.settings.report_root_codes,
        )

    def is_year_closed(self) -> bool:
        return self.guard.is_year_closed()

    def close_year(self, summary: dict[str, Any] | None = None) -> FinancialCloseState:
        """Close the active financial year, recording the report totals."""
        if summary is None:
            totals = self.aggregator().report_totals()
            summary = {
                "totalDebit": str(totals.debit),
                "totalCredit": str(totals.credit),
                "accountCount": len(self.tree),
            }
        return self.year_gate.close_financial_year(
            self.settings.school_id, self.settings.academic_year_id, summary
        )

    def get_close_state(self) -> FinancialCloseState:
        return self.year_gate.get_close_state(
            self.settings.school_id, self.settings.academic_year_id
        )
