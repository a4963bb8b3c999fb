"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.balance_poster import BalancePoster, Posting
from ledger_kernel.services.chart_of_accounts import ChartOfAccountsService
from ledger_kernel.services.journal_log import JournalLogService, make_line
from ledger_kernel.services.mutation_guard import LedgerMutationGuard
from ledger_kernel.services.suppliers import SupplierAccount, SupplierService
from ledger_kernel.services.treasury import TreasuryAccount, TreasuryService, TreasuryType
from ledger_kernel.services.year_close import FinancialCloseState, YearCloseGate

__all__ = [
    "BalancePoster",
    "ChartOfAccountsService",
    "FinancialCloseState",
    "JournalLogService",
    "LedgerMutationGuard",
    "Posting",
    "SupplierAccount",
    "SupplierService",
    "TreasuryAccount",
    "TreasuryService",
    "TreasuryType",
    "YearCloseGate",
    "make_line",
]
