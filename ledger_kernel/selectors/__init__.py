"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.subtree_selector import (
    AccountRow,
    AccountStatement,
    DebitCredit,
    StatementLine,
    SubtreeAggregator,
)

__all__ = [
    "AccountRow",
    "AccountStatement",
    "DebitCredit",
    "StatementLine",
    "SubtreeAggregator",
]
