"""
Pure domain layer.

This module contains the value objects and pure logic of the ledger
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Accounts and journal entries are immutable; the AccountTree is the only
mutable structure and it never validates on its own.
"""

from ledger_kernel.domain.account import (
    ROOT_ACCOUNT_CODES,
    TYPE_ROOT_CODES,
    Account,
    AccountLevel,
    AccountType,
    code_sort_key,
)
from ledger_kernel.domain.account_tree import AccountTree, deduplicate
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.code_generator import DEFAULT_SUFFIX_WIDTH, next_child_code
from ledger_kernel.domain.journal import (
    EFFECTIVE_STATUSES,
    JournalEntry,
    JournalLine,
    JournalSource,
    JournalStatus,
    compute_totals,
)
from ledger_kernel.domain.money import ZERO, clamp_amount, round_money, to_decimal
from ledger_kernel.domain.settings import FolderPlacement, LedgerSettings, normalize_scope

__all__ = [
    "Account",
    "AccountLevel",
    "AccountTree",
    "AccountType",
    "Clock",
    "DEFAULT_SUFFIX_WIDTH",
    "DeterministicClock",
    "EFFECTIVE_STATUSES",
    "FolderPlacement",
    "JournalEntry",
    "JournalLine",
    "JournalSource",
    "JournalStatus",
    "LedgerSettings",
    "ROOT_ACCOUNT_CODES",
    "SystemClock",
    "TYPE_ROOT_CODES",
    "ZERO",
    "clamp_amount",
    "code_sort_key",
    "compute_totals",
    "deduplicate",
    "next_child_code",
    "normalize_scope",
    "round_money",
    "to_decimal",
]
