"""
Module: ledger_kernel.selectors.subtree_selector
Responsibility: Read-side aggregation over the chart of accounts.  Rolls
    stored balances up the tree, rolls journal debits/credits up the tree,
    picks the pair each node displays, totals the report roots, and builds
    the per-account ledger statement.
Architecture position: Kernel > Selectors.  Reads an AccountTree and a
    sequence of JournalEntry values; never mutates either and never
    touches storage.

Invariants enforced:
    - effective_balance(node) = node.balance + sum(effective_balance(child)),
      each result rounded to 2 places.
    - Journal totals count only APPROVED/POSTED entries for the active
      academic year; entries without a year tag count for every year.
    - A node displays its journal totals, or -- when both journal sides are
      zero -- its effective balance as a single-sided pair (positive ->
      debit, negative -> credit).  The two are never blended.
    - The report total sums the display pairs of the root allow-list only.

Failure modes:
    - AccountNotFoundError from ``account_statement`` for an unknown id.
    - A parent cycle in stored data is broken at the first revisit; the
      revisited node contributes nothing further.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from ledger_kernel.domain.account import Account
from ledger_kernel.domain.account_tree import AccountTree
from ledger_kernel.domain.journal import JournalEntry
from ledger_kernel.domain.money import ZERO, round_money

DEFAULT_REPORT_ROOT_CODES: tuple[str, ...] = ("1", "2", "4", "5")


@dataclass(frozen=True)
class DebitCredit:
    """A debit/credit pair."""

    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.debit - self.credit

    @property
    def is_zero(self) -> bool:
        return self.debit == 0 and self.credit == 0

    def __add__(self, other: "DebitCredit") -> "DebitCredit":
        return DebitCredit(self.debit + other.debit, self.credit + other.credit)

    def rounded(self) -> "DebitCredit":
        return DebitCredit(round_money(self.debit), round_money(self.credit))

    @classmethod
    def from_net(cls, net: Decimal) -> "DebitCredit":
        if net > 0:
            return cls(debit=round_money(net))
        if net < 0:
            return cls(credit=round_money(-net))
        return cls()


@dataclass(frozen=True)
class AccountRow:
    """One rendered line of the chart-of-accounts tree."""

    account: Account
    depth: int
    effective_balance: Decimal
    journal_totals: DebitCredit
    display: DebitCredit

    @property
    def uses_journal(self) -> bool:
        return not self.journal_totals.is_zero


@dataclass(frozen=True)
class StatementLine:
    entry_id: str
    journal_no: int
    entry_date: date | None
    description: str
    source_ref_id: str | None
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class AccountStatement:
    account: Account
    lines: tuple[StatementLine, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def closing_balance(self) -> Decimal:
        return round_money(self.total_debit - self.total_credit)


class SubtreeAggregator:
    """
    Subtree totals for one snapshot of the chart and journal.

    Contract:
        Construct per read; results are memoized for the lifetime of the
        instance, so build a new aggregator after any mutation.

    Non-goals:
        - Does NOT reconcile stored balances against the journal.
    """

    def __init__(
        self,
        tree: AccountTree,
        entries: Iterable[JournalEntry] = (),
        academic_year_id: str | None = None,
        report_root_codes: Sequence[str] = DEFAULT_REPORT_ROOT_CODES,
    ):
        self.tree = tree
        self.entries = [
            entry
            for entry in entries
            if entry.is_effective and entry.counts_for_year(academic_year_id)
        ]
        self.academic_year_id = academic_year_id
        self.report_root_codes = tuple(report_root_codes)
        self._effective: dict[str, Decimal] | None = None
        self._journal: dict[str, DebitCredit] | None = None

    # ------------------------------------------------------------------
    # Roll-up
    # ------------------------------------------------------------------

    def _post_order(self) -> list[Account]:
        """Every account, children before parents."""
        order: list[Account] = []
        visited: set[str] = set()
        starts = self.tree.roots() + [
            a for a in self.tree if a.parent_id is not None and a.parent_id not in self.tree
        ]
        for start in starts + self.tree.accounts():
            if start.id in visited:
                continue
            stack: list[tuple[Account, bool]] = [(start, False)]
            while stack:
                account, expanded = stack.pop()
                if expanded:
                    order.append(account)
                    continue
                if account.id in visited:
                    continue
                visited.add(account.id)
                stack.append((account, True))
                for child in reversed(self.tree.children_of(account.id)):
                    if child.id not in visited:
                        stack.append((child, False))
        return order

    def effective_balances(self) -> dict[str, Decimal]:
        """Stored balance of every account plus all of its descendants."""
        if self._effective is None:
            totals: dict[str, Decimal] = {}
            for account in self._post_order():
                subtotal = account.balance
                for child in self.tree.children_of(account.id):
                    subtotal += totals.get(child.id, ZERO)
                totals[account.id] = round_money(subtotal)
            self._effective = totals
        return self._effective

    def effective_balance(self, account_id: str) -> Decimal:
        return self.effective_balances().get(account_id, ZERO)

    def journal_base_totals(self) -> dict[str, DebitCredit]:
        """Counted journal lines bucketed by their own account (no roll-up)."""
        base: dict[str, DebitCredit] = {}
        for entry in self.entries:
            for line in entry.lines:
                base[line.account_id] = base.get(line.account_id, DebitCredit()) + DebitCredit(
                    line.debit, line.credit
                )
        return base

    def journal_totals(self) -> dict[str, DebitCredit]:
        """Journal debit/credit of every account plus all of its descendants."""
        if self._journal is None:
            base = self.journal_base_totals()
            totals: dict[str, DebitCredit] = {}
            for account in self._post_order():
                subtotal = base.get(account.id, DebitCredit())
                for child in self.tree.children_of(account.id):
                    subtotal = subtotal + totals.get(child.id, DebitCredit())
                totals[account.id] = subtotal.rounded()
            self._journal = totals
        return self._journal

    def display_totals(self, account_id: str) -> DebitCredit:
        journal = self.journal_totals().get(account_id, DebitCredit())
        if journal.is_zero:
            return DebitCredit.from_net(self.effective_balance(account_id))
        return journal

    def report_totals(self) -> DebitCredit:
        """Sum of the display pairs of the report roots (Equity excluded)."""
        total = DebitCredit()
        for code in self.report_root_codes:
            root = self.tree.find_by_code(code)
            if root is not None:
                total = total + self.display_totals(root.id)
        return total.rounded()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def rows(self, root_id: str | None = None) -> list[AccountRow]:
        """The tree flattened depth-first in code order."""
        starts = self.tree.roots() if root_id is None else [self.tree.require(root_id)]
        rows: list[AccountRow] = []
        seen: set[str] = set()
        stack: list[tuple[Account, int]] = [(a, 0) for a in reversed(starts)]
        while stack:
            account, depth = stack.pop()
            if account.id in seen:
                continue
            seen.add(account.id)
            rows.append(
                AccountRow(
                    account=account,
                    depth=depth,
                    effective_balance=self.effective_balance(account.id),
                    journal_totals=self.journal_totals().get(account.id, DebitCredit()),
                    display=self.display_totals(account.id),
                )
            )
            stack.extend(
                (child, depth + 1) for child in reversed(self.tree.children_of(account.id))
            )
        return rows

    def account_statement(self, account_id: str) -> AccountStatement:
        """
        Counted journal lines posted to one account, oldest first.

        Lines that repeat the same source document (same source_ref_id,
        debit and credit) are shown once.
        """
        account = self.tree.require(account_id)
        ordered = sorted(
            self.entries,
            key=lambda e: (e.entry_date or date.min, e.journal_no),
        )
        seen: set[str] = set()
        lines: list[StatementLine] = []
        running = ZERO
        total_debit = ZERO
        total_credit = ZERO
        for entry in ordered:
            for line in entry.lines:
                if line.account_id != account_id:
                    continue
                if entry.source_ref_id:
                    key = f"{entry.source_ref_id}:{line.debit}:{line.credit}"
                else:
                    key = f"{entry.id}:{line.id}"
                if key in seen:
                    continue
                seen.add(key)
                running += line.debit - line.credit
                total_debit += line.debit
                total_credit += line.credit
                lines.append(
                    StatementLine(
                        entry_id=entry.id,
                        journal_no=entry.journal_no,
                        entry_date=entry.entry_date,
                        description=line.note or entry.description,
                        source_ref_id=entry.source_ref_id,
                        debit=line.debit,
                        credit=line.credit,
                        running_balance=round_money(running),
                    )
                )
        return AccountStatement(
            account=account,
            lines=tuple(lines),
            total_debit=round_money(total_debit),
            total_credit=round_money(total_credit),
        )
