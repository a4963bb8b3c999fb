"""
BalancePoster -- batch balance adjustment.

Responsibility:
    Applies a batch of signed amounts to account balances in one atomic
    pass: the batch is folded into one delta per account, every target is
    checked, and the resulting chart is committed once.

Architecture position:
    Kernel > Services.  Called by the journal service on approval and by
    integrations (receipts, cheque clearance, payroll) directly.

Invariants enforced:
    - Unknown account ids reject the whole batch before any change.
    - Mutated balances are rounded to 2 places (ROUND_HALF_UP); accounts
      not touched by the batch keep their object identity.
    - No balancing check: a batch need not net to zero.
    - No posting while the active financial year is closed.

Failure modes:
    - AccountNotFoundError, FinancialYearClosedError (via the guard).
    - ValueError for a non-numeric amount.
    - OptimisticLockError from storage.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from ledger_kernel.domain.account import Account
from ledger_kernel.domain.money import ZERO, round_money, to_decimal
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.chart_of_accounts import ChartOfAccountsService

logger = get_logger("services.balance_poster")


@dataclass(frozen=True)
class Posting:
    """A signed adjustment to one account's own balance."""

    account_id: str
    amount: Decimal
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


def fold_deltas(postings: Iterable[Posting]) -> dict[str, Decimal]:
    """Sum amounts per account, preserving first-seen order."""
    deltas: dict[str, Decimal] = {}
    for posting in postings:
        deltas[posting.account_id] = deltas.get(posting.account_id, ZERO) + posting.amount
    return deltas


class BalancePoster:
    """
    Posts balance deltas through the chart service.

    Contract:
        ``post_transactions`` is all-or-nothing within this context.

    Non-goals:
        - Does NOT write journal entries; callers that need an audit
          trail create one through JournalLogService.
    """

    def __init__(self, chart: ChartOfAccountsService):
        self.chart = chart

    def post_transactions(self, postings: Iterable[Posting]) -> list[Account]:
        """Apply the batch; returns the accounts whose balance changed."""
        postings = list(postings)
        self.chart.guard.require_open_year("post_transactions")
        if not postings:
            return []

        deltas = fold_deltas(postings)
        self.chart.guard.check_postings(self.chart.tree, deltas)
        changed = self.chart.apply(lambda tree: tree.apply_deltas(deltas))

        logger.info(
            "transactions_posted",
            extra={
                "posting_count": len(postings),
                "account_count": len(changed),
                "net_amount": round_money(sum(deltas.values(), ZERO)),
            },
        )
        return changed

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Any,
        description: str | None = None,
    ) -> list[Account]:
        """Move ``amount`` from one account's balance to another's."""
        value = to_decimal(amount)
        return self.post_transactions(
            [
                Posting(to_account_id, value, description),
                Posting(from_account_id, -value, description),
            ]
        )

    def reverse(self, postings: Iterable[Posting]) -> list[Account]:
        """Post the negation of an earlier batch."""
        return self.post_transactions(
            Posting(p.account_id, -p.amount, p.description) for p in postings
        )
