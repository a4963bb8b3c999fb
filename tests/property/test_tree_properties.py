"""
Property-based tests for the chart of accounts.

Properties:
- The effective balance of every node is its own balance plus the
  effective balances of its children; over a whole forest the roots sum
  to the sum of every stored balance.
- Generated child codes keep the parent prefix, are unused, and strictly
  increase however the existing children are numbered.
- Folding postings per account preserves the batch total.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from ledger_kernel.domain.account import Account, AccountLevel, AccountType
from ledger_kernel.domain.account_tree import AccountTree
from ledger_kernel.domain.code_generator import next_child_code
from ledger_kernel.selectors import SubtreeAggregator
from ledger_kernel.services.balance_poster import Posting, fold_deltas

pytestmark = pytest.mark.slow

amounts = st.decimals(
    min_value=Decimal("-99999.99"),
    max_value=Decimal("99999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


def _account(id, code, parent_id, balance=Decimal("0")):
    return Account(
        id=id,
        code=code,
        name=f"Account {code}",
        type=AccountType.ASSET,
        level=AccountLevel.ROOT if parent_id is None else AccountLevel.LEAF,
        parent_id=parent_id,
        is_main=parent_id is None,
        balance=balance,
    )


@composite
def forests(draw):
    """Random forests: node i hangs under an earlier node or is a root."""
    size = draw(st.integers(min_value=1, max_value=30))
    accounts = []
    for i in range(size):
        parent = draw(st.integers(min_value=-1, max_value=i - 1))
        accounts.append(
            _account(
                f"N{i}",
                str(100 + i),
                None if parent < 0 else f"N{parent}",
                draw(amounts),
            )
        )
    return AccountTree(accounts)


class TestRollupProperties:
    @given(tree=forests())
    @settings(max_examples=50, deadline=None)
    def test_node_equals_own_plus_children(self, tree):
        agg = SubtreeAggregator(tree)
        for account in tree:
            children = sum(
                (agg.effective_balance(c.id) for c in tree.children_of(account.id)),
                Decimal("0"),
            )
            assert agg.effective_balance(account.id) == account.balance + children

    @given(tree=forests())
    @settings(max_examples=50, deadline=None)
    def test_roots_sum_to_all_balances(self, tree):
        agg = SubtreeAggregator(tree)
        roots_total = sum((agg.effective_balance(r.id) for r in tree.roots()), Decimal("0"))
        assert roots_total == sum((a.balance for a in tree), Decimal("0"))


class TestCodeGenerationProperties:
    @given(
        existing=st.sets(st.integers(min_value=1, max_value=150), max_size=20),
        count=st.integers(min_value=1, max_value=12),
    )
    @settings(max_examples=50, deadline=None)
    def test_codes_are_prefixed_unused_and_increasing(self, existing, count):
        tree = AccountTree(
            [_account("P", "11", None)]
            + [_account(f"C{n}", f"11{n:02d}", "P") for n in sorted(existing)]
        )
        previous = max(existing, default=0)
        for i in range(count):
            code = next_child_code(tree, "P", width=2)
            assert code.startswith("11")
            assert tree.find_by_code(code) is None
            suffix = int(code[2:])
            assert suffix > previous
            previous = suffix
            tree.insert(_account(f"G{i}", code, "P"))


class TestFoldProperties:
    @given(
        postings=st.lists(
            st.tuples(st.sampled_from(["A", "B", "C", "D"]), amounts), max_size=40
        )
    )
    @settings(max_examples=50, deadline=None)
    def test_fold_preserves_total(self, postings):
        batch = [Posting(account_id, amount) for account_id, amount in postings]
        deltas = fold_deltas(batch)
        assert sum(deltas.values(), Decimal("0")) == sum(
            (p.amount for p in batch), Decimal("0")
        )
        assert set(deltas) == {p.account_id for p in batch}
