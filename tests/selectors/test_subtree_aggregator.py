"""
SubtreeAggregator: roll-ups, the display rule, report totals and statements.

Pure read side: trees and journal entries are built in memory.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.account import Account, AccountLevel, AccountType
from ledger_kernel.domain.account_tree import AccountTree
from ledger_kernel.domain.journal import JournalEntry, JournalLine, JournalStatus
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.selectors import DebitCredit, SubtreeAggregator

YEAR = "2024-2025"


def _account(id, code, parent_id=None, balance="0", type=AccountType.ASSET):
    return Account(
        id=id,
        code=code,
        name=f"Account {code}",
        type=type,
        level=AccountLevel.ROOT if parent_id is None else AccountLevel.LEAF,
        parent_id=parent_id,
        is_main=parent_id is None,
        balance=Decimal(balance),
    )


def _entry(no, lines, status=JournalStatus.APPROVED, year=YEAR, on=None, ref=None):
    return JournalEntry(
        id=f"JE-{no}",
        journal_no=no,
        entry_date=on or date(2024, 10, no),
        description=f"entry {no}",
        source="manual",
        status=status,
        lines=tuple(
            JournalLine(f"L{no}-{i}", account_id, Decimal(debit), Decimal(credit))
            for i, (account_id, debit, credit) in enumerate(lines)
        ),
        academic_year_id=year,
        source_ref_id=ref,
    )


@pytest.fixture
def tree():
    return AccountTree(
        [
            _account("ASSETS", "1", balance="1"),
            _account("CASH", "11", "ASSETS", balance="100"),
            _account("SAFE", "1101", "CASH", balance="50.255"),
            _account("BANK", "1102", "CASH", balance="-20"),
            _account("LIAB", "2", type=AccountType.LIABILITY),
            _account("SUPP", "22", "LIAB", balance="-300", type=AccountType.LIABILITY),
            _account("EQUITY", "3", balance="-999", type=AccountType.EQUITY),
            _account("REV", "4", type=AccountType.REVENUE),
            _account("FEES", "43", "REV", type=AccountType.REVENUE),
            _account("EXP", "5", type=AccountType.EXPENSE),
        ]
    )


class TestEffectiveBalance:
    def test_rolls_up_own_plus_descendants(self, tree):
        agg = SubtreeAggregator(tree)
        assert agg.effective_balance("SAFE") == Decimal("50.26")
        assert agg.effective_balance("CASH") == Decimal("130.26")
        assert agg.effective_balance("ASSETS") == Decimal("131.26")
        assert agg.effective_balance("LIAB") == Decimal("-300.00")

    def test_unknown_id_is_zero(self, tree):
        assert SubtreeAggregator(tree).effective_balance("NOPE") == 0

    def test_parent_cycle_terminates(self):
        looped = AccountTree(
            [_account("A", "7", "B", balance="5"), _account("B", "8", "A", balance="7")]
        )
        balances = SubtreeAggregator(looped).effective_balances()
        assert set(balances) == {"A", "B"}


class TestJournalTotals:
    def test_rolls_up_counted_lines(self, tree):
        entries = [_entry(1, [("SAFE", "40", "0"), ("FEES", "0", "40")])]
        agg = SubtreeAggregator(tree, entries, academic_year_id=YEAR)
        assert agg.journal_totals()["ASSETS"] == DebitCredit(Decimal("40.00"), Decimal("0.00"))
        assert agg.journal_totals()["REV"].credit == Decimal("40.00")

    @pytest.mark.parametrize("status", [JournalStatus.DRAFT, JournalStatus.REJECTED])
    def test_uncounted_statuses(self, tree, status):
        entries = [_entry(1, [("SAFE", "40", "0")], status=status)]
        agg = SubtreeAggregator(tree, entries, academic_year_id=YEAR)
        assert agg.journal_totals()["SAFE"].is_zero

    def test_year_filter(self, tree):
        entries = [
            _entry(1, [("SAFE", "10", "0")]),
            _entry(2, [("SAFE", "5", "0")], year=None),
            _entry(3, [("SAFE", "1000", "0")], year="2023-2024"),
        ]
        agg = SubtreeAggregator(tree, entries, academic_year_id=YEAR)
        assert agg.journal_totals()["SAFE"].debit == Decimal("15.00")


class TestDisplayRule:
    def test_journal_wins_when_non_zero(self, tree):
        entries = [_entry(1, [("SAFE", "40", "0")])]
        agg = SubtreeAggregator(tree, entries, academic_year_id=YEAR)
        # the stored balance of 50.26 is not blended in
        assert agg.display_totals("SAFE") == DebitCredit(Decimal("40.00"), Decimal("0.00"))

    def test_balance_shown_single_sided(self, tree):
        agg = SubtreeAggregator(tree)
        assert agg.display_totals("BANK") == DebitCredit(credit=Decimal("20.00"))
        assert agg.display_totals("CASH") == DebitCredit(debit=Decimal("130.26"))
        assert agg.display_totals("EXP").is_zero

    def test_rows_carry_display_choice(self, tree):
        entries = [_entry(1, [("SAFE", "40", "0")])]
        rows = SubtreeAggregator(tree, entries, academic_year_id=YEAR).rows()
        by_id = {row.account.id: row for row in rows}
        assert by_id["SAFE"].uses_journal
        assert not by_id["BANK"].uses_journal


class TestReportTotals:
    def test_equity_excluded(self, tree):
        totals = SubtreeAggregator(tree).report_totals()
        assert totals == DebitCredit(Decimal("131.26"), Decimal("300.00"))

    def test_custom_root_list(self, tree):
        totals = SubtreeAggregator(tree, report_root_codes=("3",)).report_totals()
        assert totals == DebitCredit(credit=Decimal("999.00"))

    def test_missing_root_codes_skipped(self, tree):
        totals = SubtreeAggregator(tree, report_root_codes=("9",)).report_totals()
        assert totals.is_zero


class TestRows:
    def test_depth_first_code_order(self, tree):
        rows = SubtreeAggregator(tree).rows()
        assert [r.account.code for r in rows] == [
            "1", "11", "1101", "1102", "2", "22", "3", "4", "43", "5",
        ]
        assert [r.depth for r in rows[:4]] == [0, 1, 2, 2]

    def test_subtree_rows(self, tree):
        rows = SubtreeAggregator(tree).rows("CASH")
        assert [r.account.code for r in rows] == ["11", "1101", "1102"]


class TestStatement:
    def test_ordered_with_running_balance(self, tree):
        entries = [
            _entry(2, [("SAFE", "0", "15")], on=date(2024, 10, 5)),
            _entry(1, [("SAFE", "100", "0")], on=date(2024, 10, 5)),
            _entry(3, [("SAFE", "20", "0")], on=date(2024, 9, 1)),
        ]
        statement = SubtreeAggregator(tree, entries, academic_year_id=YEAR).account_statement(
            "SAFE"
        )
        assert [line.journal_no for line in statement.lines] == [3, 1, 2]
        assert [line.running_balance for line in statement.lines] == [
            Decimal("20.00"),
            Decimal("120.00"),
            Decimal("105.00"),
        ]
        assert statement.closing_balance == Decimal("105.00")

    def test_repeated_source_document_shown_once(self, tree):
        entries = [
            _entry(1, [("SAFE", "100", "0")], ref="RCPT-9"),
            _entry(2, [("SAFE", "100", "0")], ref="RCPT-9"),
            _entry(3, [("SAFE", "100", "0")], ref="RCPT-10"),
        ]
        statement = SubtreeAggregator(tree, entries, academic_year_id=YEAR).account_statement(
            "SAFE"
        )
        assert [line.journal_no for line in statement.lines] == [1, 3]
        assert statement.total_debit == Decimal("200.00")

    def test_lines_without_reference_are_all_kept(self, tree):
        entries = [_entry(1, [("SAFE", "10", "0"), ("SAFE", "10", "0")])]
        statement = SubtreeAggregator(tree, entries, academic_year_id=YEAR).account_statement(
            "SAFE"
        )
        assert len(statement.lines) == 2

    def test_unknown_account(self, tree):
        with pytest.raises(AccountNotFoundError):
            SubtreeAggregator(tree).account_statement("NOPE")
