"""
LedgerMutationGuard: every precondition on a chart change, and its order.

Delete is checked in a fixed order: open year, exists, no children, not a
system root, not locked, zero balance, no APPROVED/POSTED journal line.
"""

import pytest

from ledger_kernel.domain.account import Account, AccountLevel, AccountType
from ledger_kernel.exceptions import (
    AccountHasChildrenError,
    AccountLockedError,
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountCodeError,
    DuplicateAccountIdError,
    FinancialYearClosedError,
    InvalidAccountCodeError,
    NonZeroBalanceError,
    ParentAccountNotFoundError,
    SystemAccountError,
)
from ledger_kernel.services.balance_poster import Posting
from ledger_kernel.services.journal_log import make_line


def _leaf(id, code, parent_id, type=AccountType.ASSET):
    return Account(
        id=id,
        code=code,
        name=f"Leaf {code}",
        type=type,
        level=AccountLevel.LEAF,
        parent_id=parent_id,
        is_main=False,
    )


class TestAddAccount:
    def test_duplicate_code_rejected_and_tree_unchanged(self, ledger, account_by_code):
        current = account_by_code("11")
        before = len(ledger.chart.accounts())

        with pytest.raises(DuplicateAccountCodeError) as exc_info:
            ledger.chart.add_account(_leaf("NEW", "1102", current.id))

        assert exc_info.value.existing_id == "ACC-1102-BANKS"
        assert len(ledger.chart.accounts()) == before

    @pytest.mark.parametrize("code", ["", "  ", "11A", "-5"])
    def test_invalid_code(self, ledger, account_by_code, code):
        with pytest.raises(InvalidAccountCodeError):
            ledger.chart.add_account(_leaf("NEW", code, account_by_code("11").id))

    def test_code_is_trimmed(self, ledger, account_by_code):
        added = ledger.chart.add_account(_leaf("NEW", " 1150 ", account_by_code("11").id))
        assert added.code == "1150"
        assert ledger.chart.find_by_code("1150").id == "NEW"

    def test_duplicate_id(self, ledger, account_by_code):
        with pytest.raises(DuplicateAccountIdError):
            ledger.chart.add_account(_leaf("ACC-1101-CASH", "1199", account_by_code("11").id))

    def test_unknown_parent(self, ledger):
        with pytest.raises(ParentAccountNotFoundError):
            ledger.chart.add_account(_leaf("NEW", "1199", "GHOST"))

    def test_rejection_is_logged(self, ledger, account_by_code, captured_logs):
        with pytest.raises(DuplicateAccountCodeError):
            ledger.chart.add_account(_leaf("NEW", "1101", account_by_code("11").id))
        rejected = [r for r in captured_logs() if r["message"] == "mutation_rejected"]
        assert rejected[-1]["error_code"] == "DUPLICATE_ACCOUNT_CODE"
        assert rejected[-1]["operation"] == "add_account"


class TestUpdateAccount:
    def test_rename(self, ledger, account_by_code):
        updated = ledger.chart.update_account(account_by_code("12").id, name="Property")
        assert updated.name == "Property"
        assert account_by_code("12").name == "Property"

    def test_unknown_field(self, ledger, account_by_code):
        with pytest.raises(ValueError, match="not patchable"):
            ledger.chart.update_account(account_by_code("12").id, balance=5)

    def test_missing_account(self, ledger):
        with pytest.raises(AccountNotFoundError):
            ledger.chart.update_account("GHOST", name="x")

    def test_code_collision(self, ledger, account_by_code):
        with pytest.raises(DuplicateAccountCodeError):
            ledger.chart.update_account(account_by_code("12").id, code="13")

    def test_same_code_is_not_a_collision(self, ledger, account_by_code):
        updated = ledger.chart.update_account(account_by_code("12").id, code="12")
        assert updated.code == "12"

    def test_root_type_change_refused(self, ledger, account_by_code):
        with pytest.raises(SystemAccountError):
            ledger.chart.update_account(account_by_code("1").id, type="Expense")

    def test_type_change_with_children_refused(self, ledger, account_by_code):
        with pytest.raises(AccountHasChildrenError):
            ledger.chart.update_account(account_by_code("11").id, type=AccountType.EXPENSE)

    def test_leaf_type_change_allowed(self, ledger, account_by_code):
        updated = ledger.chart.update_account(account_by_code("15").id, type="Expense")
        assert updated.type is AccountType.EXPENSE

    def test_locked_account_refuses_structure_but_allows_rename(self, ledger, account_by_code):
        ledger.chart.lock_account(account_by_code("13").id)
        with pytest.raises(AccountLockedError):
            ledger.chart.update_account(account_by_code("13").id, code="1300")
        renamed = ledger.chart.update_account(account_by_code("13").id, name="Receivables")
        assert renamed.locked and renamed.name == "Receivables"

    def test_reparent_under_descendant_refused(self, ledger, account_by_code):
        with pytest.raises(ParentAccountNotFoundError):
            ledger.chart.update_account(
                account_by_code("11").id, parent_id=account_by_code("1101").id
            )

    def test_reparent_under_itself_refused(self, ledger, account_by_code):
        current = account_by_code("11")
        with pytest.raises(ParentAccountNotFoundError):
            ledger.chart.update_account(current.id, parent_id=current.id)

    def test_root_cannot_move(self, ledger, account_by_code):
        with pytest.raises(SystemAccountError):
            ledger.chart.update_account(
                account_by_code("3").id, parent_id=account_by_code("2").id
            )

    def test_reparent(self, ledger, account_by_code):
        moved = ledger.chart.update_account(
            account_by_code("15").id, parent_id=account_by_code("11").id
        )
        assert moved.parent_id == "ACC-11-CURRENT"
        assert "ACC-15-ADVANCES" in [a.id for a in ledger.chart.children_of("ACC-11-CURRENT")]

    def test_level_is_clamped(self, ledger, account_by_code):
        updated = ledger.chart.update_account(account_by_code("15").id, level=9)
        assert updated.level is AccountLevel.LEAF


class TestDeleteOrder:
    def test_closed_year_is_checked_first(self, ledger):
        ledger.close_year()
        with pytest.raises(FinancialYearClosedError):
            ledger.chart.delete_account("GHOST")

    def test_missing(self, ledger):
        with pytest.raises(AccountNotFoundError):
            ledger.chart.delete_account("GHOST")

    def test_children_before_system_root(self, ledger, account_by_code):
        with pytest.raises(AccountHasChildrenError) as exc_info:
            ledger.chart.delete_account(account_by_code("1").id)
        assert exc_info.value.child_count == 5

    def test_childless_system_root(self, ledger, account_by_code):
        with pytest.raises(SystemAccountError):
            ledger.chart.delete_account(account_by_code("3").id)

    def test_locked_before_balance(self, ledger, account_by_code):
        advances = account_by_code("15")
        ledger.poster.post_transactions([Posting(advances.id, "10")])
        ledger.chart.lock_account(advances.id)
        with pytest.raises(AccountLockedError):
            ledger.chart.delete_account(advances.id)

    def test_non_zero_balance(self, ledger, account_by_code):
        fees = account_by_code("4305")
        ledger.poster.post_transactions([Posting(fees.id, "-10")])
        with pytest.raises(NonZeroBalanceError) as exc_info:
            ledger.chart.delete_account(fees.id)
        assert exc_info.value.balance == "-10.00"

    def test_referenced_by_posted_entry(self, ledger, account_by_code):
        other = account_by_code("5105")
        cash = account_by_code("1101")
        entry = ledger.journal.add_entry(
            "Supplies", [make_line(other.id, debit=40), make_line(cash.id, credit=40)],
            source="payments",
        )
        with pytest.raises(AccountReferencedError) as exc_info:
            ledger.chart.delete_account(other.id)
        assert exc_info.value.entry_ids == [entry.id]

    def test_draft_entries_do_not_block(self, ledger, account_by_code):
        prints = account_by_code("5104")
        ledger.journal.add_entry("Draft", [make_line(prints.id, debit=5)])
        ledger.chart.delete_account(prints.id)
        assert ledger.chart.find_by_code("5104") is None

    def test_clean_leaf_is_deleted(self, ledger, account_by_code):
        deleted = ledger.chart.delete_account(account_by_code("4306").id)
        assert deleted.code == "4306"
        assert ledger.chart.get_account(deleted.id) is None


class TestPostingTargets:
    def test_unknown_target_rejects_whole_batch(self, ledger, account_by_code):
        cash = account_by_code("1101")
        with pytest.raises(AccountNotFoundError):
            ledger.poster.post_transactions([Posting(cash.id, 10), Posting("GHOST", 5)])
        assert account_by_code("1101").balance == 0
