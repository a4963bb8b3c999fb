"""
Supplier and treasury records, each owning one GL leaf.

Creation is two-phase (folder -> leaf -> record); deletion goes through
the guarded account delete, so a non-zero balance blocks it.  The chart
refuses to delete an owned leaf on its own.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.settings import FolderPlacement
from ledger_kernel.exceptions import (
    FinancialYearClosedError,
    FolderNotFoundError,
    NonZeroBalanceError,
    OptimisticLockError,
    SatelliteNotFoundError,
    SatelliteOwnedAccountError,
)
from ledger_kernel.services.treasury import TreasuryType


class TestTreasury:
    def test_bank_account_lands_under_banks_folder(self, ledger, account_by_code):
        record = ledger.treasury.add_treasury_account(
            "National Bank", TreasuryType.BANK, "500", bank_name="NBE", iban="EG00"
        )
        leaf = ledger.chart.get_account(record.gl_account_id)

        assert leaf.parent_id == account_by_code("1102").id
        assert record.gl_code == leaf.code == "110201"
        assert leaf.balance == record.balance == Decimal("500.00")
        assert record.currency == "EGP"
        assert not leaf.is_main

    def test_cash_safe_lands_under_cash_folder(self, ledger):
        record = ledger.treasury.add_treasury_account("Main Safe", "CashSafe")
        assert record.gl_code == "110101"
        assert record.type is TreasuryType.CASH_SAFE

    def test_missing_folder_is_created_once(self, make_ledger, settings):
        ledger = make_ledger(
            replace(settings, bank_folder=FolderPlacement("11", "Bank Accounts"))
        )
        first = ledger.treasury.add_treasury_account("A", TreasuryType.BANK)
        second = ledger.treasury.add_treasury_account("B", TreasuryType.BANK)

        folder = ledger.chart.find_by_code("1103")
        assert folder.name == "Bank Accounts" and folder.is_main
        assert (first.gl_code, second.gl_code) == ("110301", "110302")

    def test_missing_anchor(self, make_ledger, settings):
        ledger = make_ledger(replace(settings, bank_folder=FolderPlacement("99", "Banks")))
        with pytest.raises(FolderNotFoundError):
            ledger.treasury.add_treasury_account("A", TreasuryType.BANK)
        assert ledger.treasury.treasury_accounts() == []

    def test_delete_blocked_by_balance(self, ledger):
        record = ledger.treasury.add_treasury_account("Bank", TreasuryType.BANK, "500")
        with pytest.raises(NonZeroBalanceError):
            ledger.treasury.delete_treasury_account(record.id)
        assert ledger.treasury.get(record.id) is not None
        assert ledger.chart.get_account(record.gl_account_id) is not None

    def test_zeroed_account_deletes_record_and_leaf(self, ledger):
        record = ledger.treasury.add_treasury_account("Bank", TreasuryType.BANK, "500")
        ledger.treasury.update_treasury_account(record.id, balance=0)

        ledger.treasury.delete_treasury_account(record.id)

        assert ledger.treasury.get(record.id) is None
        assert ledger.chart.get_account(record.gl_account_id) is None

    def test_edit_writes_name_and_balance_through(self, ledger):
        record = ledger.treasury.add_treasury_account("Bank", TreasuryType.BANK)
        updated = ledger.treasury.update_treasury_account(
            record.id, name="  Bank of Cairo ", balance="75.5", opening_date=date(2024, 9, 1)
        )
        leaf = ledger.chart.get_account(record.gl_account_id)
        assert updated.name == leaf.name == "Bank of Cairo"
        assert updated.balance == leaf.balance == Decimal("75.50")
        assert updated.opening_date == date(2024, 9, 1)

    def test_unknown_edit_field(self, ledger):
        record = ledger.treasury.add_treasury_account("Bank", TreasuryType.BANK)
        with pytest.raises(ValueError):
            ledger.treasury.update_treasury_account(record.id, gl_code="1")

    def test_closed_year_blocks_creation(self, ledger):
        ledger.close_year()
        with pytest.raises(FinancialYearClosedError):
            ledger.treasury.add_treasury_account("Late", TreasuryType.BANK)
        assert ledger.treasury.treasury_accounts() == []

    def test_records_survive_reopen(self, ledger, make_ledger):
        record = ledger.treasury.add_treasury_account(
            "Bank", TreasuryType.BANK, "10", opening_date=date(2024, 9, 1)
        )
        reopened = make_ledger(shared_bus=False)
        assert reopened.treasury.require(record.id) == record

    def test_chart_refuses_to_delete_owned_leaf(self, ledger, captured_logs):
        record = ledger.treasury.add_treasury_account("Main Bank", "Bank", 0)

        with pytest.raises(SatelliteOwnedAccountError) as exc_info:
            ledger.chart.delete_account(record.gl_account_id)

        assert exc_info.value.record_id == record.id
        assert exc_info.value.kind == "treasury"
        assert ledger.treasury.get(record.id) == record
        assert ledger.chart.get_account(record.gl_account_id) is not None
        rejected = [r for r in captured_logs() if r["message"] == "mutation_rejected"]
        assert rejected[-1]["error_code"] == "SATELLITE_OWNED_ACCOUNT"

    def test_owned_leaf_stays_after_reopen(self, ledger, make_ledger):
        record = ledger.treasury.add_treasury_account("Main Bank", "Bank", 0)
        reopened = make_ledger(shared_bus=False)
        with pytest.raises(SatelliteOwnedAccountError):
            reopened.chart.delete_account(record.gl_account_id)

    def test_failed_record_commit_removes_leaf(self, ledger, make_ledger, captured_logs):
        first = ledger.treasury.add_treasury_account("Bank A", TreasuryType.BANK)
        other_screen = make_ledger(shared_bus=False)
        ledger.treasury.update_treasury_account(first.id, iban="EG11")

        with pytest.raises(OptimisticLockError):
            other_screen.treasury.add_treasury_account("Bank B", TreasuryType.BANK)

        assert other_screen.chart.find_by_code("110202") is None
        fresh = make_ledger(shared_bus=False)
        assert fresh.chart.find_by_code("110202") is None
        assert [r.id for r in fresh.treasury.treasury_accounts()] == [first.id]
        assert any(r["message"] == "satellite_leaf_rolled_back" for r in captured_logs())


class TestSuppliers:
    def test_supplier_owns_liability_leaf(self, ledger, account_by_code):
        supplier = ledger.suppliers.add_supplier(
            "Stationery Co", "1200", has_previous_balance=True, tax_card="TC-9"
        )
        leaf = ledger.chart.get_account(supplier.gl_account_id)
        assert leaf.parent_id == account_by_code("22").id
        assert supplier.gl_code == "2201"
        assert leaf.type.value == "Liability"
        assert supplier.tax_card == "TC-9"

    def test_rename_propagates_to_leaf(self, ledger):
        supplier = ledger.suppliers.add_supplier("Old Name")
        ledger.suppliers.update_supplier(supplier.id, name="New Name", address="Cairo")
        assert ledger.chart.get_account(supplier.gl_account_id).name == "New Name"
        assert ledger.suppliers.require(supplier.id).address == "Cairo"

    def test_unknown_detail_field(self, ledger):
        with pytest.raises(ValueError):
            ledger.suppliers.add_supplier("X", website="example.org")

    def test_delete_supplier(self, ledger):
        supplier = ledger.suppliers.add_supplier("Temp")
        ledger.suppliers.delete_supplier(supplier.id)
        assert ledger.suppliers.suppliers() == []
        assert ledger.chart.get_account(supplier.gl_account_id) is None

    def test_unknown_supplier(self, ledger):
        with pytest.raises(SatelliteNotFoundError):
            ledger.suppliers.delete_supplier("missing")

    def test_chart_refuses_to_delete_supplier_leaf(self, ledger):
        supplier = ledger.suppliers.add_supplier("Uniforms Ltd")
        with pytest.raises(SatelliteOwnedAccountError):
            ledger.chart.delete_account(supplier.gl_account_id)
        assert ledger.suppliers.require(supplier.id) == supplier
        assert ledger.chart.get_account(supplier.gl_account_id) is not None

    def test_record_without_leaf_is_still_removed(self, ledger, captured_logs):
        supplier = ledger.suppliers.add_supplier("Gone Co")
        ledger.chart.apply(lambda tree: tree.remove(supplier.gl_account_id))

        ledger.suppliers.delete_supplier(supplier.id)

        assert ledger.suppliers.suppliers() == []
        assert any(r["message"] == "satellite_account_missing" for r in captured_logs())
