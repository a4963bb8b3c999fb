"""
TreasuryService -- bank and cash-safe records, each owning an Assets leaf.

Responsibility:
    Keeps ``SCHOOL_TREASURY_ACCOUNTS``.  A bank account lives under the
    "Banks" folder of Current Assets ("11"), a cash safe under "Cash Safe";
    either folder is created on first use.  Editing a record pushes its
    name and balance to the owned GL account; deleting it deletes the GL
    account through the guarded path, so a non-zero balance blocks it.

Architecture position:
    Kernel > Services.  SatelliteService subclass.

Invariants enforced:
    - The record's gl_account_id always names an existing Account while
      the record exists.
    - Balance edits go through ChartOfAccountsService.set_balance, never
      around the year-close gate.
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable
from uuid import uuid4

from ledger_kernel.domain.account import Account
from ledger_kernel.domain.money import ZERO, to_decimal
from ledger_kernel.domain.settings import FolderPlacement
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.chart_of_accounts import ChartOfAccountsService
from ledger_kernel.services.satellite import SatelliteService
from ledger_kernel.storage.bridge import PersistenceBridge

logger = get_logger("services.treasury")


class TreasuryType(str, Enum):
    BANK = "Bank"
    CASH_SAFE = "CashSafe"


@dataclass(frozen=True)
class TreasuryAccount:
    id: str
    name: str
    type: TreasuryType
    gl_account_id: str
    gl_code: str
    currency: str = "EGP"
    balance: Decimal = ZERO
    school_account_name: str = ""
    account_type: str = ""
    opening_date: date | None = None
    is_active: bool = True
    account_number: str | None = None
    bank_name: str | None = None
    iban: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "currency": self.currency,
            "balance": str(self.balance),
            "glAccountId": self.gl_account_id,
            "glCode": self.gl_code,
            "schoolAccountName": self.school_account_name,
            "accountType": self.account_type,
            "openingDate": self.opening_date.isoformat() if self.opening_date else None,
            "isActive": self.is_active,
        }
        optional = {
            "accountNumber": self.account_number,
            "bankName": self.bank_name,
            "iban": self.iban,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TreasuryAccount":
        opening = data.get("openingDate")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            type=TreasuryType(data.get("type", TreasuryType.BANK.value)),
            gl_account_id=str(data["glAccountId"]),
            gl_code=str(data.get("glCode", "")),
            currency=str(data.get("currency") or "EGP"),
            balance=to_decimal(data.get("balance")),
            school_account_name=str(data.get("schoolAccountName") or ""),
            account_type=str(data.get("accountType") or ""),
            opening_date=date.fromisoformat(str(opening)[:10]) if opening else None,
            is_active=bool(data.get("isActive", True)),
            account_number=data.get("accountNumber"),
            bank_name=data.get("bankName"),
            iban=data.get("iban"),
        )


def encode_treasury(records: Iterable[TreasuryAccount]) -> list[dict[str, Any]]:
    return [record.to_dict() for record in records]


def decode_treasury(data: Any) -> list[TreasuryAccount]:
    return [TreasuryAccount.from_dict(item) for item in data or ()]


_EDITABLE = frozenset(
    {
        "name",
        "balance",
        "school_account_name",
        "account_type",
        "opening_date",
        "is_active",
        "account_number",
        "bank_name",
        "iban",
    }
)


class TreasuryService(SatelliteService[TreasuryAccount]):
    kind = "treasury"

    def __init__(
        self,
        chart: ChartOfAccountsService,
        bridge: PersistenceBridge[list[TreasuryAccount]],
        bank_folder: FolderPlacement,
        cash_folder: FolderPlacement,
        default_currency: str = "EGP",
    ):
        super().__init__(chart, bridge)
        self.folders = {
            TreasuryType.BANK: bank_folder,
            TreasuryType.CASH_SAFE: cash_folder,
        }
        self.default_currency = default_currency

    def record_id(self, record: TreasuryAccount) -> str:
        return record.id

    def gl_account_id(self, record: TreasuryAccount) -> str:
        return record.gl_account_id

    def treasury_accounts(self) -> list[TreasuryAccount]:
        return self.records()

    def ensure_parent_folder(self, treasury_type: TreasuryType | str) -> Account:
        return self.ensure_folder(self.folders[TreasuryType(treasury_type)])

    def add_treasury_account(
        self,
        name: str,
        treasury_type: TreasuryType | str,
        balance: Any = None,
        *,
        currency: str | None = None,
        school_account_name: str = "",
        account_type: str = "",
        opening_date: date | None = None,
        is_active: bool = True,
        account_number: str | None = None,
        bank_name: str | None = None,
        iban: str | None = None,
    ) -> TreasuryAccount:
        treasury_type = TreasuryType(treasury_type)
        leaf = self.create_leaf(self.folders[treasury_type], name, balance)
        record = TreasuryAccount(
            id=str(uuid4()),
            name=name.strip(),
            type=treasury_type,
            gl_account_id=leaf.id,
            gl_code=leaf.code,
            currency=currency or self.default_currency,
            balance=leaf.balance,
            school_account_name=school_account_name,
            account_type=account_type,
            opening_date=opening_date,
            is_active=is_active,
            account_number=account_number,
            bank_name=bank_name,
            iban=iban,
        )
        self.attach_record(leaf, record)
        logger.info(
            "treasury_account_added",
            extra={
                "treasury_id": record.id,
                "treasury_type": treasury_type.value,
                "account_id": leaf.id,
                "account_code": leaf.code,
            },
        )
        return record

    def update_treasury_account(self, treasury_id: str, **changes: Any) -> TreasuryAccount:
        """Edit a record; name and balance are written through to the GL."""
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise ValueError(f"Unknown treasury fields: {sorted(unknown)}")
        self.chart.guard.require_open_year("update_treasury")
        record = self.require(treasury_id)

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if changes["name"] != record.name:
                self.chart.update_account(record.gl_account_id, name=changes["name"])
        if "balance" in changes:
            changes["balance"] = to_decimal(changes["balance"])
            self.chart.set_balance(record.gl_account_id, changes["balance"])
            changes["balance"] = self.chart.tree.require(record.gl_account_id).balance

        updated = replace(record, **changes)
        self._replace(updated)
        logger.info(
            "treasury_account_updated",
            extra={"treasury_id": treasury_id, "fields": sorted(changes)},
        )
        return updated

    def delete_treasury_account(self, treasury_id: str) -> TreasuryAccount:
        return self.delete_record(treasury_id)
