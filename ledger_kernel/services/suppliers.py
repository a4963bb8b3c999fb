"""
SupplierService -- supplier records, each owning a Liabilities leaf.

Responsibility:
    Keeps ``SCHOOL_SUPPLIERS_ACCOUNTS``.  Adding a supplier places a new
    leaf under the "Suppliers" folder of the Liabilities root (creating the
    folder on first use); renaming propagates to the leaf; deleting the
    supplier deletes the leaf through the guarded path.

Architecture position:
    Kernel > Services.  SatelliteService subclass.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Iterable
from uuid import uuid4

from ledger_kernel.domain.money import ZERO, to_decimal
from ledger_kernel.domain.settings import FolderPlacement
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.chart_of_accounts import ChartOfAccountsService
from ledger_kernel.services.satellite import SatelliteService
from ledger_kernel.storage.bridge import PersistenceBridge

logger = get_logger("services.suppliers")


@dataclass(frozen=True)
class SupplierAccount:
    id: str
    name: str
    gl_account_id: str
    gl_code: str
    balance: Decimal = ZERO
    is_active: bool = True
    has_previous_balance: bool = False
    commercial_record: str | None = None
    tax_card: str | None = None
    bank_account_number: str | None = None
    iban: str | None = None
    bank_name: str | None = None
    address: str | None = None
    contact_numbers: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "balance": str(self.balance),
            "glAccountId": self.gl_account_id,
            "glCode": self.gl_code,
            "isActive": self.is_active,
            "hasPreviousBalance": self.has_previous_balance,
        }
        optional = {
            "commercialRecord": self.commercial_record,
            "taxCard": self.tax_card,
            "bankAccountNumber": self.bank_account_number,
            "iban": self.iban,
            "bankName": self.bank_name,
            "address": self.address,
            "contactNumbers": self.contact_numbers,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SupplierAccount":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            gl_account_id=str(data["glAccountId"]),
            gl_code=str(data.get("glCode", "")),
            balance=to_decimal(data.get("balance")),
            is_active=bool(data.get("isActive", True)),
            has_previous_balance=bool(data.get("hasPreviousBalance", False)),
            commercial_record=data.get("commercialRecord"),
            tax_card=data.get("taxCard"),
            bank_account_number=data.get("bankAccountNumber"),
            iban=data.get("iban"),
            bank_name=data.get("bankName"),
            address=data.get("address"),
            contact_numbers=data.get("contactNumbers"),
        )


def encode_suppliers(records: Iterable[SupplierAccount]) -> list[dict[str, Any]]:
    return [record.to_dict() for record in records]


def decode_suppliers(data: Any) -> list[SupplierAccount]:
    return [SupplierAccount.from_dict(item) for item in data or ()]


# Optional descriptive fields.
_DETAILS = frozenset(
    {
        "commercial_record",
        "tax_card",
        "bank_account_number",
        "iban",
        "bank_name",
        "address",
        "contact_numbers",
    }
)
_EDITABLE = _DETAILS | {"name", "is_active", "has_previous_balance"}


class SupplierService(SatelliteService[SupplierAccount]):
    kind = "supplier"

    def __init__(
        self,
        chart: ChartOfAccountsService,
        bridge: PersistenceBridge[list[SupplierAccount]],
        folder: FolderPlacement,
    ):
        super().__init__(chart, bridge)
        self.folder = folder

    def record_id(self, record: SupplierAccount) -> str:
        return record.id

    def gl_account_id(self, record: SupplierAccount) -> str:
        return record.gl_account_id

    def suppliers(self) -> list[SupplierAccount]:
        return self.records()

    def add_supplier(
        self,
        name: str,
        balance: Any = None,
        *,
        has_previous_balance: bool = False,
        is_active: bool = True,
        **details: str | None,
    ) -> SupplierAccount:
        unknown = set(details) - _DETAILS
        if unknown:
            raise ValueError(f"Unknown supplier fields: {sorted(unknown)}")
        leaf = self.create_leaf(self.folder, name, balance)
        record = SupplierAccount(
            id=str(uuid4()),
            name=name.strip(),
            gl_account_id=leaf.id,
            gl_code=leaf.code,
            balance=leaf.balance,
            is_active=is_active,
            has_previous_balance=has_previous_balance,
            **details,
        )
        self.attach_record(leaf, record)
        logger.info(
            "supplier_added",
            extra={"supplier_id": record.id, "account_id": leaf.id, "account_code": leaf.code},
        )
        return record

    def update_supplier(self, supplier_id: str, **changes: Any) -> SupplierAccount:
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise ValueError(f"Unknown supplier fields: {sorted(unknown)}")
        self.chart.guard.require_open_year("update_supplier")
        record = self.require(supplier_id)
        if "name" in changes and changes["name"].strip() != record.name:
            changes["name"] = changes["name"].strip()
            self.chart.update_account(record.gl_account_id, name=changes["name"])
        updated = replace(record, **changes)
        self._replace(updated)
        logger.info("supplier_updated", extra={"supplier_id": supplier_id})
        return updated

    def delete_supplier(self, supplier_id: str) -> SupplierAccount:
        return self.delete_record(supplier_id)
