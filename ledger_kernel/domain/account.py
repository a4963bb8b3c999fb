"""
Account -- chart-of-accounts node value object.

Responsibility:
    Defines the immutable ``Account`` record held by the AccountTree, its
    enumerations (``AccountType``, ``AccountLevel``), the numeric-aware code
    ordering, and the JSON wire shape used by the document store.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Accounts are frozen; every change produces a new object via
      ``dataclasses.replace`` so unaffected accounts keep their identity.
    - ``balance`` is always a Decimal rounded to two places.
    - Codes compare numerically ("10" sorts after "9").

Failure modes:
    - ValueError from ``Account.from_dict`` on an unknown account type or a
      non-numeric balance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any

from ledger_kernel.domain.money import ZERO, round_money, to_decimal


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"

    @classmethod
    def parse(cls, value: "AccountType | str") -> "AccountType":
        """Accept enum members, display values, or upper-case names."""
        if isinstance(value, AccountType):
            return value
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        raise ValueError(f"Unknown account type: {value!r}")


class AccountLevel(IntEnum):
    """Coarse hierarchy marker; not enforced against actual tree depth."""

    ROOT = 1
    BRANCH = 2
    LEAF = 3

    @classmethod
    def clamp(cls, value: int) -> "AccountLevel":
        return cls(min(max(int(value), cls.ROOT), cls.LEAF))

    def child_level(self) -> "AccountLevel":
        return AccountLevel.clamp(self + 1)


# The five permanent root accounts, by code.
ROOT_ACCOUNT_CODES: frozenset[str] = frozenset({"1", "2", "3", "4", "5"})

# Root account each type hangs under when no parent is given.
TYPE_ROOT_CODES: dict[AccountType, str] = {
    AccountType.ASSET: "1",
    AccountType.LIABILITY: "2",
    AccountType.EQUITY: "3",
    AccountType.REVENUE: "4",
    AccountType.EXPENSE: "5",
}

_CODE_CHUNK = re.compile(r"(\d+)")


def code_sort_key(code: str) -> tuple:
    """Natural sort key: digit runs compare as integers."""
    return tuple(
        (0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk)
        for chunk in _CODE_CHUNK.split(code)
        if chunk
    )


@dataclass(frozen=True)
class Account:
    """
    Chart of Accounts entry -- a single node of the account forest.

    Contract:
        ``code`` is unique across the forest (enforced by the mutation
        guard, not here).  ``parent_id`` is None only for root accounts.
        ``balance`` is the account's own balance, excluding descendants.

    Non-goals:
        - Does NOT know its children; the AccountTree indexes those.
    """

    id: str
    code: str
    name: str
    type: AccountType
    level: AccountLevel
    parent_id: str | None
    is_main: bool
    balance: Decimal = ZERO
    is_system: bool = False
    system_tag: str | None = None
    locked: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", AccountType.parse(self.type))
        object.__setattr__(self, "level", AccountLevel.clamp(self.level))
        object.__setattr__(self, "balance", round_money(to_decimal(self.balance)))

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_system_root(self) -> bool:
        """One of the five permanent roots (codes "1".."5", no parent)."""
        return self.parent_id is None and self.code in ROOT_ACCOUNT_CODES

    def with_balance(self, balance: Decimal) -> Account:
        return replace(self, balance=round_money(balance))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "type": self.type.value,
            "level": int(self.level),
            "parentId": self.parent_id,
            "isMain": self.is_main,
            "balance": str(self.balance),
        }
        if self.is_system:
            data["isSystem"] = True
        if self.system_tag is not None:
            data["systemTag"] = self.system_tag
        if self.locked:
            data["locked"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Account:
        return cls(
            id=str(data["id"]),
            code=str(data["code"]).strip(),
            name=str(data.get("name", "")),
            type=AccountType.parse(data["type"]),
            level=AccountLevel.clamp(data.get("level", AccountLevel.LEAF)),
            parent_id=data.get("parentId"),
            is_main=bool(data.get("isMain", False)),
            balance=to_decimal(data.get("balance")),
            is_system=bool(data.get("isSystem", False)),
            system_tag=data.get("systemTag"),
            locked=bool(data.get("locked", False)),
        )
