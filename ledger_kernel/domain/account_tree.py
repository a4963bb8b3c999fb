"""
AccountTree -- in-memory chart-of-accounts forest.

Responsibility:
    Holds the ``Account`` records of one chart of accounts, indexed by id,
    by code and by parent, and answers the structural queries every other
    component needs (children, path, roots, system-tag lookup).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The mutators here
    keep the indexes consistent but do NOT validate; every mutation enters
    through ``LedgerMutationGuard`` (services/mutation_guard.py), which
    checks preconditions first.

Invariants maintained:
    - ``_by_id``, ``_by_code`` and ``_children`` always describe the same
      set of accounts as ``_order``.
    - Insertion order is preserved for serialization; ``children_of`` is
      ordered by numeric-aware code.
    - ``apply_deltas`` replaces only accounts whose balance changes; every
      other Account object keeps its identity.

Failure modes:
    - AccountNotFoundError from ``require()`` for an unknown id.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Iterator

from ledger_kernel.domain.account import Account, code_sort_key
from ledger_kernel.exceptions import AccountNotFoundError


def deduplicate(accounts: Iterable[Account]) -> list[Account]:
    """
    Collapse duplicate ids, then duplicate codes.

    When two records collide, the one with the larger absolute balance
    wins; the surviving record keeps the position of the first occurrence.
    """

    def _collapse(items: list[Account], key) -> list[Account]:
        kept: dict[str, Account] = {}
        for account in items:
            existing = kept.get(key(account))
            if existing is None or abs(account.balance) > abs(existing.balance):
                kept[key(account)] = account
        return list(kept.values())

    by_id = _collapse(list(accounts), lambda a: a.id)
    return _collapse(by_id, lambda a: a.code)


class AccountTree:
    """
    Forest of accounts keyed by opaque id.

    Contract:
        Queries never mutate.  Mutators (``insert``, ``replace``,
        ``remove``, ``apply_deltas``, ``reset``) assume the caller has
        validated the change.

    Non-goals:
        - No persistence; see storage/bridge.py.
        - No balance roll-up; see selectors/subtree_selector.py.
    """

    def __init__(self, accounts: Iterable[Account] = ()):
        self._order: list[str] = []
        self._by_id: dict[str, Account] = {}
        self._by_code: dict[str, str] = {}
        self._children: dict[str | None, list[str]] = defaultdict(list)
        for account in accounts:
            self.insert(account)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Account]:
        return (self._by_id[account_id] for account_id in self._order)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._by_id

    def accounts(self) -> list[Account]:
        return list(self)

    def get(self, account_id: str | None) -> Account | None:
        if account_id is None:
            return None
        return self._by_id.get(account_id)

    def require(self, account_id: str) -> Account:
        account = self._by_id.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def find_by_code(self, code: str) -> Account | None:
        account_id = self._by_code.get(code)
        return self._by_id[account_id] if account_id is not None else None

    def find_by_system_tag(self, tag: str) -> Account | None:
        for account in self:
            if account.system_tag == tag:
                return account
        return None

    def find_child_by_name(self, parent_id: str, name: str) -> Account | None:
        wanted = name.strip()
        for child in self.children_of(parent_id):
            if child.name.strip() == wanted:
                return child
        return None

    def has_children(self, account_id: str) -> bool:
        return bool(self._children.get(account_id))

    def child_count(self, account_id: str) -> int:
        return len(self._children.get(account_id, ()))

    def children_of(self, account_id: str | None) -> list[Account]:
        """Direct children ordered by numeric-aware code."""
        children = [self._by_id[cid] for cid in self._children.get(account_id, ())]
        return sorted(children, key=lambda a: code_sort_key(a.code))

    def roots(self) -> list[Account]:
        return self.children_of(None)

    def descendants(self, account_id: str) -> list[Account]:
        """All accounts below ``account_id``, depth-first, code-ordered."""
        result: list[Account] = []
        stack = list(reversed(self.children_of(account_id)))
        while stack:
            account = stack.pop()
            result.append(account)
            stack.extend(reversed(self.children_of(account.id)))
        return result

    def ancestors(self, account_id: str) -> list[Account]:
        """Parent chain from the root down to (excluding) ``account_id``."""
        chain: list[Account] = []
        seen: set[str] = {account_id}
        cursor = self.get(account_id)
        while cursor is not None and cursor.parent_id is not None:
            if cursor.parent_id in seen:
                break
            seen.add(cursor.parent_id)
            cursor = self.get(cursor.parent_id)
            if cursor is not None:
                chain.append(cursor)
        chain.reverse()
        return chain

    def account_path(self, account_id: str, separator: str = " > ") -> str:
        """Names from the root down, e.g. "Assets > Current Assets > Banks"."""
        account = self.get(account_id)
        if account is None:
            return ""
        names = [a.name for a in self.ancestors(account_id)] + [account.name]
        return separator.join(names)

    # ------------------------------------------------------------------
    # Mutators (validated by LedgerMutationGuard)
    # ------------------------------------------------------------------

    def insert(self, account: Account) -> None:
        self._order.append(account.id)
        self._by_id[account.id] = account
        self._by_code[account.code] = account.id
        self._children[account.parent_id].append(account.id)

    def replace(self, account: Account) -> Account:
        """Swap in a new version of an existing account; returns the old one."""
        old = self.require(account.id)
        if old.code != account.code:
            del self._by_code[old.code]
            self._by_code[account.code] = account.id
        if old.parent_id != account.parent_id:
            self._children[old.parent_id].remove(account.id)
            self._children[account.parent_id].append(account.id)
        self._by_id[account.id] = account
        return old

    def remove(self, account_id: str) -> Account:
        account = self.require(account_id)
        self._order.remove(account_id)
        del self._by_id[account_id]
        del self._by_code[account.code]
        self._children[account.parent_id].remove(account_id)
        self._children.pop(account_id, None)
        return account

    def apply_deltas(self, deltas: dict[str, Decimal]) -> list[Account]:
        """
        Add each delta to its account's balance in one pass.

        Zero deltas leave the account object untouched.  Returns the new
        versions of the accounts that changed.
        """
        changed = [
            self.require(account_id).with_balance(
                self._by_id[account_id].balance + delta
            )
            for account_id, delta in deltas.items()
            if delta
        ]
        for account in changed:
            self._by_id[account.id] = account
        return changed

    def reset(self, accounts: Iterable[Account]) -> None:
        """Replace the whole forest."""
        self._order.clear()
        self._by_id.clear()
        self._by_code.clear()
        self._children.clear()
        for account in accounts:
            self.insert(account)

    def copy(self) -> AccountTree:
        return AccountTree(self)
