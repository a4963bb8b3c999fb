"""
ChartOfAccountsService -- the account API over the in-memory tree.

Responsibility:
    Owns the AccountTree of one ledger context and exposes every account
    operation: queries, guarded add/update/delete, code generation,
    idempotent integration accounts, lock, reset, seed migration, and
    load/refresh from storage.

Architecture position:
    Kernel > Services.  Validation is delegated to LedgerMutationGuard,
    persistence to a PersistenceBridge over ``SCHOOL_CATALOG_ACCOUNTS``.

Invariants enforced:
    - Every mutation is applied to a copy of the tree, committed to
      storage, and only then swapped into the live tree.  A rejected or
      conflicting change leaves the live tree as it was.
    - Loaded data is de-duplicated (ids, then codes).
    - Seed accounts missing from a loaded chart are added on load while
      the year is open.

Failure modes:
    - Everything LedgerMutationGuard raises.
    - OptimisticLockError when another context saved the chart first; call
      ``refresh()`` and retry.
"""

from dataclasses import replace
from typing import Any, Callable, Iterable, TypeVar
from uuid import uuid4

from ledger_kernel.domain.account import (
    TYPE_ROOT_CODES,
    Account,
    AccountLevel,
    AccountType,
)
from ledger_kernel.domain.account_tree import AccountTree, deduplicate
from ledger_kernel.domain.code_generator import DEFAULT_SUFFIX_WIDTH, next_child_code
from ledger_kernel.domain.money import to_decimal
from ledger_kernel.exceptions import ParentAccountNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.mutation_guard import LedgerMutationGuard
from ledger_kernel.storage.bridge import PersistenceBridge

logger = get_logger("services.chart_of_accounts")

R = TypeVar("R")


def new_account_id() -> str:
    return str(uuid4())


def encode_accounts(accounts: Iterable[Account]) -> list[dict[str, Any]]:
    return [account.to_dict() for account in accounts]


def decode_accounts(data: Any) -> list[Account]:
    return deduplicate(Account.from_dict(item) for item in data or ())


class ChartOfAccountsService:
    """
    Chart-of-accounts operations for one school ledger.

    Contract:
        Queries read the live tree.  Mutations go guard -> copy -> bridge
        commit -> swap.

    Non-goals:
        - Does NOT post balances; see BalancePoster.
        - Does NOT aggregate subtrees; see SubtreeAggregator.
    """

    def __init__(
        self,
        tree: AccountTree,
        bridge: PersistenceBridge[list[Account]],
        guard: LedgerMutationGuard,
        seed_accounts: Iterable[Account] = (),
        code_suffix_width: int = DEFAULT_SUFFIX_WIDTH,
    ):
        self.tree = tree
        self.bridge = bridge
        self.guard = guard
        self.seed_accounts: tuple[Account, ...] = tuple(seed_accounts)
        self.code_suffix_width = code_suffix_width

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Hydrate from storage; an empty store is seeded."""
        stored = self.bridge.load()
        if stored is None:
            self.tree.reset(self.seed_accounts)
            if self.seed_accounts and not self.guard.is_year_closed():
                self.bridge.commit(self.tree.accounts())
            logger.info("chart_seeded", extra={"account_count": len(self.tree)})
            return

        self.tree.reset(stored)
        logger.info("chart_loaded", extra={"account_count": len(self.tree)})
        if self.seed_accounts and not self.guard.is_year_closed():
            self.ensure_seed_accounts()

    def replace_all(self, accounts: Iterable[Account]) -> None:
        """Swap in a chart another context wrote."""
        self.tree.reset(accounts)
        logger.info("chart_rehydrated", extra={"account_count": len(self.tree)})

    def refresh(self) -> bool:
        """Re-read storage; returns True when the live tree was replaced."""
        stored = self.bridge.refresh()
        if stored is None:
            return False
        self.replace_all(stored)
        return True

    def apply(self, change: Callable[[AccountTree], R]) -> R:
        """
        Run ``change`` against a copy, persist, then swap it in.

        ``change`` must already be validated.
        """
        candidate = self.tree.copy()
        result = change(candidate)
        self.bridge.commit(candidate.accounts())
        self.tree.reset(candidate)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def accounts(self) -> list[Account]:
        return self.tree.accounts()

    def get_account(self, account_id: str) -> Account | None:
        return self.tree.get(account_id)

    def find_by_code(self, code: str) -> Account | None:
        return self.tree.find_by_code((code or "").strip())

    def find_by_system_tag(self, tag: str) -> Account | None:
        return self.tree.find_by_system_tag(tag)

    def has_children(self, account_id: str) -> bool:
        return self.tree.has_children(account_id)

    def children_of(self, account_id: str | None) -> list[Account]:
        return self.tree.children_of(account_id)

    def account_path(self, account_id: str) -> str:
        return self.tree.account_path(account_id)

    def get_next_code(self, parent_id: str | None) -> str:
        return next_child_code(self.tree, parent_id, self.code_suffix_width)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_account(self, account: Account) -> Account:
        account = self.guard.check_add(self.tree, account)
        self.apply(lambda tree: tree.insert(account))
        logger.info(
            "account_added",
            extra={
                "account_id": account.id,
                "account_code": account.code,
                "parent_id": account.parent_id,
            },
        )
        return account

    def create_child_account(
        self,
        parent_id: str,
        name: str,
        *,
        is_main: bool = False,
        balance: Any = None,
        account_type: AccountType | str | None = None,
        system_tag: str | None = None,
        is_system: bool = False,
    ) -> Account:
        """Add a child under ``parent_id`` with the next generated code."""
        parent = self.tree.get(parent_id)
        if parent is None:
            raise ParentAccountNotFoundError(parent_id)
        account = Account(
            id=new_account_id(),
            code=self.get_next_code(parent_id),
            name=name.strip(),
            type=account_type or parent.type,
            level=parent.level.child_level(),
            parent_id=parent_id,
            is_main=is_main,
            balance=to_decimal(balance),
            is_system=is_system,
            system_tag=system_tag,
        )
        return self.add_account(account)

    def update_account(self, account_id: str, **changes: Any) -> Account:
        updated = self.guard.check_update(self.tree, account_id, changes)
        self.apply(lambda tree: tree.replace(updated))
        logger.info(
            "account_updated",
            extra={"account_id": account_id, "fields": sorted(changes)},
        )
        return updated

    def set_balance(self, account_id: str, balance: Any) -> Account:
        """Overwrite a stored balance (satellite edits only)."""
        current = self.guard.check_balance_rewrite(self.tree, account_id)
        updated = current.with_balance(to_decimal(balance))
        self.apply(lambda tree: tree.replace(updated))
        logger.info(
            "account_balance_set",
            extra={
                "account_id": account_id,
                "old_balance": current.balance,
                "new_balance": updated.balance,
            },
        )
        return updated

    def delete_account(
        self, account_id: str, *, released_by: str | None = None
    ) -> Account:
        account = self.guard.check_delete(
            self.tree, account_id, released_by=released_by
        )
        self.apply(lambda tree: tree.remove(account_id))
        logger.info(
            "account_deleted",
            extra={"account_id": account_id, "account_code": account.code},
        )
        return account

    def lock_account(self, account_id: str) -> Account:
        current = self.guard.check_lock(self.tree, account_id)
        if current.locked:
            return current
        updated = replace(current, locked=True)
        self.apply(lambda tree: tree.replace(updated))
        logger.info("account_locked", extra={"account_id": account_id})
        return updated

    def create_account_if_not_exists(
        self,
        name: str,
        account_type: AccountType | str,
        parent_id: str | None = None,
        level: AccountLevel | int = AccountLevel.LEAF,
        system_tag: str | None = None,
        is_main: bool = False,
    ) -> Account:
        """
        Return the integration account for ``system_tag`` (or name + type),
        creating it under ``parent_id`` -- or under the type's root when no
        parent is given -- if it does not exist yet.
        """
        account_type = AccountType.parse(account_type)
        if system_tag:
            tagged = self.tree.find_by_system_tag(system_tag)
            if tagged is not None:
                return tagged
        wanted = name.strip()
        for account in self.tree:
            if account.name.strip() == wanted and account.type == account_type:
                return account

        if parent_id is None:
            root = self.tree.find_by_code(TYPE_ROOT_CODES[account_type])
            if root is None:
                raise ParentAccountNotFoundError(None)
            parent_id = root.id
        elif parent_id not in self.tree:
            raise ParentAccountNotFoundError(parent_id)

        account = Account(
            id=new_account_id(),
            code=self.get_next_code(parent_id),
            name=wanted,
            type=account_type,
            level=level,
            parent_id=parent_id,
            is_main=is_main,
            is_system=True,
            system_tag=system_tag,
        )
        return self.add_account(account)

    def ensure_seed_accounts(self) -> list[Account]:
        """Add seed accounts whose code is missing; returns those added."""
        candidate = self.tree.copy()
        seeds_by_id = {seed.id: seed for seed in self.seed_accounts}
        missing: list[Account] = []
        for seed in self.seed_accounts:
            if candidate.find_by_code(seed.code) is not None or seed.id in candidate:
                continue
            if seed.parent_id is not None and seed.parent_id not in candidate:
                # The live chart carries the seed parent under another id.
                seed_parent = seeds_by_id.get(seed.parent_id)
                live_parent = (
                    candidate.find_by_code(seed_parent.code) if seed_parent else None
                )
                if live_parent is None:
                    continue
                seed = replace(seed, parent_id=live_parent.id)
            candidate.insert(seed)
            missing.append(seed)

        if not missing:
            return []
        self.guard.require_open_year("ensure_seed_accounts")
        self.bridge.commit(candidate.accounts())
        self.tree.reset(candidate)
        logger.info(
            "seed_accounts_added",
            extra={"account_codes": [seed.code for seed in missing]},
        )
        return missing

    def reset_chart(self) -> list[Account]:
        """Restore the seed chart, discarding every other account."""
        self.guard.require_open_year("reset_chart")
        seeds = list(self.seed_accounts)
        self.apply(lambda tree: tree.reset(seeds))
        logger.warning("chart_reset", extra={"account_count": len(seeds)})
        return seeds
