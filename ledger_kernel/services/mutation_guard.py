"""
LedgerMutationGuard -- every precondition on a chart-of-accounts change.

Responsibility:
    Validates add / update / delete / post requests against the current
    AccountTree, the journal log and the financial-year close state
    BEFORE anything is mutated.  Call sites never re-implement these
    checks; they call the guard and then apply the change.

Architecture position:
    Kernel > Services.  Used by ChartOfAccountsService, BalancePoster,
    JournalLogService and the satellite services.

Invariants enforced:
    - No mutation of any kind while the active financial year is closed.
    - Account codes are non-empty digit strings, unique across the forest.
    - Account ids are unique; a non-null parent must exist and must not
      be the account itself or one of its descendants.
    - The five root accounts are never deleted or retyped.
    - Delete requires, in this order: exists, no children, not a system
      root, not locked, not owned by a satellite record (unless that
      record is the one being deleted), zero balance, no APPROVED/POSTED
      journal line.
    - Posting targets must all exist before any balance changes.

Failure modes:
    - FinancialYearClosedError, AccountNotFoundError,
      ParentAccountNotFoundError, DuplicateAccountCodeError,
      DuplicateAccountIdError, InvalidAccountCodeError,
      AccountHasChildrenError, SystemAccountError, AccountLockedError,
      SatelliteOwnedAccountError, NonZeroBalanceError,
      AccountReferencedError.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable, Iterable, NoReturn

from ledger_kernel.domain.account import Account, AccountLevel, AccountType
from ledger_kernel.domain.account_tree import AccountTree
from ledger_kernel.domain.journal import JournalEntry
from ledger_kernel.domain.settings import normalize_scope
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
    SatelliteOwnedAccountError,
    SystemAccountError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.year_close import YearCloseGate

logger = get_logger("services.mutation_guard")

# Fields a caller may patch through update_account.
PATCHABLE_FIELDS = frozenset(
    {"code", "name", "type", "level", "parent_id", "is_main", "system_tag"}
)

# Patching any of these on a locked account is refused; renaming is not.
STRUCTURAL_FIELDS = frozenset({"code", "type", "level", "parent_id", "is_main"})

JournalProvider = Callable[[], Iterable[JournalEntry]]

# Yields (gl_account_id, kind, record_id) for every satellite record.
OwnerProvider = Callable[[], Iterable[tuple[str, str, str]]]


def validate_code(code: str) -> str:
    text = (code or "").strip()
    if not text or not text.isdigit():
        raise InvalidAccountCodeError(code)
    return text


class LedgerMutationGuard:
    """
    Precondition checks for ledger mutations.

    Contract:
        ``check_*`` methods either return normally (the change may be
        applied) or raise a typed error.  They never mutate the tree.

    Guarantees:
        - A rejected request leaves the tree, the journal and storage
          untouched.
        - Every rejection is logged at WARNING with the error code.

    Non-goals:
        - Does NOT apply changes; ChartOfAccountsService does that.
    """

    def __init__(
        self,
        year_gate: YearCloseGate,
        school_id: str | None,
        academic_year_id: str | None,
        journal_entries: JournalProvider | None = None,
    ):
        self.year_gate = year_gate
        self.school_id, self.academic_year_id = normalize_scope(
            school_id, academic_year_id
        )
        self._journal_entries = journal_entries or (lambda: ())
        self._owner_sources: list[OwnerProvider] = []

    def attach_journal(self, journal_entries: JournalProvider) -> None:
        """Late-bind the journal source (the journal service needs the guard)."""
        self._journal_entries = journal_entries

    def attach_owners(self, owners: OwnerProvider) -> None:
        """Register a satellite collection whose records own GL leaves."""
        self._owner_sources.append(owners)

    def _reject(self, exc: Exception, operation: str, **fields: Any) -> NoReturn:
        logger.warning(
            "mutation_rejected",
            extra={
                "operation": operation,
                "error_code": getattr(exc, "code", type(exc).__name__),
                **fields,
            },
        )
        raise exc

    # ------------------------------------------------------------------
    # Year close
    # ------------------------------------------------------------------

    def is_year_closed(self) -> bool:
        return self.year_gate.is_financial_year_closed(
            self.school_id, self.academic_year_id
        )

    def require_open_year(self, operation: str) -> None:
        """Raise FinancialYearClosedError if the active year is closed."""
        if self.is_year_closed():
            logger.warning(
                "year_close_rejected",
                extra={"operation": operation},
            )
            raise FinancialYearClosedError(
                self.school_id, self.academic_year_id, operation
            )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def check_add(self, tree: AccountTree, account: Account) -> Account:
        """Validate a new account; returns it with its code normalized."""
        self.require_open_year("add_account")
        try:
            code = validate_code(account.code)
        except InvalidAccountCodeError as exc:
            self._reject(exc, "add_account", account_id=account.id)

        existing = tree.find_by_code(code)
        if existing is not None:
            self._reject(
                DuplicateAccountCodeError(code, existing.id),
                "add_account",
                account_id=account.id,
            )
        if account.id in tree:
            self._reject(DuplicateAccountIdError(account.id), "add_account")
        if account.parent_id is not None and account.parent_id not in tree:
            self._reject(
                ParentAccountNotFoundError(account.parent_id),
                "add_account",
                account_id=account.id,
            )
        return account if code == account.code else replace(account, code=code)

    def check_update(
        self, tree: AccountTree, account_id: str, changes: dict[str, Any]
    ) -> Account:
        """Validate a patch; returns the merged account."""
        self.require_open_year("update_account")
        unknown = set(changes) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not patchable: {sorted(unknown)}")

        current = tree.get(account_id)
        if current is None:
            self._reject(AccountNotFoundError(account_id), "update_account")

        if current.locked and STRUCTURAL_FIELDS.intersection(changes):
            self._reject(
                AccountLockedError(account_id, "update_account"),
                "update_account",
                account_id=account_id,
            )

        patch = dict(changes)
        if "code" in patch:
            try:
                patch["code"] = validate_code(patch["code"])
            except InvalidAccountCodeError as exc:
                self._reject(exc, "update_account", account_id=account_id)
            other = tree.find_by_code(patch["code"])
            if other is not None and other.id != account_id:
                self._reject(
                    DuplicateAccountCodeError(patch["code"], other.id),
                    "update_account",
                    account_id=account_id,
                )

        if "type" in patch:
            patch["type"] = AccountType.parse(patch["type"])
            if patch["type"] != current.type:
                if current.is_system_root:
                    self._reject(
                        SystemAccountError(account_id, current.code, "type change"),
                        "update_account",
                        account_id=account_id,
                    )
                if tree.has_children(account_id):
                    self._reject(
                        AccountHasChildrenError(account_id, tree.child_count(account_id)),
                        "update_account",
                        account_id=account_id,
                    )

        if "level" in patch:
            patch["level"] = AccountLevel.clamp(patch["level"])

        if "parent_id" in patch and patch["parent_id"] != current.parent_id:
            self._check_reparent(tree, current, patch["parent_id"])

        return replace(current, **patch)

    def _check_reparent(
        self, tree: AccountTree, account: Account, parent_id: str | None
    ) -> None:
        if account.is_system_root:
            self._reject(
                SystemAccountError(account.id, account.code, "move"),
                "update_account",
                account_id=account.id,
            )
        if parent_id is None:
            return
        blocked = {account.id} | {a.id for a in tree.descendants(account.id)}
        if parent_id not in tree or parent_id in blocked:
            self._reject(
                ParentAccountNotFoundError(parent_id),
                "update_account",
                account_id=account.id,
            )

    def check_balance_rewrite(self, tree: AccountTree, account_id: str) -> Account:
        self.require_open_year("set_balance")
        account = tree.get(account_id)
        if account is None:
            self._reject(AccountNotFoundError(account_id), "set_balance")
        return account

    def check_lock(self, tree: AccountTree, account_id: str) -> Account:
        self.require_open_year("lock_account")
        account = tree.get(account_id)
        if account is None:
            self._reject(AccountNotFoundError(account_id), "lock_account")
        return account

    def referencing_entries(self, account_id: str) -> list[str]:
        """Ids of APPROVED/POSTED entries with a line on ``account_id``."""
        return [
            entry.id
            for entry in self._journal_entries()
            if entry.is_effective and entry.references(account_id)
        ]

    def owner_of(self, account_id: str) -> tuple[str, str] | None:
        """(kind, record_id) of the satellite record owning ``account_id``."""
        for source in self._owner_sources:
            for gl_account_id, kind, record_id in source():
                if gl_account_id == account_id:
                    return kind, record_id
        return None

    def check_delete(
        self,
        tree: AccountTree,
        account_id: str,
        *,
        released_by: str | None = None,
    ) -> Account:
        """
        ``released_by`` is the id of the satellite record giving up its
        own leaf; any other owned leaf is refused.
        """
        self.require_open_year("delete_account")
        account = tree.get(account_id)
        if account is None:
            self._reject(AccountNotFoundError(account_id), "delete_account")
        if tree.has_children(account_id):
            self._reject(
                AccountHasChildrenError(account_id, tree.child_count(account_id)),
                "delete_account",
                account_id=account_id,
            )
        if account.is_system_root:
            self._reject(
                SystemAccountError(account_id, account.code, "delete"),
                "delete_account",
                account_id=account_id,
            )
        if account.locked:
            self._reject(
                AccountLockedError(account_id, "delete_account"),
                "delete_account",
                account_id=account_id,
            )
        owner = self.owner_of(account_id)
        if owner is not None and owner[1] != released_by:
            self._reject(
                SatelliteOwnedAccountError(account_id, *owner),
                "delete_account",
                account_id=account_id,
            )
        if account.balance != 0:
            self._reject(
                NonZeroBalanceError(account_id, str(account.balance)),
                "delete_account",
                account_id=account_id,
            )
        entry_ids = self.referencing_entries(account_id)
        if entry_ids:
            self._reject(
                AccountReferencedError(account_id, entry_ids),
                "delete_account",
                account_id=account_id,
            )
        return account

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def check_postings(self, tree: AccountTree, deltas: dict[str, Decimal]) -> None:
        self.require_open_year("post_transactions")
        for account_id in deltas:
            if account_id not in tree:
                self._reject(
                    AccountNotFoundError(account_id),
                    "post_transactions",
                    account_id=account_id,
                )
