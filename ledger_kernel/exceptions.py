"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (screens, the CLI, integrations) must react to a rejected mutation
precisely: a duplicate code is a form error, a closed financial year is a
locked-state banner, a version conflict is a reload prompt.  Matching on
message text is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        chart.delete_account(account_id)
    except AccountHasChildrenError as e:
        notify_user(f"{e.account_id} still has {e.child_count} children")
    except FinancialYearClosedError as e:
        show_locked_banner(e.school_id, e.academic_year_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- ParentAccountNotFoundError
    |   +-- DuplicateAccountCodeError
    |   +-- InvalidAccountCodeError
    |   +-- DuplicateAccountIdError
    |   +-- AccountHasChildrenError
    |   +-- NonZeroBalanceError
    |   +-- AccountReferencedError
    |   +-- SystemAccountError
    |   +-- AccountLockedError
    |   +-- FolderNotFoundError
    |
    +-- PeriodError
    |   +-- FinancialYearClosedError
    |
    +-- JournalError
    |   +-- JournalEntryNotFoundError
    |   +-- InvalidJournalTransitionError
    |   +-- UnbalancedEntryError
    |   +-- JournalImmutableError
    |
    +-- SatelliteError
    |   +-- SatelliteNotFoundError
    |   +-- SatelliteOwnedAccountError
    |
    +-- ConcurrencyError
        +-- OptimisticLockError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                        | When Raised
------------|-----------------------------|-----------------------------------------
Account     | ACCOUNT_NOT_FOUND           | Account id doesn't exist
            | PARENT_NOT_FOUND            | parent_id doesn't resolve
            | DUPLICATE_ACCOUNT_CODE      | Code already used by another account
            | INVALID_ACCOUNT_CODE        | Code empty or not all digits
            | DUPLICATE_ACCOUNT_ID        | Id already used by another account
            | ACCOUNT_HAS_CHILDREN        | Delete/type edit of a non-leaf
            | NON_ZERO_BALANCE            | Delete of an account holding a balance
            | ACCOUNT_REFERENCED          | Delete of an account with postings
            | SYSTEM_ACCOUNT              | Delete/type edit of a root account
            | ACCOUNT_LOCKED              | Structural edit of a locked account
            | FOLDER_NOT_FOUND            | Satellite anchor folder missing
------------|-----------------------------|-----------------------------------------
Period      | FINANCIAL_YEAR_CLOSED       | Any mutation while the year is closed
------------|-----------------------------|-----------------------------------------
Journal     | JOURNAL_ENTRY_NOT_FOUND     | Entry id doesn't exist
            | INVALID_JOURNAL_TRANSITION  | Status change not allowed
            | UNBALANCED_ENTRY            | Approving debits != credits
            | JOURNAL_IMMUTABLE           | Deleting from the append-only log
------------|-----------------------------|-----------------------------------------
Satellite   | SATELLITE_NOT_FOUND         | Supplier/treasury record missing
            | SATELLITE_OWNED_ACCOUNT     | Chart delete of a satellite-owned leaf
------------|-----------------------------|-----------------------------------------
Concurrency | OPTIMISTIC_LOCK_CONFLICT    | Stored document changed underneath us

===============================================================================
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Account-related exceptions


class AccountError(LedgerKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class ParentAccountNotFoundError(AccountError):
    """The parent referenced by a new or moved account does not exist."""

    code: str = "PARENT_NOT_FOUND"

    def __init__(self, parent_id: str | None):
        self.parent_id = parent_id
        super().__init__(f"Parent account not found: {parent_id}")


class DuplicateAccountCodeError(AccountError):
    """Another account already uses this code."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str, existing_id: str):
        self.account_code = account_code
        self.existing_id = existing_id
        super().__init__(
            f"Account code {account_code} already used by account {existing_id}"
        )


class InvalidAccountCodeError(AccountError):
    """Account codes are non-empty digit strings."""

    code: str = "INVALID_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Invalid account code: {account_code!r}")


class DuplicateAccountIdError(AccountError):
    """Another account already uses this id."""

    code: str = "DUPLICATE_ACCOUNT_ID"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account id already exists: {account_id}")


class AccountHasChildrenError(AccountError):
    """Account cannot be deleted (or retyped) while it has children."""

    code: str = "ACCOUNT_HAS_CHILDREN"

    def __init__(self, account_id: str, child_count: int):
        self.account_id = account_id
        self.child_count = child_count
        super().__init__(
            f"Account {account_id} has {child_count} child account(s)"
        )


class NonZeroBalanceError(AccountError):
    """Account cannot be deleted while it carries a balance."""

    code: str = "NON_ZERO_BALANCE"

    def __init__(self, account_id: str, balance: str):
        self.account_id = account_id
        self.balance = balance
        super().__init__(
            f"Account {account_id} cannot be deleted: balance is {balance}"
        )


class AccountReferencedError(AccountError):
    """Account cannot be deleted because journal lines reference it."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str, entry_ids: list[str]):
        self.account_id = account_id
        self.entry_ids = entry_ids
        super().__init__(
            f"Account {account_id} cannot be deleted: referenced by "
            f"{len(entry_ids)} journal entr{'y' if len(entry_ids) == 1 else 'ies'}"
        )


class SystemAccountError(AccountError):
    """Root system accounts cannot be deleted or retyped."""

    code: str = "SYSTEM_ACCOUNT"

    def __init__(self, account_id: str, account_code: str, operation: str):
        self.account_id = account_id
        self.account_code = account_code
        self.operation = operation
        super().__init__(
            f"System account {account_code} does not allow {operation}"
        )


class AccountLockedError(AccountError):
    """Locked accounts reject structural edits and deletion."""

    code: str = "ACCOUNT_LOCKED"

    def __init__(self, account_id: str, operation: str):
        self.account_id = account_id
        self.operation = operation
        super().__init__(f"Account {account_id} is locked; {operation} refused")


class FolderNotFoundError(AccountError):
    """The anchor account a satellite folder hangs under is missing."""

    code: str = "FOLDER_NOT_FOUND"

    def __init__(self, anchor_code: str, folder_name: str):
        self.anchor_code = anchor_code
        self.folder_name = folder_name
        super().__init__(
            f"Cannot place folder '{folder_name}': anchor account "
            f"{anchor_code} not found in the chart of accounts"
        )


# Period-related exceptions


class PeriodError(LedgerKernelError):
    """Base exception for financial-year errors."""

    code: str = "PERIOD_ERROR"


class FinancialYearClosedError(PeriodError):
    """Attempted a mutation while the financial year is closed."""

    code: str = "FINANCIAL_YEAR_CLOSED"

    def __init__(self, school_id: str, academic_year_id: str, operation: str):
        self.school_id = school_id
        self.academic_year_id = academic_year_id
        self.operation = operation
        super().__init__(
            f"Financial year {academic_year_id} for school {school_id} is "
            f"closed; {operation} refused"
        )


# Journal-related exceptions


class JournalError(LedgerKernelError):
    """Base exception for journal log errors."""

    code: str = "JOURNAL_ERROR"


class JournalEntryNotFoundError(JournalError):
    """Journal entry was not found."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class InvalidJournalTransitionError(JournalError):
    """The requested status change is not allowed from the current status."""

    code: str = "INVALID_JOURNAL_TRANSITION"

    def __init__(self, entry_id: str, from_status: str, operation: str):
        self.entry_id = entry_id
        self.from_status = from_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} journal entry {entry_id} in status {from_status}"
        )


class UnbalancedEntryError(JournalError):
    """Debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, entry_id: str, debits: str, credits: str):
        self.entry_id = entry_id
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Journal entry {entry_id} is unbalanced: debits={debits}, "
            f"credits={credits}"
        )


class JournalImmutableError(JournalError):
    """Entries are never removed from the journal log."""

    code: str = "JOURNAL_IMMUTABLE"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry {entry_id} cannot be deleted")


# Satellite (supplier / treasury) exceptions


class SatelliteError(LedgerKernelError):
    """Base exception for supplier and treasury record errors."""

    code: str = "SATELLITE_ERROR"


class SatelliteNotFoundError(SatelliteError):
    """Supplier or treasury record was not found."""

    code: str = "SATELLITE_NOT_FOUND"

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} record not found: {record_id}")


class SatelliteOwnedAccountError(SatelliteError):
    """The account is the GL leaf of a supplier or treasury record."""

    code: str = "SATELLITE_OWNED_ACCOUNT"

    def __init__(self, account_id: str, kind: str, record_id: str):
        self.account_id = account_id
        self.kind = kind
        self.record_id = record_id
        super().__init__(
            f"Account {account_id} belongs to {kind} record {record_id}; "
            f"delete the {kind} record instead"
        )


# Concurrency-related exceptions


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        document_key: str,
        expected_version: int,
        actual_version: int,
    ):
        self.document_key = document_key
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on {document_key}: expected version "
            f"{expected_version}, found {actual_version}"
        )
