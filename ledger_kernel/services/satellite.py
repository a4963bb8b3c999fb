"""
SatelliteService -- shared machinery for records that own a GL leaf.

Responsibility:
    Supplier and treasury records each own exactly one Account leaf
    beneath a fixed folder.  This base class finds or creates the folder,
    creates the leaf with a generated code, and persists the satellite
    collection.

Architecture position:
    Kernel > Services.  Subclassed by SupplierService and TreasuryService.

Invariants enforced:
    - Creation is two-phase: folder (if absent) -> leaf Account ->
      satellite record pointing at the leaf id.
    - A satellite never outlives its Account: delete removes the Account
      first (guarded) and only then the record.
    - Only the owning record may delete its leaf; the chart refuses a
      direct delete of an owned leaf.
    - A leaf whose record fails to persist is removed again.
    - Every entry point checks that the financial year is open before
      touching the chart.

Failure modes:
    - FolderNotFoundError when the folder's anchor account is missing.
    - SatelliteNotFoundError for an unknown record id.
    - Everything the chart service raises for the leaf itself.
"""

from abc import ABC, abstractmethod
from typing import Generic, Iterable, Iterator, TypeVar

from ledger_kernel.domain.account import Account
from ledger_kernel.domain.settings import FolderPlacement
from ledger_kernel.exceptions import (
    FolderNotFoundError,
    LedgerKernelError,
    SatelliteNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.chart_of_accounts import ChartOfAccountsService
from ledger_kernel.storage.bridge import PersistenceBridge

logger = get_logger("services.satellite")

RecordType = TypeVar("RecordType")


class SatelliteService(ABC, Generic[RecordType]):
    """
    Base class for satellite-record services.

    Contract:
        Subclasses set ``kind`` and implement ``record_id`` and
        ``gl_account_id``.  Records are immutable values.

    Non-goals:
        - Does NOT track satellite balances separately from the GL; the
          record's balance is what it was created or last edited with.
    """

    kind: str = "satellite"

    def __init__(
        self,
        chart: ChartOfAccountsService,
        bridge: PersistenceBridge[list[RecordType]],
    ):
        self.chart = chart
        self.bridge = bridge
        self._records: list[RecordType] = []

    @abstractmethod
    def record_id(self, record: RecordType) -> str: ...

    @abstractmethod
    def gl_account_id(self, record: RecordType) -> str: ...

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def load(self) -> None:
        self._records = self.bridge.load() or []

    def replace_all(self, records: Iterable[RecordType]) -> None:
        self._records = list(records)

    def refresh(self) -> bool:
        stored = self.bridge.refresh()
        if stored is None:
            return False
        self.replace_all(stored)
        return True

    def records(self) -> list[RecordType]:
        return list(self._records)

    def get(self, record_id: str) -> RecordType | None:
        for record in self._records:
            if self.record_id(record) == record_id:
                return record
        return None

    def require(self, record_id: str) -> RecordType:
        record = self.get(record_id)
        if record is None:
            raise SatelliteNotFoundError(self.kind, record_id)
        return record

    def _commit(self, records: list[RecordType]) -> None:
        self.bridge.commit(records)
        self._records = records

    def _append(self, record: RecordType) -> None:
        self._commit([*self._records, record])

    def _replace(self, record: RecordType) -> None:
        wanted = self.record_id(record)
        self._commit(
            [record if self.record_id(r) == wanted else r for r in self._records]
        )

    def _remove(self, record_id: str) -> None:
        self._commit([r for r in self._records if self.record_id(r) != record_id])

    # ------------------------------------------------------------------
    # GL folder / leaf
    # ------------------------------------------------------------------

    def ensure_folder(self, placement: FolderPlacement) -> Account:
        """Return the folder account, creating it under its anchor if absent."""
        anchor = self.chart.find_by_code(placement.anchor_code)
        if anchor is None:
            raise FolderNotFoundError(placement.anchor_code, placement.folder_name)
        folder = self.chart.tree.find_child_by_name(anchor.id, placement.folder_name)
        if folder is not None:
            return folder

        folder = self.chart.create_child_account(
            anchor.id, placement.folder_name, is_main=True
        )
        logger.info(
            "satellite_folder_created",
            extra={
                "kind": self.kind,
                "folder_code": folder.code,
                "anchor_code": anchor.code,
            },
        )
        return folder

    def create_leaf(self, placement: FolderPlacement, name: str, balance=None) -> Account:
        """Folder -> generated code -> new leaf Account."""
        self.chart.guard.require_open_year(f"add_{self.kind}")
        folder = self.ensure_folder(placement)
        return self.chart.create_child_account(folder.id, name, balance=balance)

    def attach_record(self, leaf: Account, record: RecordType) -> None:
        """Persist ``record``; if that fails, take ``leaf`` back out of the chart."""
        try:
            self._append(record)
        except LedgerKernelError:
            self.chart.apply(lambda tree: tree.remove(leaf.id))
            logger.warning(
                "satellite_leaf_rolled_back",
                extra={"kind": self.kind, "account_id": leaf.id, "account_code": leaf.code},
            )
            raise

    def owners(self) -> Iterator[tuple[str, str, str]]:
        for record in self._records:
            yield self.gl_account_id(record), self.kind, self.record_id(record)

    def delete_record(self, record_id: str) -> RecordType:
        """Delete the owned Account (guarded), then the record."""
        self.chart.guard.require_open_year(f"delete_{self.kind}")
        record = self.require(record_id)
        gl_id = self.gl_account_id(record)
        if self.chart.get_account(gl_id) is not None:
            self.chart.delete_account(gl_id, released_by=record_id)
        else:
            logger.warning(
                "satellite_account_missing",
                extra={"kind": self.kind, "record_id": record_id, "account_id": gl_id},
            )
        self._remove(record_id)
        logger.info(
            "satellite_deleted",
            extra={"kind": self.kind, "record_id": record_id, "account_id": gl_id},
        )
        return record
