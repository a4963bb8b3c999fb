"""
PersistenceBridge -- one in-memory collection <-> one stored document.

Responsibility:
    Loads a collection (accounts, journal entries, satellite records) from
    the DocumentStore, writes it back after every committed mutation,
    broadcasts the change, and re-hydrates when another context writes.

Architecture position:
    Kernel > Storage.  Services own a bridge each; the bridge knows only
    how to encode/decode the collection it was given.

Invariants enforced:
    - Writes carry the version this bridge last saw; a concurrent write by
      another context surfaces as OptimisticLockError and nothing in memory
      is replaced.
    - A commit whose serialization equals the last written/read one is a
      no-op (no version bump, no broadcast).
    - ``refresh`` returns a new value only when the stored serialization
      differs from the last one this bridge knew about.

Failure modes:
    - OptimisticLockError from ``commit`` or ``require_current`` on a
      stale version.
    - ValueError / KeyError from ``decode`` on a corrupt payload.
"""

from typing import Any, Callable, Generic, TypeVar

from ledger_kernel.exceptions import OptimisticLockError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.document import StorageScope
from ledger_kernel.storage.change_bus import ChangeBus, ChangeEvent
from ledger_kernel.storage.document_store import DocumentStore, serialize

logger = get_logger("storage.bridge")

T = TypeVar("T")


class PersistenceBridge(Generic[T]):
    """
    Versioned load/commit/refresh for a single document.

    Contract:
        ``encode`` turns the collection into JSON-compatible data;
        ``decode`` is its inverse.  ``origin`` identifies the owning
        context so it can ignore its own broadcasts.
    """

    def __init__(
        self,
        store: DocumentStore,
        bus: ChangeBus,
        scope: StorageScope,
        key: str,
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
        origin: str,
    ):
        self.store = store
        self.bus = bus
        self.scope = scope
        self.key = key
        self._encode = encode
        self._decode = decode
        self.origin = origin
        self._version = 0
        self._last_serialized: str | None = None

    @property
    def version(self) -> int:
        return self._version

    def load(self) -> T | None:
        """Read the stored document; None when it has never been written."""
        snapshot = self.store.read(self.scope, self.key)
        self._version = snapshot.version
        self._last_serialized = snapshot.payload
        if snapshot.payload is None:
            return None
        return self._decode(snapshot.decode())

    def require_current(self) -> None:
        """
        Raise OptimisticLockError if the stored document moved past the
        version this bridge last read or wrote.
        """
        stored = self.store.read(self.scope, self.key).version
        if stored != self._version:
            raise OptimisticLockError(
                f"{self.scope.value}/{self.key}", self._version, stored
            )

    def commit(self, value: T) -> bool:
        """
        Persist ``value`` and broadcast; returns False when nothing changed.

        Raises:
            OptimisticLockError: another context wrote since our last read.
        """
        payload = serialize(self._encode(value))
        if payload == self._last_serialized:
            return False
        self._version = self.store.write(
            self.scope, self.key, payload, expected_version=self._version
        )
        self._last_serialized = payload
        self.bus.publish(
            ChangeEvent(
                scope=self.scope.value,
                key=self.key,
                version=self._version,
                origin=self.origin,
            )
        )
        return True

    def refresh(self) -> T | None:
        """Re-read; returns the decoded value only if the content changed."""
        snapshot = self.store.read(self.scope, self.key)
        if snapshot.payload is None or snapshot.payload == self._last_serialized:
            self._version = max(self._version, snapshot.version)
            return None
        self._version = snapshot.version
        self._last_serialized = snapshot.payload
        logger.info(
            "document_rehydrated",
            extra={"scope": self.scope.value, "key": self.key, "version": snapshot.version},
        )
        return self._decode(snapshot.decode())

    def subscribe(self, on_change: Callable[[T], None]) -> Callable[[], None]:
        """
        Call ``on_change(value)`` whenever another context writes this document.

        Returns the unsubscribe function.
        """

        def _handle(event: ChangeEvent) -> None:
            if event.origin == self.origin:
                return
            if event.scope != self.scope.value or event.key != self.key:
                return
            value = self.refresh()
            if value is not None:
                on_change(value)

        return self.bus.subscribe(_handle)
