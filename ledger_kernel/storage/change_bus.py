"""
ChangeBus -- in-process change notification.

Responsibility:
    Broadcasts "document X was written" signals so that every open ledger
    context sharing a store can re-read and re-hydrate.

Architecture position:
    Kernel > Storage.  No kernel imports beyond logging.

Invariants enforced:
    - Subscribers are called synchronously, in subscription order, on the
      publisher's call stack.
    - A subscriber exception propagates to the publisher; the write it
      announces has already been committed.
"""

from dataclasses import dataclass
from typing import Callable

from ledger_kernel.logging_config import get_logger

logger = get_logger("storage.change_bus")


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write to one stored document."""

    scope: str
    key: str
    version: int
    origin: str


Subscriber = Callable[[ChangeEvent], None]


class ChangeBus:
    """Synchronous publish/subscribe channel for document changes."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        logger.debug(
            "change_published",
            extra={
                "scope": event.scope,
                "key": event.key,
                "version": event.version,
                "origin": event.origin,
                "subscriber_count": len(self._subscribers),
            },
        )
        for callback in list(self._subscribers):
            callback(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
