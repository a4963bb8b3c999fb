"""
PersistenceBridge and cross-context synchronisation.

Two LedgerContexts over one database model two open screens: a write in
one is re-read by the other through the ChangeBus; without the bus, the
stale writer gets an OptimisticLockError and keeps its old state.
"""

import pytest

from ledger_kernel.domain.account import Account, AccountLevel, AccountType
from ledger_kernel.exceptions import OptimisticLockError
from ledger_kernel.models.document import StorageScope
from ledger_kernel.storage import ACCOUNTS_KEY
from ledger_kernel.storage.bridge import PersistenceBridge
from ledger_kernel.storage.change_bus import ChangeBus


def _bridge(store, bus, origin):
    return PersistenceBridge(
        store,
        bus,
        StorageScope.FINANCE_DATA,
        "NUMBERS",
        encode=list,
        decode=list,
        origin=origin,
    )


class TestPersistenceBridge:
    def test_load_of_unwritten_document_is_none(self, store):
        bridge = _bridge(store, ChangeBus(), "a")
        assert bridge.load() is None
        assert bridge.version == 0

    def test_commit_writes_and_broadcasts(self, store):
        bus = ChangeBus()
        events = []
        bus.subscribe(events.append)
        bridge = _bridge(store, bus, "a")
        bridge.load()

        assert bridge.commit([1, 2]) is True
        assert bridge.version == 1
        assert store.load(StorageScope.FINANCE_DATA, "NUMBERS") == [1, 2]
        assert [(e.key, e.version, e.origin) for e in events] == [("NUMBERS", 1, "a")]

    def test_unchanged_commit_is_a_no_op(self, store):
        bus = ChangeBus()
        events = []
        bus.subscribe(events.append)
        bridge = _bridge(store, bus, "a")
        bridge.load()
        bridge.commit([1])

        assert bridge.commit([1]) is False
        assert bridge.version == 1
        assert len(events) == 1

    def test_stale_commit_raises(self, store):
        first = _bridge(store, ChangeBus(), "a")
        second = _bridge(store, ChangeBus(), "b")
        first.load()
        second.load()
        first.commit([1])

        with pytest.raises(OptimisticLockError):
            second.commit([2])
        assert store.load(StorageScope.FINANCE_DATA, "NUMBERS") == [1]

    def test_refresh_returns_value_only_on_change(self, store):
        first = _bridge(store, ChangeBus(), "a")
        second = _bridge(store, ChangeBus(), "b")
        first.load()
        second.load()
        first.commit([7])

        assert second.refresh() == [7]
        assert second.refresh() is None
        assert second.version == 1
        assert second.commit([7, 8]) is True

    def test_require_current_detects_other_writer(self, store):
        first = _bridge(store, ChangeBus(), "a")
        second = _bridge(store, ChangeBus(), "b")
        first.load()
        second.load()
        second.require_current()
        first.commit([3])

        with pytest.raises(OptimisticLockError) as exc_info:
            second.require_current()
        assert (exc_info.value.expected_version, exc_info.value.actual_version) == (0, 1)
        second.refresh()
        second.require_current()

    def test_subscriber_ignores_own_writes_and_other_keys(self, store):
        bus = ChangeBus()
        mine = _bridge(store, bus, "a")
        theirs = _bridge(store, bus, "b")
        other_key = PersistenceBridge(
            store, bus, StorageScope.FINANCE_DATA, "OTHER", list, list, origin="b"
        )
        for bridge in (mine, theirs, other_key):
            bridge.load()
        received = []
        mine.subscribe(received.append)

        mine.commit([1])
        other_key.commit([99])
        theirs.refresh()
        theirs.commit([1, 2])

        assert received == [[1, 2]]


class TestContextSynchronisation:
    def test_change_in_one_context_reaches_the_other(self, make_ledger):
        screen_a = make_ledger()
        screen_b = make_ledger()
        current = screen_a.chart.find_by_code("11")

        added = screen_a.chart.create_child_account(current.id, "Petty Cash")

        assert screen_b.chart.get_account(added.id) is not None
        assert screen_b.chart.find_by_code(added.code).name == "Petty Cash"

    def test_posting_in_one_context_updates_the_other(self, make_ledger):
        from ledger_kernel.services.balance_poster import Posting

        screen_a = make_ledger()
        screen_b = make_ledger()
        cash = screen_a.chart.find_by_code("1101")

        screen_a.poster.post_transactions([Posting(cash.id, "75.00")])

        assert str(screen_b.chart.get_account(cash.id).balance) == "75.00"

    def test_stale_context_conflicts_and_keeps_its_state(self, make_ledger):
        screen_a = make_ledger()
        screen_b = make_ledger(shared_bus=False)
        parent = screen_a.chart.find_by_code("12")
        screen_a.chart.create_child_account(parent.id, "Buildings")
        before = len(screen_b.chart.accounts())

        with pytest.raises(OptimisticLockError):
            screen_b.chart.create_child_account(
                screen_b.chart.find_by_code("12").id, "Furniture"
            )
        assert len(screen_b.chart.accounts()) == before

        assert screen_b.refresh() is True
        retried = screen_b.chart.create_child_account(
            screen_b.chart.find_by_code("12").id, "Furniture"
        )
        assert retried.code == "1202"

    def test_closed_context_stops_listening(self, make_ledger):
        screen_a = make_ledger()
        screen_b = make_ledger()
        screen_b.close()
        parent = screen_a.chart.find_by_code("14")

        added = screen_a.chart.create_child_account(parent.id, "Stationery")

        assert screen_b.chart.get_account(added.id) is None
        assert screen_b.refresh() is True
        assert screen_b.chart.get_account(added.id) is not None

    def test_duplicated_store_records_are_collapsed_on_load(self, store, make_ledger):
        make_ledger()
        stored = store.load(StorageScope.FINANCE_DATA, ACCOUNTS_KEY)
        duplicate = Account(
            id="COPY-1101",
            code="1101",
            name="Cash Safe (copy)",
            type=AccountType.ASSET,
            level=AccountLevel.LEAF,
            parent_id="ACC-11-CURRENT",
            is_main=False,
            balance="5",
        )
        store.save(StorageScope.FINANCE_DATA, ACCOUNTS_KEY, stored + [duplicate.to_dict()])

        reopened = make_ledger(shared_bus=False)

        matches = [a for a in reopened.chart.accounts() if a.code == "1101"]
        assert [a.id for a in matches] == ["COPY-1101"]
