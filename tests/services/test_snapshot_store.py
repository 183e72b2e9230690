"""
Tests for the SnapshotStore.
"""
import threading

from gagwatch.services.snapshot_store import SnapshotStore


def test_empty_store(snapshot_store):
    assert snapshot_store.get() is None
    assert not snapshot_store.is_available
    assert snapshot_store.age_seconds() is None


def test_set_and_clear(snapshot_store, make_snapshot):
    snapshot = make_snapshot(seed=[("Carrot", 5)])

    snapshot_store.set(snapshot)
    assert snapshot_store.get() is snapshot
    assert snapshot_store.is_available
    assert snapshot_store.age_seconds() >= 0

    snapshot_store.clear()
    assert snapshot_store.get() is None


def test_readers_only_see_whole_snapshots(make_snapshot):
    store = SnapshotStore()
    first = make_snapshot(seed=[("Carrot", 1)], gear=[("Trowel", 1)])
    second = make_snapshot(seed=[("Tomato", 2)], gear=[("Sprinkler", 2)])
    seen = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            current = store.get()
            if current is not None:
                seen.append((current.items("seed")[0].name, current.items("gear")[0].name))

    thread = threading.Thread(target=reader)
    thread.start()
    for i in range(2000):
        store.set(first if i % 2 else second)
    stop.set()
    thread.join()

    assert set(seen) <= {("Carrot", "Trowel"), ("Tomato", "Sprinkler")}
