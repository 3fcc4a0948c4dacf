"""Tests for the tracking table."""

import threading
from typing import Any

from storeforge.store import Status, TrackingTable


def test_add_is_check_and_insert(record: Any) -> None:
    """Test a tracked identity cannot be added twice."""
    table = TrackingTable()
    assert table.add(record("shop-1", Status.PROVISIONING))
    assert not table.add(record("shop-1", Status.PROVISIONING))
    assert len(table) == 1
    assert "shop-1" in table


def test_mark_failed(record: Any) -> None:
    """Test marking an entry as failed."""
    table = TrackingTable()
    table.add(record("shop-1", Status.PROVISIONING, helm_status="pending-install"))
    assert table.mark_failed("shop-1", "boom")
    entry = table.get("shop-1")
    assert entry
    assert entry.status == Status.FAILED
    assert entry.helm_status == "failed"
    assert entry.error == "boom"


def test_mark_failed_does_not_recreate(record: Any) -> None:
    """Test a removed entry is not brought back by a late failure."""
    table = TrackingTable()
    table.add(record("shop-1", Status.PROVISIONING))
    assert table.remove("shop-1")
    assert not table.mark_failed("shop-1", "boom")
    assert table.get("shop-1") is None
    assert not table.remove("shop-1")


def test_entries_are_copies(record: Any) -> None:
    """Test callers cannot mutate the shared state."""
    table = TrackingTable()
    original = record("shop-1", Status.PROVISIONING)
    table.add(original)
    original.status = Status.READY
    snapshot = table.snapshot()
    snapshot[0].status = Status.READY
    entry = table.get("shop-1")
    assert entry
    assert entry.status == Status.PROVISIONING


def test_concurrent_add(record: Any) -> None:
    """Test only one of many concurrent adds for an identity succeeds."""
    table = TrackingTable()
    results: list[bool] = []
    barrier = threading.Barrier(8)

    def add() -> None:
        barrier.wait()
        results.append(table.add(record("shop-1", Status.PROVISIONING)))

    threads = [threading.Thread(target=add) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert results.count(True) == 1


def test_failure_outlives_entry(record: Any) -> None:
    """Test a failure is kept when the entry was dropped first."""
    table = TrackingTable()
    table.add(record("shop-1", Status.PROVISIONING))
    table.remove("shop-1")
    assert not table.mark_failed("shop-1", "boom")
    assert table.failure("shop-1") == "boom"
    assert "shop-1" in table
    assert not table.add(record("shop-1", Status.PROVISIONING))


def test_forget(record: Any) -> None:
    """Test a deleted store can be tracked again."""
    table = TrackingTable()
    table.add(record("shop-1", Status.PROVISIONING))
    table.mark_failed("shop-1", "boom")
    assert table.remove("shop-1")
    assert table.failure("shop-1") == "boom"
    table.forget("shop-1")
    assert table.failure("shop-1") is None
    assert "shop-1" not in table
    assert table.add(record("shop-1", Status.PROVISIONING))
