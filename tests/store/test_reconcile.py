"""Tests for merging helm releases with tracked stores."""

from typing import Any

from storeforge.store import Status, StoreRecord, TrackingTable, reconcile


def test_releases_only(record: Any) -> None:
    """Test the release list is passed through."""
    releases = [record("shop-1"), record("shop-2")]
    assert reconcile(releases, TrackingTable()) == releases


def test_tracked_appended(record: Any) -> None:
    """Test tracked stores unknown to helm are appended and kept."""
    table = TrackingTable()
    table.add(record("shop-2", Status.PROVISIONING))
    result = reconcile([record("shop-1")], table)
    assert [r.name for r in result] == ["shop-1", "shop-2"]
    assert result[1].status == Status.PROVISIONING
    assert "shop-2" in table


def test_release_wins(record: Any) -> None:
    """Test a tracked store reported by helm is dropped from the table."""
    table = TrackingTable()
    table.add(record("shop-1", Status.PROVISIONING))
    result = reconcile([record("shop-1")], table)
    assert len(result) == 1
    assert result[0].status == Status.READY
    assert "shop-1" not in table


def test_converges(record: Any) -> None:
    """Test later passes never produce a duplicate or stale copy."""
    table = TrackingTable()
    table.add(record("shop-1", Status.FAILED, error="boom"))
    releases = [record("shop-1")]
    for _ in range(3):
        result = reconcile(releases, table)
        assert [r.name for r in result] == ["shop-1"]
        assert result[0].error is None
    assert len(table) == 0


def test_serialization(record: Any) -> None:
    """Test records serialize with the API field names."""
    data = record("shop-1", Status.FAILED, error="boom").to_dict()
    assert data == {
        "name": "shop-1",
        "namespace": "shop-1",
        "status": "Failed",
        "helmStatus": "failed",
        "url": "http://shop-1.local",
        "adminUrl": "http://shop-1.local/wp-admin",
        "engine": "woocommerce",
        "created": "2024-01-15T10:30:45",
        "updated": "2024-01-15T10:30:45",
        "chart": "universal-store-0.2.0",
        "error": "boom",
    }
    assert "error" not in record("shop-2").to_dict()
    assert StoreRecord.from_dict(data) == record("shop-1", Status.FAILED, error="boom")


def test_failed_release(record: Any) -> None:
    """Test a released store whose workflow failed is reported once as failed."""
    table = TrackingTable()
    table.add(record("shop-1", Status.PROVISIONING))
    table.mark_failed("shop-1", "Bootstrap failed: install-theme: boom")
    releases = [record("shop-1"), record("shop-2")]
    for _ in range(2):
        result = reconcile(releases, table)
        assert [(r.name, r.status) for r in result] == [
            ("shop-1", Status.FAILED),
            ("shop-2", Status.READY),
        ]
        assert result[0].error == "Bootstrap failed: install-theme: boom"
        assert result[0].created == "2024-01-15T10:30:45"
    assert len(table) == 0
    assert releases[0].status == Status.READY
