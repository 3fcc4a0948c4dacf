"""Transient tracking of stores that the cluster does not report yet."""

import dataclasses
import logging
import threading

from .record import StoreRecord, now_timestamp
from .status import Status

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "TrackingTable",
]


class TrackingTable:
    """A synchronized map of in-flight stores keyed by identity.

    Failures are kept apart from the in-flight entries: helm may already
    report the release of a store whose bootstrap failed, so the entry is
    dropped while the failure must still be shown. A failure is only cleared
    by `forget`, i.e. when the store is deleted.

    Entries are copied on the way in and out so callers never hold a reference
    to the shared state.
    """

    def __init__(self) -> None:
        """Initialize TrackingTable."""
        self._lock = threading.Lock()
        self._entries: dict[str, StoreRecord] = {}
        self._failures: dict[str, str] = {}

    def add(self, record: StoreRecord) -> bool:
        """Insert the record unless its identity is already tracked.

        Returns True if the record was inserted.
        """
        with self._lock:
            if record.name in self._entries or record.name in self._failures:
                return False
            self._entries[record.name] = dataclasses.replace(record)
        _LOGGER.debug("Tracking store %s", record.name)
        return True

    def mark_failed(self, name: str, error: str) -> bool:
        """Record the failure of a store.

        The failure is kept even if the entry was dropped in the meantime.
        Returns True if an in-flight entry was marked as failed.
        """
        with self._lock:
            self._failures[name] = error
            if (entry := self._entries.get(name)) is None:
                return False
            self._entries[name] = dataclasses.replace(
                entry,
                status=Status.FAILED,
                helm_status="failed",
                error=error,
                updated=now_timestamp(),
            )
        return True

    def failure(self, name: str) -> str | None:
        """Return the recorded failure of a store, if any."""
        with self._lock:
            return self._failures.get(name)

    def remove(self, name: str) -> bool:
        """Stop tracking a store, returning True if it was tracked.

        A recorded failure is kept.
        """
        with self._lock:
            removed = self._entries.pop(name, None) is not None
        if removed:
            _LOGGER.debug("Stopped tracking store %s", name)
        return removed

    def forget(self, name: str) -> None:
        """Drop the entry and any recorded failure of a deleted store."""
        with self._lock:
            self._entries.pop(name, None)
            self._failures.pop(name, None)

    def get(self, name: str) -> StoreRecord | None:
        """Return a copy of the entry for a store."""
        with self._lock:
            entry = self._entries.get(name)
            return dataclasses.replace(entry) if entry else None

    def snapshot(self) -> list[StoreRecord]:
        """Return copies of all entries in insertion order."""
        with self._lock:
            return [dataclasses.replace(entry) for entry in self._entries.values()]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries or name in self._failures

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
