"""Merge of the authoritative release list with the tracking table."""

import dataclasses
import logging

from .record import StoreRecord
from .status import Status
from .tracking import TrackingTable

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "reconcile",
]


def reconcile(records: list[StoreRecord], table: TrackingTable) -> list[StoreRecord]:
    """Return the merged user facing view of all stores.

    A release reported by helm always wins: its tracking entry is dropped from
    the table and not included. A release whose workflow failed is reported
    as `Failed` with the recorded error. Tracked stores helm does not know
    about yet are appended after the releases.
    """
    result = []
    for record in records:
        if (error := table.failure(record.name)) is not None:
            record = dataclasses.replace(record, status=Status.FAILED, error=error)
        result.append(record)
    released = {record.name for record in records}
    for entry in table.snapshot():
        if entry.name in released:
            _LOGGER.debug("Store %s reported by helm, no longer tracked", entry.name)
            table.remove(entry.name)
        else:
            result.append(entry)
    return result
