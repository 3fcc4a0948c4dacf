"""Store records, their status, and tracking of in-flight stores."""

from .record import StoreRecord, now_timestamp
from .reconcile import reconcile
from .status import Status, from_helm_status
from .tracking import TrackingTable

__all__ = [
    "StoreRecord",
    "Status",
    "TrackingTable",
    "from_helm_status",
    "now_timestamp",
    "reconcile",
]
