"""Lifecycle status for a store."""

from enum import StrEnum


class Status(StrEnum):
    """User facing lifecycle status of a store."""

    PROVISIONING = "Provisioning"
    READY = "Ready"
    FAILED = "Failed"


_HELM_STATUS = {
    "deployed": Status.READY,
    "failed": Status.FAILED,
}


def from_helm_status(helm_status: str | None) -> Status:
    """Map a raw helm release status to a lifecycle status.

    Anything that is not known to be terminal is still provisioning, including
    `pending-install`, `pending-upgrade` and values added by future helm versions.
    """
    if not helm_status:
        return Status.PROVISIONING
    return _HELM_STATUS.get(helm_status.strip().lower(), Status.PROVISIONING)
