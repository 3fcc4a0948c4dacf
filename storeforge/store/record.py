"""Store records as shown to users of the API."""

from dataclasses import dataclass, field
import datetime

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig

from .status import Status

__all__ = [
    "StoreRecord",
    "now_timestamp",
]


def now_timestamp() -> str:
    """Return the current UTC time in the canonical timestamp format."""
    now = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
    return now.strftime("%Y-%m-%dT%H:%M:%S")


@dataclass
class StoreRecord(DataClassDictMixin):
    """A store, either derived from a helm release or tracked while in flight."""

    name: str
    """Store identity, also the release name."""

    namespace: str
    """Namespace holding all resources of the store."""

    status: Status
    """Lifecycle status."""

    helm_status: str = field(metadata=field_options(alias="helmStatus"))
    """Raw release status reported by helm."""

    url: str
    admin_url: str = field(metadata=field_options(alias="adminUrl"))
    engine: str
    created: str
    updated: str
    chart: str

    error: str | None = None
    """Diagnostic message when provisioning failed."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True
