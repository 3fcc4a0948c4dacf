"""Orchestrator for store provisioning.

A store moves through `Provisioning` to either `Ready` or `Failed`. Creating a
store only validates the request and records a tracking entry, the workflow
(helm install, wait for the pods, bootstrap) then runs as a background task:

```python
orchestrator = Orchestrator.from_config(StoreForgeConfig.from_env())
await orchestrator.create("shop-1", "woocommerce")
stores = await orchestrator.list()
```

The tracking entry only covers the window before helm reports the release. It
is removed when the workflow succeeds or as soon as helm lists the store. A
failed workflow is recorded until the store is deleted, so the store is listed
as `Failed` whether or not helm reports its release.
"""

import logging
from pathlib import Path
import tempfile

from storeforge import identity
from storeforge.bootstrap import BootstrapSequencer
from storeforge.config import (
    StoreForgeConfig,
    SUPPORTED_ENGINES,
    PLANNED_ENGINES,
)
from storeforge.context import trace_context
from storeforge.exceptions import DuplicateStoreError, ValidationError
from storeforge.helm import Helm
from storeforge.kubectl import Kubectl
from storeforge.result import Result
from storeforge.store import (
    Status,
    StoreRecord,
    TrackingTable,
    now_timestamp,
    reconcile,
)
from storeforge.task import TaskService, TaskServiceImpl

_LOGGER = logging.getLogger(__name__)


class Orchestrator:
    """Creates, lists and deletes stores.

    The orchestrator is responsible for:
    - Validating store requests before anything touches the cluster
    - Running one provisioning workflow per store in the background
    - Tracking stores that helm does not report yet
    - Cancelling the workflow of a store that is deleted while in flight
    """

    def __init__(
        self,
        config: StoreForgeConfig,
        helm: Helm,
        sequencer: BootstrapSequencer,
        table: TrackingTable | None = None,
        task_service: TaskService | None = None,
        tmp_dir: tempfile.TemporaryDirectory[str] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        A temporary directory passed in is owned by the orchestrator and
        removed by `close`.
        """
        self._config = config
        self._helm = helm
        self._sequencer = sequencer
        self._table = table or TrackingTable()
        self._tasks = task_service or TaskServiceImpl()
        self._tmp_dir = tmp_dir

    @classmethod
    def from_config(cls, config: StoreForgeConfig) -> "Orchestrator":
        """Create an orchestrator that talks to the real cluster."""
        kubectl = Kubectl(config.kubectl_bin, config.command_timeout)
        tmp_dir = tempfile.TemporaryDirectory(prefix="storeforge-helm-")
        return cls(
            config,
            Helm(config, Path(tmp_dir.name), kubectl),
            BootstrapSequencer(kubectl, config.bootstrap, config.store_url),
            tmp_dir=tmp_dir,
        )

    @property
    def table(self) -> TrackingTable:
        """The tracking table of in-flight stores."""
        return self._table

    def _validate(self, name: str | None, engine: str | None) -> tuple[str, str]:
        """Check the request and return the store identity and engine."""
        if not name or not engine:
            raise ValidationError("Name and engine are required")
        name = identity.validate(name)
        if engine in PLANNED_ENGINES:
            raise ValidationError(
                f"Engine {engine} is not supported yet. "
                f"Supported: {', '.join(SUPPORTED_ENGINES)}"
            )
        if engine not in SUPPORTED_ENGINES:
            raise ValidationError(
                f"Invalid engine. Supported: {', '.join(SUPPORTED_ENGINES)}"
            )
        return name, engine

    def _tracked_record(self, name: str, engine: str) -> StoreRecord:
        url = self._config.store_url(name)
        now = now_timestamp()
        return StoreRecord(
            name=name,
            namespace=name,
            status=Status.PROVISIONING,
            helm_status="pending-install",
            url=url,
            admin_url=f"{url}/wp-admin",
            engine=engine,
            created=now,
            updated=now,
            chart=self._config.chart_ref,
        )

    async def create(self, name: str | None, engine: str | None) -> StoreRecord:
        """Accept a new store and start provisioning it in the background.

        Raises:
            ValidationError: The name or engine is invalid.
            DuplicateStoreError: The store exists or is being provisioned.
        """
        name, engine = self._validate(name, engine)
        if name in self._table or self.is_provisioning(name):
            raise DuplicateStoreError(name)
        if any(record.name == name for record in await self._helm.list()):
            raise DuplicateStoreError(name)
        record = self._tracked_record(name, engine)
        # Another request may have been accepted while listing releases
        if not self._table.add(record):
            raise DuplicateStoreError(name)

        _LOGGER.info("[CREATE] Provisioning store: %s (%s)", name, engine)
        try:
            self._tasks.create_task(name, self._provision(name, engine))
        except ValueError as err:
            self._table.remove(name)
            raise DuplicateStoreError(name) from err
        return record

    async def _provision(self, name: str, engine: str) -> None:
        """Workflow of a single store: install, then bootstrap."""
        with trace_context(name):
            try:
                result = await self._run_workflow(name, engine)
            except Exception as err:  # pylint: disable=broad-except
                _LOGGER.exception("[CREATE] Store %s workflow crashed", name)
                result = Result(success=False, error=f"Unexpected error: {err}")
        if result.success:
            _LOGGER.info("[CREATE] Store %s fully provisioned", name)
            self._table.remove(name)
        else:
            _LOGGER.error("[CREATE] Store %s failed: %s", name, result.error)
            self._table.mark_failed(name, result.error or "Unknown error")

    async def _run_workflow(self, name: str, engine: str) -> Result:
        with trace_context("install"):
            installed = await self._helm.install(name, engine)
        if not installed.success:
            return installed
        _LOGGER.info("[CREATE] Store %s deployed, starting bootstrap", name)
        bootstrap = await self._sequencer.run(name)
        for step in bootstrap.steps:
            _LOGGER.debug("[CREATE] %s: %s", name, step)
        if not bootstrap.success:
            return Result(
                success=False, error=f"Bootstrap failed: {bootstrap.error}"
            )
        return Result(success=True, output=installed.output)

    async def list(self) -> list[StoreRecord]:
        """Return releases reported by helm merged with in-flight stores."""
        return reconcile(await self._helm.list(), self._table)

    async def delete(self, name: str) -> Result:
        """Tear down a store, cancelling its workflow if still running.

        The tracking entry and any recorded failure are removed whatever the
        outcome of the teardown.

        Raises:
            ValidationError: The name is not a valid store identity.
        """
        name = identity.validate(name)
        _LOGGER.info("[DELETE] Deleting store: %s", name)
        if await self._tasks.cancel(name):
            _LOGGER.info("[DELETE] Cancelled in-flight provisioning of %s", name)
        try:
            result = await self._helm.uninstall(name)
        finally:
            self._table.forget(name)
        if not result.success:
            _LOGGER.error("[DELETE] Store %s teardown failed: %s", name, result.error)
        return result

    def is_provisioning(self, name: str) -> bool:
        """Return True while the workflow of a store is running."""
        return self._tasks.get_task(name) is not None

    async def wait_idle(self) -> None:
        """Wait until no workflow is running."""
        while self._tasks.get_num_active_tasks():
            await self._tasks.block_till_done()

    async def close(self) -> None:
        """Cancel all running workflows and remove temporary files."""
        await self._tasks.close()
        if self._tmp_dir is not None:
            self._tmp_dir.cleanup()
            self._tmp_dir = None
