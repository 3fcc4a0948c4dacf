"""Turn a freshly installed store into a working WooCommerce shop.

The chart only starts an empty WordPress and its database. The bootstrap runs
WP-CLI inside the WordPress container to install the site, the WooCommerce
plugin and the storefront theme, write the shop settings, and finally evaluate
a setup script that creates sample data:
```python
sequencer = BootstrapSequencer(Kubectl(), BootstrapConfig(), config.store_url)
result = await sequencer.run("shop-1")
for step in result.steps:
    print(step)
```

Stages run strictly in order and the first failing stage aborts the run.
Nothing is rolled back, a failed store stays in place so it can be inspected.
Steps that fetch from the network are retried a bounded number of times with
a fixed delay between attempts.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
from pathlib import Path

import aiofiles

from .config import BootstrapConfig
from .context import trace_context
from .exceptions import (
    BootstrapException,
    CommandException,
    DependencyTimeoutError,
)
from .kubectl import Kubectl
from .readiness import wait_ready
from .retry import StepResult, retry

__all__ = [
    "BootstrapResult",
    "BootstrapSequencer",
]

_LOGGER = logging.getLogger(__name__)

PAYLOAD_DIR = Path(__file__).parent / "payload"
DB_PROBE_PAYLOAD = PAYLOAD_DIR / "db-probe.php"
SETUP_PAYLOAD = PAYLOAD_DIR / "woo-setup.php"

DB_PROBE_PATH = "/tmp/storeforge-db-probe.php"
SETUP_PATH = "/tmp/woo-setup.php"

WP_CLI_URL = "https://raw.githubusercontent.com/wp-cli/builds/gh-pages/phar/wp-cli.phar"
WP_CLI_INSTALL = (
    "set -e; "
    'curl -sSfL -o /tmp/wp-cli.phar "$0"; '
    "chmod +x /tmp/wp-cli.phar; "
    "mv /tmp/wp-cli.phar /usr/local/bin/wp"
)

# The file path is passed as $0 so it is never interpolated into the script
WRITE_FILE = 'cat > "$0"'


@dataclass
class BootstrapResult:
    """Outcome of a bootstrap run."""

    success: bool
    error: str | None = None
    steps: list[StepResult] = field(default_factory=list)


@dataclass(frozen=True)
class _Target:
    """The container that remote commands run in."""

    namespace: str
    pod: str
    container: str


class BootstrapSequencer:
    """Runs the ordered bootstrap stages for a store."""

    def __init__(
        self,
        kubectl: Kubectl,
        config: BootstrapConfig,
        store_url: Callable[[str], str],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize BootstrapSequencer.

        Args:
            kubectl: Client used for every remote invocation
            config: Selectors, credentials and retry policy
            store_url: Maps a store identity to its public URL
            sleep: Awaitable used for every delay, replaced in tests
        """
        self._kubectl = kubectl
        self._config = config
        self._store_url = store_url
        self._sleep = sleep

    async def run(self, name: str) -> BootstrapResult:
        """Bootstrap the store, returning the result of each step run."""
        steps: list[StepResult] = []
        with trace_context(name), trace_context("bootstrap"):
            try:
                target = await self._prepare(name, steps)
                await self._wait_database(target, steps)
                await self._install_tooling(target, steps)
                await self._install_core(name, target, steps)
                await self._install_extensions(target, steps)
                await self._write_options(target, steps)
                await self._run_payload(target, steps)
            except BootstrapException as err:
                _LOGGER.error("Bootstrap of store %s failed at %s", name, err)
                return BootstrapResult(success=False, error=str(err), steps=steps)
        _LOGGER.info("Bootstrap of store %s complete (%d steps)", name, len(steps))
        return BootstrapResult(success=True, steps=steps)

    async def _exec(
        self, target: _Target, cmd: list[str], stdin: bytes | None = None
    ) -> str:
        """Run a command in the store container."""
        return await self._kubectl.exec(
            target.pod,
            target.container,
            target.namespace,
            cmd,
            timeout=self._config.exec_timeout,
            stdin=stdin,
        )

    def _wp(self, *args: str) -> list[str]:
        """Build a WP-CLI command line."""
        return ["wp", *args, "--allow-root", f"--path={self._config.wp_path}"]

    async def _write_file(self, target: _Target, path: str, content: bytes) -> str:
        """Stream content into a file inside the container byte for byte."""
        return await self._exec(target, ["sh", "-c", WRITE_FILE, path], stdin=content)

    async def _retry(
        self,
        steps: list[StepResult],
        stage: str,
        operation: Callable[[], Awaitable[str]],
        attempts: int,
    ) -> StepResult:
        """Run a retried step, raising when every attempt failed."""
        with trace_context(stage):
            step = await retry(
                stage, operation, attempts, self._config.retry_delay, self._sleep
            )
        steps.append(step)
        if not step.success:
            raise BootstrapException(
                stage, f"failed after {step.attempts} attempts: {step.error}"
            )
        return step

    async def _once(
        self,
        steps: list[StepResult],
        stage: str,
        operation: Callable[[], Awaitable[str]],
    ) -> StepResult:
        """Run a step that is not retried."""
        with trace_context(stage):
            try:
                output = await operation()
            except CommandException as err:
                steps.append(StepResult(stage, 1, False, error=str(err)))
                raise BootstrapException(stage, str(err)) from err
        step = StepResult(stage, 1, True, output=output)
        steps.append(step)
        return step

    async def _prepare(self, name: str, steps: list[StepResult]) -> _Target:
        """Wait for the application pod and resolve its name."""
        with trace_context("wait-ready"):
            ready = await wait_ready(
                self._kubectl,
                name,
                self._config.selector,
                timeout=self._config.ready_timeout,
                poll_interval=self._config.poll_interval,
                sleep=self._sleep,
            )
        steps.append(
            StepResult("wait-ready", 1, ready.success, ready.output, ready.error)
        )
        if not ready.success:
            raise BootstrapException("wait-ready", ready.error or "pods not ready")

        try:
            pods = await self._kubectl.get_pods(name, self._config.selector)
        except CommandException as err:
            raise BootstrapException("find-pod", str(err)) from err
        if not pods:
            raise BootstrapException(
                "find-pod", f"No pod matches {self._config.selector} in {name}"
            )
        _LOGGER.debug("Store %s runs in pod %s", name, pods[0])
        steps.append(StepResult("find-pod", 1, True, output=pods[0]))
        return _Target(name, pods[0], self._config.container)

    async def _wait_database(self, target: _Target, steps: list[StepResult]) -> None:
        """Poll the database with a probe script, then allow a grace period.

        The database answering does not mean WordPress finished its own
        initialization, hence the extra fixed delay afterwards.
        """
        async with aiofiles.open(DB_PROBE_PAYLOAD, mode="rb") as probe_file:
            probe = await probe_file.read()
        await self._once(
            steps,
            "inject-db-probe",
            lambda: self._write_file(target, DB_PROBE_PATH, probe),
        )
        try:
            await self._retry(
                steps,
                "wait-database",
                lambda: self._exec(target, ["php", DB_PROBE_PATH]),
                self._config.db_attempts,
            )
        except BootstrapException as err:
            raise DependencyTimeoutError(
                "wait-database",
                f"Database never became ready after {self._config.db_attempts} "
                f"attempts",
            ) from err
        _LOGGER.info(
            "Database for %s ready, waiting %gs for WordPress to settle",
            target.namespace,
            self._config.grace_delay,
        )
        await self._sleep(self._config.grace_delay)

    async def _install_tooling(self, target: _Target, steps: list[StepResult]) -> None:
        """Install WP-CLI unless the container already has it."""

        async def install() -> str:
            try:
                return await self._exec(target, ["wp", "--info", "--allow-root"])
            except CommandException:
                _LOGGER.debug("WP-CLI missing in %s, installing", target.pod)
            return await self._exec(target, ["sh", "-c", WP_CLI_INSTALL, WP_CLI_URL])

        await self._retry(steps, "install-wp-cli", install, self._config.tool_attempts)

    async def _install_core(
        self, name: str, target: _Target, steps: list[StepResult]
    ) -> None:
        """Create the WordPress tables and admin account.

        This runs once and is skipped when WordPress reports it is installed,
        e.g. when a previous bootstrap failed at a later stage.
        """
        try:
            await self._exec(target, self._wp("core", "is-installed"))
        except CommandException:
            pass
        else:
            _LOGGER.info("WordPress already installed for %s, skipping", name)
            steps.append(StepResult("install-core", 0, True, output="skipped"))
            return

        cmd = self._wp(
            "core",
            "install",
            f"--url={self._store_url(name)}",
            f"--title={name}",
            f"--admin_user={self._config.admin_user}",
            f"--admin_password={self._config.admin_password}",
            f"--admin_email={self._config.admin_email}",
            "--skip-email",
        )
        await self._once(steps, "install-core", lambda: self._exec(target, cmd))

    async def _install_extensions(
        self, target: _Target, steps: list[StepResult]
    ) -> None:
        """Install and activate the shop plugin and theme."""
        plugin = self._wp("plugin", "install", self._config.plugin, "--activate")
        await self._retry(
            steps,
            "install-plugin",
            lambda: self._exec(target, plugin),
            self._config.plugin_attempts,
        )
        theme = self._wp("theme", "install", self._config.theme, "--activate")
        await self._retry(
            steps,
            "install-theme",
            lambda: self._exec(target, theme),
            self._config.theme_attempts,
        )

    async def _write_options(self, target: _Target, steps: list[StepResult]) -> None:
        for key, value in self._config.options.items():
            cmd = self._wp("option", "update", key, value)
            await self._retry(
                steps,
                f"option-{key}",
                lambda cmd=cmd: self._exec(target, cmd),  # type: ignore[misc]
                self._config.option_attempts,
            )

    async def _run_payload(self, target: _Target, steps: list[StepResult]) -> None:
        """Copy the setup script into the container and evaluate it."""
        payload_path = self._config.payload_path or SETUP_PAYLOAD
        try:
            async with aiofiles.open(payload_path, mode="rb") as payload_file:
                payload = await payload_file.read()
        except OSError as err:
            raise BootstrapException(
                "setup-script", f"Unable to read {payload_path}: {err}"
            ) from err

        async def deliver_and_eval() -> str:
            await self._write_file(target, SETUP_PATH, payload)
            return await self._exec(target, self._wp("eval-file", SETUP_PATH))

        step = await self._retry(
            steps, "setup-script", deliver_and_eval, self._config.payload_attempts
        )
        _LOGGER.debug("Setup script output for %s:\n%s", target.namespace, step.output)
