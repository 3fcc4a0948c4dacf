"""Test fixtures shared by the storeforge tests.

helm and kubectl are never invoked: commands are answered by a fake at the
`command.run` seam, or the Helm/Kubectl objects are replaced entirely.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from storeforge import command
from storeforge.bootstrap import BootstrapResult
from storeforge.config import BootstrapConfig, StoreForgeConfig
from storeforge.exceptions import KubectlException
from storeforge.result import Result
from storeforge.retry import StepResult
from storeforge.store import Status, StoreRecord


class FakeCommands:
    """Answers commands by their first argument after the binary."""

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], bytes | None]] = []
        self.responses: dict[str, str | dict[str, Any]] = {}
        self.values: dict[str, str] = {}

    def respond(self, subcommand: str, output: str = "") -> None:
        self.responses[subcommand] = output

    def fail(self, subcommand: str, stderr: str, returncode: int = 1) -> None:
        self.responses[subcommand] = {"stderr": stderr, "returncode": returncode}

    def subcommands(self) -> list[str]:
        return [cmd[1] for cmd, _ in self.calls]

    async def run(self, cmd: command.Command, stdin: bytes | None = None) -> str:
        self.calls.append((cmd.cmd, stdin))
        if "--values" in cmd.cmd:
            path = cmd.cmd[cmd.cmd.index("--values") + 1]
            self.values[path] = Path(path).read_text()
        response = self.responses.get(cmd.cmd[1], "")
        if isinstance(response, dict):
            raise cmd.exc(
                f"Command '{cmd}' failed with return code {response['returncode']}\n"
                f"{response['stderr']}",
                returncode=response["returncode"],
                stderr=response["stderr"],
            )
        return response


@pytest.fixture(name="commands")
def commands_fixture(monkeypatch: pytest.MonkeyPatch) -> FakeCommands:
    """Replace subprocess execution with a fake."""
    fake = FakeCommands()
    monkeypatch.setattr(command, "run", fake.run)
    return fake


@pytest.fixture(name="config")
def config_fixture(tmp_path: Path) -> StoreForgeConfig:
    """Configuration pointing at a local chart directory."""
    chart = tmp_path / "charts" / "universal-store"
    chart.mkdir(parents=True)
    return StoreForgeConfig(
        chart_path=chart,
        helm_bin="helm",
        kubectl_bin="kubectl",
        bootstrap=BootstrapConfig(ready_timeout=5, poll_interval=1),
    )


def make_record(name: str, status: Status = Status.READY, **kwargs: Any) -> StoreRecord:
    """Build a store record for tests."""
    values: dict[str, Any] = {
        "name": name,
        "namespace": name,
        "status": status,
        "helm_status": {
            Status.READY: "deployed",
            Status.FAILED: "failed",
            Status.PROVISIONING: "pending-install",
        }[status],
        "url": f"http://{name}.local",
        "admin_url": f"http://{name}.local/wp-admin",
        "engine": "woocommerce",
        "created": "2024-01-15T10:30:45",
        "updated": "2024-01-15T10:30:45",
        "chart": "universal-store-0.2.0",
    }
    values.update(kwargs)
    return StoreRecord(**values)


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture(name="sleep")
def sleep_fixture() -> FakeSleep:
    return FakeSleep()


@dataclass
class ExecCall:
    pod: str
    container: str
    namespace: str
    cmd: list[str]
    stdin: bytes | None


@dataclass
class FakeKubectl:
    """In memory control plane.

    `failures` maps a predicate on the remote command line to the number of
    times it fails before succeeding (-1 fails forever).
    """

    pods: list[str] = field(default_factory=lambda: ["shop-1-wordpress-0"])
    ready: bool = True
    failures: list[tuple[Callable[[list[str]], bool], int]] = field(
        default_factory=list
    )
    installed: bool = False
    execs: list[ExecCall] = field(default_factory=list)
    waits: int = 0

    def fail(self, predicate: Callable[[list[str]], bool], times: int = -1) -> None:
        self.failures.append((predicate, times))

    async def wait_condition(
        self, namespace: str, selector: str, condition: str = "ready", timeout: float = 300
    ) -> str:
        self.waits += 1
        if not self.ready:
            raise KubectlException("error: no matching resources found")
        return "pod/shop-1-wordpress-0 condition met"

    async def get_pods(self, namespace: str, selector: str) -> list[str]:
        return list(self.pods)

    async def exec(
        self,
        pod: str,
        container: str,
        namespace: str,
        cmd: list[str],
        timeout: float | None = None,
        stdin: bytes | None = None,
    ) -> str:
        self.execs.append(ExecCall(pod, container, namespace, cmd, stdin))
        if cmd[:3] == ["wp", "core", "is-installed"] and not self.installed:
            raise KubectlException("exit 1", returncode=1)
        for i, (predicate, times) in enumerate(self.failures):
            if predicate(cmd) and times != 0:
                self.failures[i] = (predicate, times - 1)
                raise KubectlException(f"remote command failed: {' '.join(cmd)}")
        return "Success"

    def commands(self) -> list[list[str]]:
        return [call.cmd for call in self.execs]


class FakeHelm:
    """Helm double that records calls and can block installs.

    With `publish` set a successful install adds the release to the list, the
    way helm reports it as deployed as soon as the install returns.
    """

    def __init__(self) -> None:
        self.releases: list[StoreRecord] = []
        self.install_result = Result(success=True, output="deployed")
        self.uninstall_result = Result(success=True)
        self.installs: list[tuple[str, str]] = []
        self.uninstalls: list[str] = []
        self.gate: Any = None
        self.publish = False

    async def install(self, name: str, engine: str) -> Result:
        self.installs.append((name, engine))
        if self.gate is not None:
            await self.gate.wait()
        if self.publish and self.install_result.success:
            if all(r.name != name for r in self.releases):
                self.releases.append(make_record(name, Status.READY))
        return self.install_result

    async def uninstall(self, name: str) -> Result:
        self.uninstalls.append(name)
        self.releases = [r for r in self.releases if r.name != name]
        return self.uninstall_result

    async def list(self) -> list[StoreRecord]:
        return list(self.releases)


class FakeSequencer:
    """Bootstrap double returning a fixed result, optionally held by a gate."""

    def __init__(self) -> None:
        self.result = BootstrapResult(
            success=True, steps=[StepResult("install-core", 1, True)]
        )
        self.runs: list[str] = []
        self.gate: Any = None

    async def run(self, name: str) -> BootstrapResult:
        self.runs.append(name)
        if self.gate is not None:
            await self.gate.wait()
        return self.result


@pytest.fixture(name="kubectl")
def kubectl_fixture() -> FakeKubectl:
    return FakeKubectl()


@pytest.fixture(name="fake_helm")
def fake_helm_fixture() -> FakeHelm:
    return FakeHelm()


@pytest.fixture(name="sequencer")
def sequencer_fixture() -> FakeSequencer:
    return FakeSequencer()


@pytest.fixture(name="record")
def record_fixture() -> Callable[..., StoreRecord]:
    """Factory for store records."""
    return make_record
