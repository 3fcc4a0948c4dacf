"""Library for running kubectl against the cluster hosting the stores.

This is the only place that talks to the control plane. Commands are always
built as argument lists, never as shell strings:
```python
from storeforge.kubectl import Kubectl

kubectl = Kubectl()
pods = await kubectl.get_pods("shop-1", "app.kubernetes.io/component=wordpress")
out = await kubectl.exec(pods[0], "wordpress", "shop-1", ["wp", "--info"])
```
"""

import json
import logging

from . import command
from .exceptions import KubectlException

__all__ = [
    "Kubectl",
]

_LOGGER = logging.getLogger(__name__)

KUBECTL_BIN = "kubectl"

# Slack on top of the kubectl side timeout before the process is killed
_TIMEOUT_SLACK = 10.0


class Kubectl:
    """Control plane operations used to provision stores."""

    def __init__(self, kubectl_bin: str = KUBECTL_BIN, timeout: float = 120) -> None:
        """Initialize Kubectl."""
        self._bin = kubectl_bin
        self._timeout = timeout

    def _command(self, args: list[str], timeout: float | None = None) -> command.Command:
        return command.Command(
            [self._bin, *args],
            exc=KubectlException,
            timeout=timeout or self._timeout,
        )

    async def wait_condition(
        self,
        namespace: str,
        selector: str,
        condition: str = "ready",
        timeout: float = 300,
    ) -> str:
        """Block until pods matching the selector report the condition.

        Raises a KubectlException when no pods match yet or the condition is
        not reached within the timeout.
        """
        args = [
            "wait",
            f"--for=condition={condition}",
            "pod",
            "--selector",
            selector,
            "--namespace",
            namespace,
            f"--timeout={max(int(timeout), 1)}s",
        ]
        return await command.run(self._command(args, timeout + _TIMEOUT_SLACK))

    async def get_pods(self, namespace: str, selector: str) -> list[str]:
        """Return the names of pods matching the selector."""
        args = [
            "get",
            "pods",
            "--selector",
            selector,
            "--namespace",
            namespace,
            "--output",
            "json",
        ]
        out = await command.run(self._command(args))
        try:
            doc = json.loads(out) if out else {}
        except json.JSONDecodeError as err:
            raise KubectlException(f"Unable to parse pod list: {err}") from err
        return [
            item["metadata"]["name"]
            for item in doc.get("items", [])
            if item.get("metadata", {}).get("name")
        ]

    async def exec(
        self,
        pod: str,
        container: str,
        namespace: str,
        cmd: list[str],
        timeout: float | None = None,
        stdin: bytes | None = None,
    ) -> str:
        """Run a command inside a container and return its stdout.

        When stdin is given it is streamed to the remote command unchanged.
        """
        args = ["exec"]
        if stdin is not None:
            args.append("-i")
        args.extend([pod, "--container", container, "--namespace", namespace, "--"])
        args.extend(cmd)
        return await command.run(self._command(args, timeout), stdin)

    async def delete_namespace(self, name: str, timeout: float | None = None) -> None:
        """Delete a namespace, a missing namespace is not an error."""
        timeout = timeout or self._timeout
        args = [
            "delete",
            "namespace",
            name,
            "--ignore-not-found",
            f"--timeout={max(int(timeout), 1)}s",
        ]
        await command.run(self._command(args, timeout + _TIMEOUT_SLACK))
        _LOGGER.debug("Deleted namespace %s", name)
