"""Wait for the pods of a freshly installed store to become ready."""

import asyncio
from collections.abc import Awaitable, Callable
import logging
import time

from .exceptions import KubectlException
from .kubectl import Kubectl
from .result import Result

__all__ = [
    "wait_ready",
]

_LOGGER = logging.getLogger(__name__)


async def wait_ready(
    kubectl: Kubectl,
    namespace: str,
    selector: str,
    timeout: float = 300,
    poll_interval: float = 5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Result:
    """Poll until a pod matching the selector is ready or the timeout elapses.

    `kubectl wait` fails right away while the pod has not been scheduled, so
    the wait is retried until the overall deadline.
    """
    deadline = clock() + timeout
    last_error = ""
    attempt = 0
    while (remaining := deadline - clock()) > 0:
        attempt += 1
        try:
            out = await kubectl.wait_condition(
                namespace, selector, "ready", timeout=remaining
            )
        except KubectlException as err:
            last_error = str(err)
            _LOGGER.debug(
                "Pods %s in %s not ready (attempt %d): %s",
                selector,
                namespace,
                attempt,
                err,
            )
        else:
            _LOGGER.info("Pods %s in %s are ready", selector, namespace)
            return Result(success=True, output=out)
        await sleep(min(poll_interval, max(deadline - clock(), 0)))
    message = (
        f"Timed out after {timeout:g}s waiting for pods matching {selector} "
        f"in {namespace}"
    )
    if last_error:
        message = f"{message}: {last_error}"
    return Result(success=False, error=message)
