"""Bounded retry of remote steps with a fixed delay between attempts."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .exceptions import CommandException

__all__ = [
    "StepResult",
    "retry",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Outcome of one bootstrap step, kept for diagnostics only."""

    name: str
    attempts: int
    success: bool
    output: str = ""
    error: str | None = None

    def __str__(self) -> str:
        """Return a string representation of the step."""
        state = "ok" if self.success else f"failed: {self.error}"
        return f"{self.name} ({self.attempts} attempt(s)) {state}"


async def retry(
    name: str,
    operation: Callable[[], Awaitable[str]],
    attempts: int,
    delay: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> StepResult:
    """Run the operation until it succeeds or `attempts` runs have failed.

    Only command failures are retried, anything else propagates. The delay is
    observed between attempts, not after the last one.
    """

    def _before_sleep(retry_state) -> None:  # type: ignore[no-untyped-def]
        err = retry_state.outcome.exception() if retry_state.outcome else None
        _LOGGER.warning(
            "%s attempt %d/%d failed, retrying in %gs: %s",
            name,
            retry_state.attempt_number,
            attempts,
            delay,
            err,
        )

    attempt_number = 0
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(delay),
            retry=retry_if_exception_type(CommandException),
            sleep=sleep,
            before_sleep=_before_sleep,
        ):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                output = await operation()
    except RetryError as err:
        last = err.last_attempt.exception()
        _LOGGER.error("%s failed after %d attempts: %s", name, attempt_number, last)
        return StepResult(
            name=name,
            attempts=attempt_number,
            success=False,
            error=str(last),
        )
    _LOGGER.debug("%s succeeded on attempt %d", name, attempt_number)
    return StepResult(name=name, attempts=attempt_number, success=True, output=output)
