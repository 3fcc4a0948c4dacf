"""Utilities for tracing the stages of a provisioning workflow.

Stages nest, so a log line for a bootstrap step reads e.g.
`[Trace] < shop-1 > bootstrap > install-plugin (12.31s)`.
"""

import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


# Each asyncio task runs in a copy of the context, so concurrent workflows for
# different stores keep separate stacks.
_stages: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "stages", default=()
)


def trace_label() -> str:
    """Return the label of the current stage, empty outside any stage."""
    return " > ".join(_stages.get())


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    """Run the body as a named stage nested in the current one.

    Entry and exit are logged at debug level with the elapsed time. Stages left
    with an exception are logged as aborted and the exception propagates.
    """
    token = _stages.set(_stages.get() + (name,))
    label = trace_label()
    start = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    except BaseException as err:
        _LOGGER.debug(
            "[Trace] ! %s aborted after %0.2fs: %r", label, perf_counter() - start, err
        )
        raise
    else:
        _LOGGER.debug("[Trace] < %s (%0.2fs)", label, perf_counter() - start)
    finally:
        _stages.reset(token)
