"""Registry of background workflow tasks keyed by store identity."""

import asyncio
from functools import partial
import logging
from typing import Any, Coroutine
from abc import ABC, abstractmethod

_LOGGER = logging.getLogger(__name__)

__all__: list[str] = []


class TaskService(ABC):
    """Service for tracking, cancelling and waiting for workflow tasks."""

    @abstractmethod
    def create_task(
        self, key: str, coro: Coroutine[None, None, Any]
    ) -> asyncio.Task[Any]:
        """Create and track a new task for the key.

        Raises:
            ValueError: A task for the key is still running.
        """

    @abstractmethod
    def get_task(self, key: str) -> asyncio.Task[Any] | None:
        """Return the running task for the key, if any."""

    @abstractmethod
    async def cancel(self, key: str) -> bool:
        """Cancel the task for the key and wait for it to finish.

        Returns True if a running task was cancelled.
        """

    @abstractmethod
    async def block_till_done(self) -> None:
        """Wait for all active tasks to complete."""

    @abstractmethod
    async def close(self) -> None:
        """Cancel all active tasks and wait for them to finish."""

    @abstractmethod
    def get_num_active_tasks(self) -> int:
        """Get the number of active tasks."""


class TaskServiceImpl(TaskService):
    """In process implementation of the TaskService."""

    def __init__(self) -> None:
        """Initialize the task service."""
        self._active_tasks: dict[str, asyncio.Task[Any]] = {}

    def create_task(
        self, key: str, coro: Coroutine[None, None, Any]
    ) -> asyncio.Task[Any]:
        """Create and track a new task for the key."""
        if (existing := self._active_tasks.get(key)) is not None and not existing.done():
            coro.close()
            raise ValueError(f"Task for {key} is already running")
        task = asyncio.create_task(coro, name=key)
        self._active_tasks[key] = task
        task.add_done_callback(partial(self._task_done, key))
        return task

    def _task_done(self, key: str, task: asyncio.Task[Any]) -> None:
        """Callback when a task is done."""
        try:
            # This will raise any exception that occurred in the task
            task.result()
        except asyncio.CancelledError:
            _LOGGER.debug("Task %s cancelled", key)
        except Exception as e:
            _LOGGER.error("Task %s failed: %s", key, e)
        finally:
            if self._active_tasks.get(key) is task:
                del self._active_tasks[key]

    def get_task(self, key: str) -> asyncio.Task[Any] | None:
        """Return the running task for the key, if any."""
        task = self._active_tasks.get(key)
        if task is None or task.done():
            return None
        return task

    async def cancel(self, key: str) -> bool:
        """Cancel the task for the key and wait for it to finish."""
        if (task := self.get_task(key)) is None:
            return False
        _LOGGER.info("Cancelling in-flight task %s", key)
        task.cancel()
        await asyncio.wait([task])
        return True

    async def block_till_done(self) -> None:
        """Wait for all active tasks to complete.

        This method creates a copy of the current active tasks and waits
        for them to complete. It's safe to call even if new tasks are created
        while waiting.
        """
        active_tasks = list(self._active_tasks.values())
        if active_tasks:
            _LOGGER.debug("Waiting for %d tasks to complete", len(active_tasks))
            await asyncio.wait(active_tasks)
        else:
            await asyncio.sleep(0)

    async def close(self) -> None:
        """Cancel all active tasks and wait for them to finish."""
        active_tasks = list(self._active_tasks.values())
        for task in active_tasks:
            task.cancel()
        if active_tasks:
            await asyncio.wait(active_tasks)

    def get_num_active_tasks(self) -> int:
        """Get the number of active tasks."""
        return sum(1 for task in self._active_tasks.values() if not task.done())
