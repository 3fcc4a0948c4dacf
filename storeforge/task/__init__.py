"""Task tracking module for storeforge.

This module keeps one background task per store so that in-flight workflows
can be found, cancelled and awaited.
"""

from .service import TaskService, TaskServiceImpl

__all__ = ["TaskService", "TaskServiceImpl"]
