"""Service layer for Taskboard.

Provides persisted filter management and filtered task listing.
"""

from src.services.filter_service import FilterService
from src.services.task_service import TaskService, build_task_query

__all__ = [
    "FilterService",
    "TaskService",
    "build_task_query",
]
