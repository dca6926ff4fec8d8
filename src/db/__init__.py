"""Database module for Taskboard tasks and persisted filters."""

from src.db.connection import (
    AsyncSessionLocal,
    async_engine,
    async_init_db,
    close_async_db,
    get_async_db,
    get_async_db_context,
)
from src.db.models import (
    Base,
    FilterConditionRecord,
    FilterPreference,
    Task,
    TaskAssignee,
    TaskPriority,
    TaskStatus,
)

__all__ = [
    # Models
    "Base",
    "Task",
    "TaskAssignee",
    "FilterPreference",
    "FilterConditionRecord",
    # Enums
    "TaskStatus",
    "TaskPriority",
    # Connection
    "async_engine",
    "AsyncSessionLocal",
    "get_async_db",
    "get_async_db_context",
    "async_init_db",
    "close_async_db",
]
