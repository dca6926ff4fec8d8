"""SQLAlchemy ORM models for the Taskboard database.

This module defines the task tables the filter compiler targets and the
persisted filter definitions it reads. Uses SQLAlchemy 2.0 style with
Mapped and mapped_column.

Users, workspaces, categories and tags are owned by other services; this
schema stores their ids as plain integers.
"""

import json
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


# Enums matching the database schema constraints


class TaskStatus(str, Enum):
    """Lifecycle: todo -> in_progress <-> paused -> done."""

    todo = "todo"
    in_progress = "in_progress"
    paused = "paused"
    done = "done"


class TaskPriority(str, Enum):
    """Priority values, most to least pressing."""

    urgent = "urgent"
    high = "high"
    normal = "normal"
    low = "low"


# SQLAlchemy Base


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Models


class Task(Base):
    """A tracked task within a workspace.

    Attributes:
        id: Integer primary key.
        user_id: Creator.
        workspace_id: Owning workspace.
        category_id: Optional category (external).
        tag_id: Optional tag (external).
        parent_task_id: Parent for sub-tasks.
        due_date / start_date / completion_date: Calendar dates.
        last_modified / created_at: Timestamps with time zone.
    """

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    workspace_id: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tag_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    parent_task_id: Mapped[int | None] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskPriority.normal.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskStatus.todo.value
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    assignees: Mapped[list["TaskAssignee"]] = relationship(
        "TaskAssignee", back_populates="task", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_tasks_workspace_id", "workspace_id"),
        Index("idx_tasks_tag_id", "tag_id"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id!r}, title={self.title!r}, status={self.status!r})>"


class TaskAssignee(Base):
    """Many-to-many link between tasks and assigned users."""

    __tablename__ = "task_assignees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_by: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    task: Mapped["Task"] = relationship("Task", back_populates="assignees")

    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_assignees_task_user"),
        Index("idx_task_assignees_task_id", "task_id"),
        Index("idx_task_assignees_user_id", "user_id"),
    )


class FilterPreference(Base):
    """A persisted, named filter owned by one (user, workspace) pair.

    Attributes:
        name: Unique per (user, workspace).
        view_mode: 'planner' or 'tracker'.
        operator: 'AND' or 'OR', joining this filter's conditions.
        is_default: Enabled by default in its view.
    """

    __tablename__ = "filter_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    workspace_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    view_mode: Mapped[str] = mapped_column(String(20), nullable=False)
    operator: Mapped[str] = mapped_column(String(10), nullable=False, default="AND")
    is_default: Mapped[bool] = mapped_column(nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    conditions: Mapped[list["FilterConditionRecord"]] = relationship(
        "FilterConditionRecord",
        back_populates="filter",
        cascade="all, delete-orphan",
        order_by="FilterConditionRecord.id",
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "workspace_id", "name",
            name="uq_filter_preferences_user_workspace_name",
        ),
        Index("idx_filter_preferences_user_workspace", "user_id", "workspace_id"),
        Index("idx_filter_preferences_view_mode", "view_mode"),
    )

    def __repr__(self) -> str:
        return f"<FilterPreference(id={self.id!r}, name={self.name!r})>"


class FilterConditionRecord(Base):
    """One stored condition of a FilterPreference.

    ``values`` holds a JSON array. Kind, field and operator are stored as
    free text; the compiler decides whether they are usable.
    """

    __tablename__ = "filter_conditions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    filter_id: Mapped[int] = mapped_column(
        ForeignKey("filter_preferences.id", ondelete="CASCADE"), nullable=False
    )
    condition_type: Mapped[str] = mapped_column(String(20), nullable=False)
    field: Mapped[str | None] = mapped_column(String(50), nullable=True)
    date_from: Mapped[str | None] = mapped_column(String(50), nullable=True)
    date_to: Mapped[str | None] = mapped_column(String(50), nullable=True)
    operator: Mapped[str] = mapped_column(String(30), nullable=False)
    values: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    include_null: Mapped[bool] = mapped_column(nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    filter: Mapped["FilterPreference"] = relationship(
        "FilterPreference", back_populates="conditions"
    )

    __table_args__ = (Index("idx_filter_conditions_filter_id", "filter_id"),)

    @property
    def value_list(self) -> list[Any]:
        """Parse the values JSON column into a Python list."""
        if not self.values:
            return []
        return json.loads(self.values)

    @value_list.setter
    def value_list(self, value: list[Any]) -> None:
        """Serialize a Python list into JSON for the values column."""
        self.values = json.dumps(list(value or []))
