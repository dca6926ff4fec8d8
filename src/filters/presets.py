"""Built-in preset filters seeded for each (user, workspace).

Planner presets narrow the working list; tracker presets look back at
recent activity. "Hide Completed" and "Active in Past 7 Days" are enabled
by default in their views.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PresetCondition:
    kind: str
    operator: str
    values: list[Any]
    field: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    unit: str | None = None


@dataclass(frozen=True)
class PresetFilter:
    name: str
    view_mode: str
    operator: str
    is_default: bool
    conditions: list[PresetCondition] = field(default_factory=list)


_NOT_DONE = PresetCondition(kind="list", field="status", operator="!=", values=["done"])

PRESET_FILTERS: list[PresetFilter] = [
    PresetFilter(
        name="Hide Completed",
        view_mode="planner",
        operator="AND",
        is_default=True,
        conditions=[_NOT_DONE],
    ),
    PresetFilter(
        name="Assigned to Me",
        view_mode="planner",
        operator="AND",
        is_default=False,
        conditions=[
            PresetCondition(
                kind="list", field="assignee", operator="=", values=["current_user_id"]
            ),
        ],
    ),
    PresetFilter(
        name="Due in 7 Days",
        view_mode="planner",
        operator="AND",
        is_default=False,
        conditions=[
            PresetCondition(
                kind="date_diff", date_from="today", date_to="due_date",
                operator="<=", values=[7], unit="days",
            ),
        ],
    ),
    PresetFilter(
        name="Overdue Tasks",
        view_mode="planner",
        operator="AND",
        is_default=False,
        conditions=[
            PresetCondition(
                kind="date_diff", date_from="today", date_to="due_date",
                operator="<", values=[0], unit="days",
            ),
            _NOT_DONE,
        ],
    ),
    PresetFilter(
        name="High/Urgent Priority",
        view_mode="planner",
        operator="AND",
        is_default=False,
        conditions=[
            PresetCondition(
                kind="list", field="priority", operator="IN", values=["high", "urgent"]
            ),
        ],
    ),
    PresetFilter(
        name="Active in Past 7 Days",
        view_mode="tracker",
        operator="OR",
        is_default=True,
        conditions=[
            PresetCondition(
                kind="list", field="status", operator="IN",
                values=["in_progress", "paused"],
            ),
            PresetCondition(
                kind="date_diff", date_from="completion_date", date_to="today",
                operator="<=", values=[7], unit="days",
            ),
        ],
    ),
    PresetFilter(
        name="Unchanged in Past 14 Days",
        view_mode="tracker",
        operator="AND",
        is_default=False,
        conditions=[
            _NOT_DONE,
            PresetCondition(
                kind="date_diff", date_from="last_modified", date_to="today",
                operator=">", values=[14], unit="days",
            ),
        ],
    ),
    PresetFilter(
        name="Lasted More Than 1 Day",
        view_mode="tracker",
        operator="AND",
        is_default=False,
        conditions=[
            PresetCondition(
                kind="date_diff", date_from="start_date", date_to="completion_date",
                operator=">", values=[1], unit="days",
            ),
        ],
    ),
]
