"""Pydantic schemas for API request/response validation.

This module defines the data contracts for the Taskboard REST API:
persisted filter management and filtered task listing.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.filters.models import (
    CombiningOperator,
    CustomFilter,
    FilterConditionSpec,
    ViewMode,
)

# Filter schemas


class FilterConditionPayload(BaseModel):
    """One condition as sent by clients."""

    kind: str = Field("list", description="list, date_diff or date_range")
    field: str | None = Field(None, max_length=50)
    operator: str = Field(..., min_length=1, max_length=30)
    values: list[Any] = Field(default_factory=list)
    date_from: str | None = Field(None, max_length=50)
    date_to: str | None = Field(None, max_length=50)
    unit: str | None = Field(None, max_length=20)
    include_null: bool = False

    def to_spec(self) -> FilterConditionSpec:
        """Convert to the compiler's condition model."""
        return FilterConditionSpec(**self.model_dump())


class FilterCreate(BaseModel):
    """Request schema for creating a filter."""

    workspace_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=255)
    view_mode: ViewMode
    operator: CombiningOperator = CombiningOperator.AND
    is_default: bool = False
    conditions: list[FilterConditionPayload] = Field(default_factory=list)


class FilterUpdate(BaseModel):
    """Request schema for partially updating a filter.

    ``conditions``, when present, replaces the full condition list.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    view_mode: ViewMode | None = None
    operator: CombiningOperator | None = None
    is_default: bool | None = None
    conditions: list[FilterConditionPayload] | None = None


class FilterConditionResponse(BaseModel):
    """Response schema for a stored condition."""

    id: int | None = None
    kind: str
    field: str | None = None
    operator: str
    values: list[Any]
    date_from: str | None = None
    date_to: str | None = None
    unit: str | None = None
    include_null: bool = False


class FilterResponse(BaseModel):
    """Response schema for a filter."""

    id: int
    name: str
    view_mode: ViewMode | None = None
    operator: CombiningOperator
    is_default: bool
    created_at: datetime | None = None
    conditions: list[FilterConditionResponse]


class FilterListResponse(BaseModel):
    """Response schema for listing filters."""

    filters: list[FilterResponse]
    total: int


# Task schemas


class TaskQuery(BaseModel):
    """Request schema for a filtered task listing."""

    workspace_id: int = Field(..., gt=0)
    filter_ids: list[int] = Field(default_factory=list, description="Enabled filter ids")
    custom_filters: list[CustomFilter] = Field(default_factory=list)
    threshold_overrides: dict[str, Any] = Field(
        default_factory=dict,
        description="Day thresholds keyed by filter name, e.g. {'due_in_7_days': 3}",
    )
    view: ViewMode | None = None


class TaskResponse(BaseModel):
    """Response schema for a task row."""

    model_config = ConfigDict(extra="allow")

    id: int
    workspace_id: int
    title: str
    description: str | None = None
    status: str
    priority: str
    category_id: int | None = None
    tag_id: int | None = None
    parent_task_id: int | None = None
    due_date: date | None = None
    start_date: date | None = None
    completion_date: date | None = None
    last_modified: datetime | None = None
    created_at: datetime | None = None


class TaskListResponse(BaseModel):
    """Response schema for a filtered task listing."""

    tasks: list[TaskResponse]
    total: int
