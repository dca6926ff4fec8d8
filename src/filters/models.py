"""Filter data models for task-listing predicate compilation.

This module defines the types flowing through the filter compiler:
FilterRow (flat storage read) → FilterDefinition (regrouped template)
→ CompiledPredicate (parameterized WHERE fragment). CustomFilter is the
inline, never-persisted counterpart of FilterDefinition. All models are
Pydantic v2 for validation and serialization.

Condition fields are kept as raw strings here. Parsing into the closed
field/operator enums happens in the condition compiler so that a malformed
persisted row degrades to "no fragment" instead of failing validation.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CombiningOperator(str, Enum):
    """Logic joining the conditions of one filter."""

    AND = "AND"
    OR = "OR"


class ViewMode(str, Enum):
    """Task view a persisted filter belongs to."""

    planner = "planner"
    tracker = "tracker"


# ---------------------------------------------------------------------------
# Conditions and filters
# ---------------------------------------------------------------------------


class FilterConditionSpec(BaseModel):
    """One atomic test belonging to exactly one filter."""

    id: int | None = Field(default=None, description="Persisted condition id.")
    kind: str = Field(
        default="list",
        description="Condition kind: list, date_diff or date_range.",
    )
    field: str | None = Field(
        default=None, description="Logical field name or pseudo-field."
    )
    operator: str = Field(..., description="Comparison operator.")
    values: list[Any] = Field(
        default_factory=list,
        description="Literal values. Count must match operator arity.",
    )
    date_from: str | None = Field(
        default=None, description="date_diff: earlier date expression."
    )
    date_to: str | None = Field(
        default=None, description="date_diff: later date expression."
    )
    unit: str | None = Field(default=None, description="date_diff unit (days).")
    include_null: bool = Field(
        default=False,
        description="IN only: also match rows where the field is null.",
    )


class FilterDefinition(BaseModel):
    """A persisted, named predicate template for task listing."""

    id: int
    name: str
    operator: CombiningOperator = CombiningOperator.AND
    view_mode: ViewMode | None = None
    is_default: bool = False
    created_at: datetime | None = None
    conditions: list[FilterConditionSpec] = Field(default_factory=list)


class CustomFilter(BaseModel):
    """An ad hoc filter supplied inline with a request; never cached."""

    id: str | None = None
    name: str | None = None
    logic: CombiningOperator = CombiningOperator.AND
    conditions: list[FilterConditionSpec] = Field(default_factory=list)


class FilterRow(BaseModel):
    """One row of the bulk definition read.

    A definition with no conditions appears once with every condition
    attribute set to None.
    """

    model_config = ConfigDict(frozen=True)

    definition_id: int
    name: str
    combining_operator: str
    condition_id: int | None = None
    condition_kind: str | None = None
    field: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    condition_operator: str | None = None
    values: tuple[Any, ...] | None = None
    unit: str | None = None
    include_null: bool = False


# ---------------------------------------------------------------------------
# Compilation output
# ---------------------------------------------------------------------------


class CompiledPredicate(BaseModel):
    """Output of the filter compiler: a parameterized predicate or nothing."""

    where_sql: str | None = Field(
        default=None,
        description="Parameterized predicate ($n, $n+1, ...) or None when no filter applies.",
    )
    params: list[Any] = Field(
        default_factory=list, description="Values bound at the emitted placeholders."
    )
    next_index: int = Field(
        ..., description="First placeholder index not consumed by this predicate."
    )
    dropped_conditions: int = Field(
        default=0, description="Conditions omitted because they could not compile."
    )

    @property
    def is_empty(self) -> bool:
        """True when nothing survived compilation."""
        return self.where_sql is None
