"""Single-condition compiler for task filters.

Turns one FilterConditionSpec into a parameterized predicate fragment,
binding its literals through a shared ParameterBuilder.

Malformed conditions (unknown field, kind or operator, wrong value count,
values that cannot be coerced) are dropped: ``compile`` returns None and
the builder is rolled back so no orphan values or index gaps remain. This
tolerant-degrade policy is intentional; callers count dropped conditions
rather than failing the filter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from src.filters.fields import (
    ASSIGNMENT_ALIAS,
    ASSIGNMENT_TABLE,
    COMPARISON_SQL,
    CURRENT_USER_TOKEN,
    DATE_FIELDS,
    OPERATOR_SHAPES,
    TASK_ALIAS,
    ConditionKind,
    ConditionOperator,
    LogicalField,
    OperandShape,
    is_day_unit,
    parse_field,
    parse_kind,
    parse_operator,
    physical_expression,
)
from src.filters.models import FilterConditionSpec
from src.filters.parameters import ParameterBuilder

logger = logging.getLogger(__name__)

_ID_FIELDS = frozenset({
    LogicalField.category,
    LogicalField.tag,
    LogicalField.parent_task_id,
})

_SCALAR_TYPES = (str, int, float, date)


class MalformedConditionError(Exception):
    """A condition cannot be mapped to a compilable predicate."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


@dataclass(frozen=True)
class ConditionContext:
    """Per-filter inputs a condition may depend on.

    Attributes:
        user_id: Authenticated user; resolves the current_user_id literal.
        threshold_override: Day count replacing a date_diff's stored value.
        filter_label: Owning filter's name or id, for diagnostics only.
    """

    user_id: int | None = None
    threshold_override: int | None = None
    filter_label: str = ""


class ConditionCompiler:
    """Compile conditions into predicate text against one ParameterBuilder."""

    def __init__(self, params: ParameterBuilder) -> None:
        self.params = params

    def compile(
        self,
        condition: FilterConditionSpec,
        context: ConditionContext,
    ) -> str | None:
        """Compile one condition, or return None if it is malformed."""
        marker = self.params.checkpoint()
        try:
            return self._compile_kind(condition, context)
        except MalformedConditionError as exc:
            self.params.rollback(marker)
            logger.debug(
                "filter_condition_dropped filter=%s condition=%s reason=%s",
                context.filter_label,
                condition.id,
                exc.reason,
            )
            return None

    def _compile_kind(
        self,
        condition: FilterConditionSpec,
        context: ConditionContext,
    ) -> str:
        kind = parse_kind(condition.kind)
        if kind == ConditionKind.list:
            return self._compile_list(condition, context)
        if kind == ConditionKind.date_diff:
            return self._compile_date_diff(condition, context)
        if kind == ConditionKind.date_range:
            return self._compile_date_range(condition)
        raise MalformedConditionError(f"unsupported kind {condition.kind!r}")

    # -----------------------------------------------------------------------
    # list
    # -----------------------------------------------------------------------

    def _compile_list(
        self,
        condition: FilterConditionSpec,
        context: ConditionContext,
    ) -> str:
        field = parse_field(condition.field)
        if field == LogicalField.UNSUPPORTED:
            raise MalformedConditionError(f"unknown field {condition.field!r}")
        operator = _require_operator(condition.operator)

        if field == LogicalField.assignee:
            return self._compile_assignee(condition, operator, context)

        expr = physical_expression(field)
        if expr is None:
            raise MalformedConditionError(f"field {field.value!r} has no column")
        shape = OPERATOR_SHAPES[operator]
        compare_expr = f"CAST({expr} AS DATE)" if field in DATE_FIELDS else expr

        if shape == OperandShape.none:
            keyword = "IS NULL" if operator == ConditionOperator.is_null else "IS NOT NULL"
            return f"{expr} {keyword}"

        if shape == OperandShape.scalar:
            (value,) = _require_values(condition.values, 1, operator)
            token = self.params.add(_coerce_value(field, value))
            return f"{compare_expr} {COMPARISON_SQL[operator]} {token}"

        if shape == OperandShape.pair:
            low, high = _require_values(condition.values, 2, operator)
            low_token = self.params.add(_coerce_value(field, low))
            high_token = self.params.add(_coerce_value(field, high))
            return f"{compare_expr} BETWEEN {low_token} AND {high_token}"

        members = _require_members(condition.values)
        token = self.params.add_array(_coerce_value(field, v) for v in members)
        predicate = f"{compare_expr} = ANY({token})"
        if condition.include_null:
            return f"({predicate} OR {expr} IS NULL)"
        return predicate

    def _compile_assignee(
        self,
        condition: FilterConditionSpec,
        operator: ConditionOperator,
        context: ConditionContext,
    ) -> str:
        base = (
            f"SELECT 1 FROM {ASSIGNMENT_TABLE} {ASSIGNMENT_ALIAS} "
            f"WHERE {ASSIGNMENT_ALIAS}.task_id = {TASK_ALIAS}.id"
        )

        if operator == ConditionOperator.is_null:
            return f"NOT EXISTS ({base})"
        if operator == ConditionOperator.is_not_null:
            return f"EXISTS ({base})"

        if operator in (ConditionOperator.eq, ConditionOperator.neq):
            (value,) = _require_values(condition.values, 1, operator)
            token = self.params.add(_resolve_user(value, context.user_id))
            exists = f"EXISTS ({base} AND {ASSIGNMENT_ALIAS}.user_id = {token})"
            return exists if operator == ConditionOperator.eq else f"NOT {exists}"

        if operator == ConditionOperator.in_:
            members = _require_members(condition.values)
            token = self.params.add_array(
                _resolve_user(v, context.user_id) for v in members
            )
            exists = f"EXISTS ({base} AND {ASSIGNMENT_ALIAS}.user_id = ANY({token}))"
            if condition.include_null:
                return f"({exists} OR NOT EXISTS ({base}))"
            return exists

        raise MalformedConditionError(
            f"operator {operator.value!r} not supported for assignee"
        )

    # -----------------------------------------------------------------------
    # date_diff / date_range
    # -----------------------------------------------------------------------

    def _compile_date_diff(
        self,
        condition: FilterConditionSpec,
        context: ConditionContext,
    ) -> str:
        date_from = _require_date_field(condition.date_from)
        date_to = _require_date_field(condition.date_to)
        if not is_day_unit(condition.unit):
            raise MalformedConditionError(f"unsupported unit {condition.unit!r}")
        operator = _require_operator(condition.operator)
        shape = OPERATOR_SHAPES[operator]

        # to - from, both truncated to dates; integer days in the target dialect.
        lhs = (
            f"(CAST({physical_expression(date_to)} AS DATE) - "
            f"CAST({physical_expression(date_from)} AS DATE))"
        )

        if shape == OperandShape.scalar:
            if context.threshold_override is not None:
                days = context.threshold_override
            else:
                (raw,) = _require_values(condition.values, 1, operator)
                days = _coerce_days(raw)
            return f"{lhs} {COMPARISON_SQL[operator]} {self.params.add(days)}"

        if shape == OperandShape.pair:
            low, high = _require_values(condition.values, 2, operator)
            low_token = self.params.add(_coerce_days(low))
            high_token = self.params.add(_coerce_days(high))
            return f"{lhs} BETWEEN {low_token} AND {high_token}"

        raise MalformedConditionError(
            f"operator {operator.value!r} not supported for date_diff"
        )

    def _compile_date_range(self, condition: FilterConditionSpec) -> str:
        field = _require_date_field(condition.field)
        low, high = _require_values(condition.values, 2, ConditionOperator.between)
        low_token = self.params.add(_coerce_value(field, low))
        high_token = self.params.add(_coerce_value(field, high))
        expr = physical_expression(field)
        return f"CAST({expr} AS DATE) BETWEEN {low_token} AND {high_token}"


# ---------------------------------------------------------------------------
# Validation and coercion helpers
# ---------------------------------------------------------------------------


def _require_operator(raw: str | None) -> ConditionOperator:
    operator = parse_operator(raw)
    if operator == ConditionOperator.UNSUPPORTED:
        raise MalformedConditionError(f"unknown operator {raw!r}")
    return operator


def _require_date_field(raw: str | None) -> LogicalField:
    field = parse_field(raw)
    if field not in DATE_FIELDS:
        raise MalformedConditionError(f"{raw!r} is not a date expression")
    return field


def _require_values(
    values: list[Any],
    count: int,
    operator: ConditionOperator,
) -> list[Any]:
    """Check arity and reject null or non-scalar literals."""
    if len(values) != count:
        raise MalformedConditionError(
            f"operator {operator.value!r} expects {count} value(s), got {len(values)}"
        )
    for value in values:
        if isinstance(value, bool) or not isinstance(value, _SCALAR_TYPES):
            raise MalformedConditionError(f"invalid literal {value!r}")
    return values


def _require_members(values: list[Any]) -> list[Any]:
    """Return the IN members; a single nested list is unwrapped."""
    if len(values) == 1 and isinstance(values[0], list):
        values = values[0]
    if not values:
        raise MalformedConditionError("IN requires at least one value")
    for value in values:
        if isinstance(value, bool) or not isinstance(value, _SCALAR_TYPES):
            raise MalformedConditionError(f"invalid IN member {value!r}")
    return values


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        raise MalformedConditionError(f"expected integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise MalformedConditionError(f"expected integer, got {value!r}")


def _coerce_days(value: Any) -> int:
    return _coerce_int(value)


def _coerce_value(field: LogicalField, value: Any) -> Any:
    """Coerce a literal to the Python type the target column binds as."""
    if field in _ID_FIELDS:
        return _coerce_int(value)
    if field in DATE_FIELDS:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip()[:10])
            except ValueError:
                pass
        raise MalformedConditionError(f"expected ISO date, got {value!r}")
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise MalformedConditionError(f"expected text, got {value!r}")


def _resolve_user(value: Any, user_id: int | None) -> int:
    """Resolve the current_user_id literal, or coerce an explicit user id."""
    if isinstance(value, str) and value.strip() == CURRENT_USER_TOKEN:
        if user_id is None:
            raise MalformedConditionError("current_user_id without an authenticated user")
        return user_id
    return _coerce_int(value)
