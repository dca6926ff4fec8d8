"""Field and operator mapping for task filter conditions.

Logical field names arrive as arbitrary strings from persisted rows and
request bodies. They are parsed into closed enums here, each with an
explicit UNSUPPORTED variant, and only enum members are ever looked up in
the physical-expression table. No request-supplied string is concatenated
into predicate text.

Unrecognized fields and operators parse to UNSUPPORTED; the condition
compiler drops such conditions instead of raising.
"""

from __future__ import annotations

from enum import Enum

TASK_ALIAS = "t"
ASSIGNMENT_TABLE = "task_assignees"
ASSIGNMENT_ALIAS = "ta"

# Literal that stands for the authenticated user in assignee conditions.
CURRENT_USER_TOKEN = "current_user_id"

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class LogicalField(str, Enum):
    """Every field a condition may reference."""

    status = "status"
    priority = "priority"
    title = "title"
    description = "description"
    parent_task_id = "parent_task_id"
    due_date = "due_date"
    completion_date = "completion_date"
    created_date = "created_date"
    last_modified = "last_modified"
    start_date = "start_date"
    today = "today"
    category = "category"
    tag = "tag"
    assignee = "assignee"
    UNSUPPORTED = "__unsupported__"


class ConditionOperator(str, Enum):
    """Allowed comparison operators."""

    eq = "="
    neq = "!="
    in_ = "IN"
    is_null = "IS_NULL"
    is_not_null = "IS_NOT_NULL"
    lt = "<"
    lte = "<="
    gt = ">"
    gte = ">="
    between = "BETWEEN"
    UNSUPPORTED = "__unsupported__"


class ConditionKind(str, Enum):
    """Condition shapes the compiler understands."""

    list = "list"
    date_diff = "date_diff"
    date_range = "date_range"
    UNSUPPORTED = "__unsupported__"


class OperandShape(str, Enum):
    """How an operator binds its values."""

    scalar = "scalar"
    array = "array"
    none = "none"
    pair = "pair"


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

# Pseudo-fields (today, assignee) resolve to expressions, not columns.
# today is CURRENT_DATE so cached predicates stay valid across midnight.
PHYSICAL_EXPRESSIONS: dict[LogicalField, str] = {
    LogicalField.status: f"{TASK_ALIAS}.status",
    LogicalField.priority: f"{TASK_ALIAS}.priority",
    LogicalField.title: f"{TASK_ALIAS}.title",
    LogicalField.description: f"{TASK_ALIAS}.description",
    LogicalField.parent_task_id: f"{TASK_ALIAS}.parent_task_id",
    LogicalField.due_date: f"{TASK_ALIAS}.due_date",
    LogicalField.completion_date: f"{TASK_ALIAS}.completion_date",
    LogicalField.created_date: f"{TASK_ALIAS}.created_at",
    LogicalField.last_modified: f"{TASK_ALIAS}.last_modified",
    LogicalField.start_date: f"{TASK_ALIAS}.start_date",
    LogicalField.today: "CURRENT_DATE",
    LogicalField.category: f"{TASK_ALIAS}.category_id",
    LogicalField.tag: f"{TASK_ALIAS}.tag_id",
}

DATE_FIELDS = frozenset({
    LogicalField.due_date,
    LogicalField.completion_date,
    LogicalField.created_date,
    LogicalField.last_modified,
    LogicalField.start_date,
    LogicalField.today,
})

OPERATOR_SHAPES: dict[ConditionOperator, OperandShape] = {
    ConditionOperator.eq: OperandShape.scalar,
    ConditionOperator.neq: OperandShape.scalar,
    ConditionOperator.lt: OperandShape.scalar,
    ConditionOperator.lte: OperandShape.scalar,
    ConditionOperator.gt: OperandShape.scalar,
    ConditionOperator.gte: OperandShape.scalar,
    ConditionOperator.in_: OperandShape.array,
    ConditionOperator.is_null: OperandShape.none,
    ConditionOperator.is_not_null: OperandShape.none,
    ConditionOperator.between: OperandShape.pair,
}

# Operators emitted verbatim as "<lhs> <sql> <placeholder>".
COMPARISON_SQL: dict[ConditionOperator, str] = {
    ConditionOperator.eq: "=",
    ConditionOperator.neq: "!=",
    ConditionOperator.lt: "<",
    ConditionOperator.lte: "<=",
    ConditionOperator.gt: ">",
    ConditionOperator.gte: ">=",
}

# Client vocabulary accepted alongside the canonical spellings.
_OPERATOR_ALIASES: dict[str, ConditionOperator] = {
    "=": ConditionOperator.eq,
    "==": ConditionOperator.eq,
    "eq": ConditionOperator.eq,
    "equals": ConditionOperator.eq,
    "!=": ConditionOperator.neq,
    "<>": ConditionOperator.neq,
    "neq": ConditionOperator.neq,
    "not_equals": ConditionOperator.neq,
    "in": ConditionOperator.in_,
    "is_null": ConditionOperator.is_null,
    "is_not_null": ConditionOperator.is_not_null,
    "<": ConditionOperator.lt,
    "lt": ConditionOperator.lt,
    "less_than": ConditionOperator.lt,
    "<=": ConditionOperator.lte,
    "le": ConditionOperator.lte,
    "lte": ConditionOperator.lte,
    ">": ConditionOperator.gt,
    "gt": ConditionOperator.gt,
    "greater_than": ConditionOperator.gt,
    ">=": ConditionOperator.gte,
    "ge": ConditionOperator.gte,
    "gte": ConditionOperator.gte,
    "between": ConditionOperator.between,
}

_UNIT_DAYS = frozenset({"day", "days"})

# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_field(raw: str | None) -> LogicalField:
    """Map a raw field name to a LogicalField, or UNSUPPORTED."""
    if not isinstance(raw, str):
        return LogicalField.UNSUPPORTED
    try:
        field = LogicalField(raw.strip().lower())
    except ValueError:
        return LogicalField.UNSUPPORTED
    return field


def parse_operator(raw: str | None) -> ConditionOperator:
    """Map a raw operator spelling to a ConditionOperator, or UNSUPPORTED."""
    if not isinstance(raw, str):
        return ConditionOperator.UNSUPPORTED
    return _OPERATOR_ALIASES.get(raw.strip().lower(), ConditionOperator.UNSUPPORTED)


def parse_kind(raw: str | None) -> ConditionKind:
    """Map a raw condition kind to a ConditionKind, or UNSUPPORTED."""
    if not isinstance(raw, str):
        return ConditionKind.UNSUPPORTED
    try:
        kind = ConditionKind(raw.strip().lower())
    except ValueError:
        return ConditionKind.UNSUPPORTED
    return kind


def is_day_unit(raw: str | None) -> bool:
    """date_diff only counts in days; a missing unit means days."""
    return raw is None or raw.strip().lower() in _UNIT_DAYS


def physical_expression(field: LogicalField) -> str | None:
    """Return the SQL expression for a column-backed field.

    Returns None for assignee and UNSUPPORTED, which have no column.
    """
    return PHYSICAL_EXPRESSIONS.get(field)
