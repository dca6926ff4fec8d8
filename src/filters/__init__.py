"""Task filter compilation.

Turns persisted filter templates and ad hoc custom filters into one
parameterized predicate for the task listing query.
"""

from src.filters.cache import FilterCache, cache_key
from src.filters.compiler import (
    FilterQueryCompiler,
    group_rows,
    normalize_filter_name,
)
from src.filters.condition_compiler import ConditionCompiler, ConditionContext
from src.filters.models import (
    CombiningOperator,
    CompiledPredicate,
    CustomFilter,
    FilterConditionSpec,
    FilterDefinition,
    FilterRow,
    ViewMode,
)
from src.filters.parameters import ParameterBuilder
from src.filters.store import FilterDefinitionStore, SqlFilterDefinitionStore

__all__ = [
    "CombiningOperator",
    "CompiledPredicate",
    "ConditionCompiler",
    "ConditionContext",
    "CustomFilter",
    "FilterCache",
    "FilterConditionSpec",
    "FilterDefinition",
    "FilterDefinitionStore",
    "FilterQueryCompiler",
    "FilterRow",
    "ParameterBuilder",
    "SqlFilterDefinitionStore",
    "ViewMode",
    "cache_key",
    "group_rows",
    "normalize_filter_name",
]
