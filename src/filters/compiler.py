"""Filter query compiler: enabled filters → one parameterized predicate.

Combines persisted filter definitions (read through FilterCache) and ad
hoc custom filters into a single WHERE fragment for the task listing.

Combination rules:
    - Conditions within one filter are joined by that filter's own
      operator (AND/OR) and the group is parenthesized.
    - Filters are always joined with AND: every enabled filter narrows
      the result set.
    - No filter ids and no custom filters compile to no predicate at all
      (``where_sql is None``), never to an always-true fragment.

A storage failure while loading definitions aborts the compile with
FilterFetchError. Treating unknown filters as "no filter" would widen the
result set past what the user asked for.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from src.errors.domain import FilterFetchError
from src.filters.cache import FilterCache, cache_key
from src.filters.condition_compiler import ConditionCompiler, ConditionContext
from src.filters.models import (
    CombiningOperator,
    CompiledPredicate,
    CustomFilter,
    FilterConditionSpec,
    FilterDefinition,
    FilterRow,
)
from src.filters.parameters import ParameterBuilder
from src.filters.store import FilterDefinitionStore

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_filter_name(name: str) -> str:
    """Lower-case a filter name and collapse whitespace runs to underscores.

    "Unchanged in Past 14 Days" → "unchanged_in_past_14_days".
    """
    return _WHITESPACE.sub("_", name.strip().lower())


def normalize_threshold_overrides(
    overrides: Mapping[str, Any] | None,
) -> dict[str, int]:
    """Normalize override keys and keep only integral day counts."""
    normalized: dict[str, int] = {}
    for key, raw in (overrides or {}).items():
        days = _as_days(raw)
        if days is None:
            logger.debug("filter_threshold_ignored key=%s value=%r", key, raw)
            continue
        normalized[normalize_filter_name(str(key))] = days
    return normalized


def _as_days(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None


def _parse_combining_operator(raw: str | None) -> CombiningOperator:
    """Unknown combining operators fall back to AND, the narrower join."""
    if isinstance(raw, str) and raw.strip().upper() == CombiningOperator.OR.value:
        return CombiningOperator.OR
    return CombiningOperator.AND


def group_rows(rows: Iterable[FilterRow]) -> list[FilterDefinition]:
    """Rebuild definitions from flat rows, preserving first-seen order."""
    definitions: dict[int, FilterDefinition] = {}
    for row in rows:
        definition = definitions.get(row.definition_id)
        if definition is None:
            definition = FilterDefinition(
                id=row.definition_id,
                name=row.name,
                operator=_parse_combining_operator(row.combining_operator),
            )
            definitions[row.definition_id] = definition
        if row.condition_id is None:
            continue
        definition.conditions.append(
            FilterConditionSpec(
                id=row.condition_id,
                kind=row.condition_kind or "",
                field=row.field,
                operator=row.condition_operator or "",
                values=list(row.values) if row.values is not None else [],
                date_from=row.date_from,
                date_to=row.date_to,
                unit=row.unit,
                include_null=row.include_null,
            )
        )
    return list(definitions.values())


class FilterQueryCompiler:
    """Compile enabled filters into a predicate plus bound values.

    Args:
        store: Bulk definition reader, consulted on cache misses.
        cache: Shared FilterCache.
    """

    def __init__(self, store: FilterDefinitionStore, cache: FilterCache) -> None:
        self.store = store
        self.cache = cache

    async def compile(
        self,
        filter_ids: Sequence[int] = (),
        custom_filters: Sequence[CustomFilter] = (),
        user_id: int | None = None,
        threshold_overrides: Mapping[str, Any] | None = None,
        start_index: int = 1,
    ) -> CompiledPredicate:
        """Compile persisted and custom filters into one predicate.

        Args:
            filter_ids: Enabled persisted filter ids (already authorized).
            custom_filters: Inline filters; compiled fresh, never cached.
            user_id: Authenticated user, for current_user_id conditions.
            threshold_overrides: Normalized filter name → day count that
                replaces date_diff thresholds in that filter.
            start_index: First placeholder index to issue.

        Returns:
            CompiledPredicate; ``where_sql`` is None when nothing applies.

        Raises:
            FilterFetchError: If definitions could not be loaded.
        """
        params = ParameterBuilder(start_index)
        if not filter_ids and not custom_filters:
            return CompiledPredicate(where_sql=None, params=[], next_index=start_index)

        overrides = normalize_threshold_overrides(threshold_overrides)
        conditions = ConditionCompiler(params)
        fragments: list[str] = []
        dropped = 0

        if filter_ids:
            rows = await self._load_rows(filter_ids)
            for definition in group_rows(rows):
                fragment, lost = self._compile_group(
                    conditions,
                    definition.conditions,
                    definition.operator,
                    ConditionContext(
                        user_id=user_id,
                        threshold_override=overrides.get(
                            normalize_filter_name(definition.name)
                        ),
                        filter_label=f"{definition.id}:{definition.name}",
                    ),
                )
                dropped += lost
                if fragment:
                    fragments.append(fragment)

        for custom in custom_filters:
            override = (
                overrides.get(normalize_filter_name(custom.name)) if custom.name else None
            )
            fragment, lost = self._compile_group(
                conditions,
                custom.conditions,
                custom.logic,
                ConditionContext(
                    user_id=user_id,
                    threshold_override=override,
                    filter_label=f"custom:{custom.id or custom.name or ''}",
                ),
            )
            dropped += lost
            if fragment:
                fragments.append(fragment)

        where_sql = " AND ".join(fragments) if fragments else None
        return CompiledPredicate(
            where_sql=where_sql,
            params=params.values(),
            next_index=params.next_index,
            dropped_conditions=dropped,
        )

    async def _load_rows(self, filter_ids: Sequence[int]) -> tuple[FilterRow, ...]:
        cached = self.cache.get(filter_ids)
        if cached is not None:
            return cached
        # An abandoned request still lets the fetch finish and fill the cache.
        return await asyncio.shield(self._fetch_and_fill(filter_ids))

    async def _fetch_and_fill(self, filter_ids: Sequence[int]) -> tuple[FilterRow, ...]:
        key = cache_key(filter_ids)
        try:
            rows = await self.store.fetch_filter_rows(list(filter_ids))
        except FilterFetchError:
            raise
        except Exception as exc:
            logger.error("filter_fetch_failed key=%s error=%s", key, exc)
            raise FilterFetchError(sorted(set(filter_ids)), str(exc)) from exc

        self.cache.set(filter_ids, rows)
        logger.info("filter_cache_fill key=%s rows=%d", key, len(rows))
        return tuple(rows)

    @staticmethod
    def _compile_group(
        conditions: ConditionCompiler,
        specs: Sequence[FilterConditionSpec],
        logic: CombiningOperator,
        context: ConditionContext,
    ) -> tuple[str | None, int]:
        """Compile one filter's conditions; return (fragment, dropped count)."""
        parts: list[str] = []
        dropped = 0
        for spec in specs:
            sql = conditions.compile(spec, context)
            if sql is None:
                dropped += 1
            else:
                parts.append(sql)
        if not parts:
            return None, dropped
        joiner = f" {logic.value} "
        return f"({joiner.join(parts)})", dropped
