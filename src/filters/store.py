"""Bulk read of persisted filter definitions.

One query returns every requested definition left-joined to its
conditions, so a definition with zero conditions still appears once with
all condition columns null.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.models import FilterConditionRecord, FilterPreference
from src.errors.domain import FilterFetchError
from src.filters.models import FilterRow

logger = logging.getLogger(__name__)


class FilterDefinitionStore(Protocol):
    """Storage contract consumed by the filter compiler."""

    async def fetch_filter_rows(self, filter_ids: Sequence[int]) -> list[FilterRow]:
        """Return the flat definition/condition rows for exactly these ids."""
        ...


class SqlFilterDefinitionStore:
    """FilterDefinitionStore backed by the filter_preferences tables.

    Each fetch opens its own session so a single store can be shared by
    concurrent requests.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def fetch_filter_rows(self, filter_ids: Sequence[int]) -> list[FilterRow]:
        """Run the left-joined bulk read.

        Raises:
            FilterFetchError: On any database failure.
        """
        ids = sorted(set(filter_ids))
        if not ids:
            return []
        stmt = (
            select(
                FilterPreference.id,
                FilterPreference.name,
                FilterPreference.operator,
                FilterConditionRecord.id,
                FilterConditionRecord.condition_type,
                FilterConditionRecord.field,
                FilterConditionRecord.date_from,
                FilterConditionRecord.date_to,
                FilterConditionRecord.operator,
                FilterConditionRecord.values,
                FilterConditionRecord.unit,
                FilterConditionRecord.include_null,
            )
            .select_from(FilterPreference)
            .outerjoin(
                FilterConditionRecord,
                FilterConditionRecord.filter_id == FilterPreference.id,
            )
            .where(FilterPreference.id.in_(ids))
            .order_by(FilterPreference.id, FilterConditionRecord.id)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                records = result.all()
        except SQLAlchemyError as exc:
            logger.error("filter_fetch_failed ids=%s error=%s", ids, exc)
            raise FilterFetchError(ids, str(exc)) from exc

        rows = [_to_row(record) for record in records]
        logger.debug("filter_fetch ids=%s rows=%d", ids, len(rows))
        return rows


def _to_row(record: Sequence[Any]) -> FilterRow:
    (
        definition_id,
        name,
        combining_operator,
        condition_id,
        kind,
        field,
        date_from,
        date_to,
        condition_operator,
        raw_values,
        unit,
        include_null,
    ) = record
    return FilterRow(
        definition_id=definition_id,
        name=name,
        combining_operator=combining_operator,
        condition_id=condition_id,
        condition_kind=kind,
        field=field,
        date_from=date_from,
        date_to=date_to,
        condition_operator=condition_operator,
        values=_decode_values(raw_values) if condition_id is not None else None,
        unit=unit,
        include_null=bool(include_null),
    )


def _decode_values(raw: Any) -> tuple[Any, ...] | None:
    """Decode a stored JSON array; anything else yields None."""
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        return tuple(raw)
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(decoded, list):
        return None
    return tuple(decoded)
