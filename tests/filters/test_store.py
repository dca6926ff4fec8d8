"""Tests for the SQL-backed filter definition store (aiosqlite)."""

import pytest
from sqlalchemy.exc import OperationalError

from src.db.models import FilterConditionRecord, FilterPreference
from src.errors.domain import FilterFetchError
from src.filters.store import SqlFilterDefinitionStore, _decode_values


def _condition(field, operator, values, **kwargs) -> FilterConditionRecord:
    record = FilterConditionRecord(
        condition_type=kwargs.pop("kind", "list"),
        field=field,
        operator=operator,
        **kwargs,
    )
    record.value_list = values
    return record


async def _seed(db) -> tuple[FilterPreference, FilterPreference, FilterPreference]:
    hide = FilterPreference(
        user_id=1, workspace_id=1, name="Hide Completed", view_mode="planner",
        operator="AND", is_default=True,
        conditions=[_condition("status", "!=", ["done"])],
    )
    active = FilterPreference(
        user_id=1, workspace_id=1, name="Active in Past 7 Days", view_mode="tracker",
        operator="OR",
        conditions=[
            _condition("status", "IN", ["in_progress", "paused"], include_null=True),
            _condition(
                None, "<=", [7], kind="date_diff",
                date_from="completion_date", date_to="today", unit="days",
            ),
        ],
    )
    empty = FilterPreference(
        user_id=1, workspace_id=1, name="Empty", view_mode="planner", operator="AND",
    )
    db.add_all([hide, active, empty])
    await db.commit()
    return hide, active, empty


class TestSqlFilterDefinitionStore:
    @pytest.mark.asyncio
    async def test_fetches_joined_rows(self, db, session_factory):
        hide, active, _ = await _seed(db)
        store = SqlFilterDefinitionStore(session_factory)

        rows = await store.fetch_filter_rows([active.id, hide.id])

        assert [r.definition_id for r in rows] == [hide.id, active.id, active.id]
        assert rows[0].values == ("done",)
        assert rows[0].combining_operator == "AND"
        assert rows[1].condition_operator == "IN"
        assert rows[1].include_null is True
        assert rows[2].condition_kind == "date_diff"
        assert rows[2].date_from == "completion_date"
        assert rows[2].values == (7,)

    @pytest.mark.asyncio
    async def test_filter_without_conditions_yields_one_row(self, db, session_factory):
        _, _, empty = await _seed(db)
        store = SqlFilterDefinitionStore(session_factory)

        rows = await store.fetch_filter_rows([empty.id])

        assert len(rows) == 1
        assert rows[0].name == "Empty"
        assert rows[0].condition_id is None
        assert rows[0].values is None

    @pytest.mark.asyncio
    async def test_unknown_and_empty_ids(self, db, session_factory):
        await _seed(db)
        store = SqlFilterDefinitionStore(session_factory)
        assert await store.fetch_filter_rows([999]) == []
        assert await store.fetch_filter_rows([]) == []

    @pytest.mark.asyncio
    async def test_database_error_raises_fetch_error(self):
        class BrokenSession:
            async def __aenter__(self):
                return self

            async def __aexit__(self, *exc):
                return False

            async def execute(self, stmt):
                raise OperationalError("SELECT", {}, Exception("database is locked"))

        store = SqlFilterDefinitionStore(lambda: BrokenSession())
        with pytest.raises(FilterFetchError) as exc_info:
            await store.fetch_filter_rows([2, 1, 2])
        assert exc_info.value.filter_ids == [1, 2]


class TestDecodeValues:
    def test_json_array(self):
        assert _decode_values('["a", 1]') == ("a", 1)

    def test_invalid_payloads(self):
        assert _decode_values("not json") is None
        assert _decode_values('{"a": 1}') is None
        assert _decode_values(None) is None
