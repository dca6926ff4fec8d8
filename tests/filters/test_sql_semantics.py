"""Execute compiled predicates against DuckDB.

DuckDB accepts ``$n`` placeholders, CURRENT_DATE and integer date
subtraction the same way the production PostgreSQL target does, so the
generated SQL can be checked for meaning rather than just text. Set
membership binds a Python list to one ``$n`` and runs as ``= ANY($n)``.
"""

from datetime import date, datetime, timedelta

import duckdb
import pytest

from src.filters.cache import FilterCache
from src.filters.compiler import FilterQueryCompiler
from src.filters.models import (
    CombiningOperator,
    CustomFilter,
    FilterConditionSpec,
    FilterRow,
    ViewMode,
)
from src.services.task_service import build_task_query

TODAY = date.today()
WORKSPACE = 1
ME = 42


class RowStore:
    def __init__(self, rows: list[FilterRow]) -> None:
        self.rows = rows

    async def fetch_filter_rows(self, filter_ids):
        return [r for r in self.rows if r.definition_id in set(filter_ids)]


PERSISTED = [
    FilterRow(
        definition_id=1, name="Due in 7 Days", combining_operator="AND",
        condition_id=1, condition_kind="date_diff", date_from="today",
        date_to="due_date", condition_operator="<=", values=(7,), unit="days",
    ),
    FilterRow(
        definition_id=2, name="Hide Completed", combining_operator="AND",
        condition_id=2, condition_kind="list", field="status",
        condition_operator="!=", values=("done",),
    ),
    FilterRow(
        definition_id=3, name="High Priority", combining_operator="AND",
        condition_id=3, condition_kind="list", field="priority",
        condition_operator="IN", values=("high", "urgent"),
    ),
]


@pytest.fixture
def con():
    """DuckDB database with a small task board."""
    conn = duckdb.connect(":memory:")
    conn.execute(
        """
        CREATE TABLE tasks (
            id INTEGER PRIMARY KEY,
            workspace_id INTEGER,
            title VARCHAR,
            status VARCHAR,
            priority VARCHAR,
            category_id INTEGER,
            due_date DATE,
            start_date DATE,
            completion_date DATE,
            last_modified TIMESTAMP,
            created_at TIMESTAMP
        )
        """
    )
    conn.execute("CREATE TABLE task_assignees (task_id INTEGER, user_id INTEGER)")
    now = datetime.combine(TODAY, datetime.min.time()) + timedelta(hours=12)
    tasks = [
        # id, ws, title, status, priority, category, due, completion, modified
        (1, 1, "Soon", "todo", "high", 1, TODAY + timedelta(days=5), None, now),
        (2, 1, "Later", "todo", "low", 1, TODAY + timedelta(days=10), None, now),
        (3, 1, "Shipped", "done", "urgent", 2, TODAY + timedelta(days=1),
         TODAY - timedelta(days=2), now),
        (4, 1, "Someday", "paused", "normal", 2, None, None,
         now - timedelta(days=30)),
        (5, 2, "Other workspace", "todo", "high", 1, TODAY + timedelta(days=5), None, now),
    ]
    for (tid, ws, title, status, priority, category, due, done_on, modified) in tasks:
        conn.execute(
            "INSERT INTO tasks VALUES ($1, $2, $3, $4, $5, $6, $7, NULL, $8, $9, $9)",
            [tid, ws, title, status, priority, category, due, done_on, modified],
        )
    conn.execute("INSERT INTO task_assignees VALUES (1, 42), (2, 7), (3, 42)")
    yield conn
    conn.close()


async def _task_ids(con, filter_ids=(), custom_filters=(), overrides=None, view=None):
    compiler = FilterQueryCompiler(RowStore(PERSISTED), FilterCache())
    predicate = await compiler.compile(
        filter_ids=filter_ids,
        custom_filters=custom_filters,
        user_id=ME,
        threshold_overrides=overrides,
        start_index=2,
    )
    sql, params = build_task_query(WORKSPACE, predicate, view)
    return [row[0] for row in con.execute(sql, params).fetchall()]


def _custom(*conditions: FilterConditionSpec, logic=CombiningOperator.AND) -> CustomFilter:
    return CustomFilter(logic=logic, conditions=list(conditions))


class TestPredicateSemantics:
    @pytest.mark.asyncio
    async def test_no_filter_returns_whole_workspace(self, con):
        assert sorted(await _task_ids(con)) == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_due_within_seven_days(self, con):
        """Due today+5 matches, today+10 and no due date do not."""
        ids = await _task_ids(con, filter_ids=[1])
        assert sorted(ids) == [1, 3]

    @pytest.mark.asyncio
    async def test_threshold_override_narrows_window(self, con):
        ids = await _task_ids(con, filter_ids=[1], overrides={"due_in_7_days": 3})
        assert ids == [3]

    @pytest.mark.asyncio
    async def test_filters_are_intersected(self, con):
        ids = await _task_ids(con, filter_ids=[1, 2])
        assert ids == [1]

    @pytest.mark.asyncio
    async def test_assigned_to_current_user(self, con):
        mine = FilterConditionSpec(field="assignee", operator="=", values=["current_user_id"])
        assert sorted(await _task_ids(con, custom_filters=[_custom(mine)])) == [1, 3]

    @pytest.mark.asyncio
    async def test_unassigned(self, con):
        nobody = FilterConditionSpec(field="assignee", operator="IS_NULL")
        assert await _task_ids(con, custom_filters=[_custom(nobody)]) == [4]

    @pytest.mark.asyncio
    async def test_or_within_filter(self, con):
        paused = FilterConditionSpec(field="status", operator="=", values=["paused"])
        recently_done = FilterConditionSpec(
            kind="date_diff", date_from="completion_date", date_to="today",
            operator="<=", values=[7], unit="days",
        )
        ids = await _task_ids(
            con, custom_filters=[_custom(paused, recently_done, logic=CombiningOperator.OR)]
        )
        assert sorted(ids) == [3, 4]

    @pytest.mark.asyncio
    async def test_unchanged_for_two_weeks(self, con):
        stale = FilterConditionSpec(
            kind="date_diff", date_from="last_modified", date_to="today",
            operator=">", values=[14], unit="days",
        )
        assert await _task_ids(con, custom_filters=[_custom(stale)]) == [4]

    @pytest.mark.asyncio
    async def test_date_range(self, con):
        window = FilterConditionSpec(
            kind="date_range", field="due_date", operator="BETWEEN",
            values=[TODAY.isoformat(), (TODAY + timedelta(days=6)).isoformat()],
        )
        assert sorted(await _task_ids(con, custom_filters=[_custom(window)])) == [1, 3]

    @pytest.mark.asyncio
    async def test_planner_order(self, con):
        ids = await _task_ids(con, view=ViewMode.planner)
        # paused ranks with in_progress, then todo by priority, done last
        assert ids == [4, 1, 2, 3]


class TestSetMembership:
    @pytest.mark.asyncio
    async def test_open_and_high_priority(self, con):
        """status != 'done' AND priority IN ('high', 'urgent')."""
        assert await _task_ids(con, filter_ids=[2, 3]) == [1]

    @pytest.mark.asyncio
    async def test_status_in(self, con):
        either = FilterConditionSpec(field="status", operator="IN", values=["paused", "done"])
        assert sorted(await _task_ids(con, custom_filters=[_custom(either)])) == [3, 4]

    @pytest.mark.asyncio
    async def test_assignee_in_with_current_user(self, con):
        ours = FilterConditionSpec(
            field="assignee", operator="IN", values=[7, "current_user_id"],
        )
        assert sorted(await _task_ids(con, custom_filters=[_custom(ours)])) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_assignee_in_including_unassigned(self, con):
        ours = FilterConditionSpec(
            field="assignee", operator="IN", values=[7, "current_user_id"],
            include_null=True,
        )
        assert sorted(await _task_ids(con, custom_filters=[_custom(ours)])) == [1, 2, 3, 4]
