"""Task listing with compiled filters.

Builds the listing statement around the filter compiler's predicate:
the workspace parameter takes ``$1`` and the compiler starts issuing
placeholders at ``$2``, so both share one positional parameter list.

The statement uses PostgreSQL positional placeholders and is executed
through the driver connection (asyncpg).
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.errors.domain import NotFoundError, UnsupportedDatabaseError
from src.filters.compiler import FilterQueryCompiler
from src.filters.models import CompiledPredicate, CustomFilter, ViewMode
from src.services.filter_service import FilterService

logger = logging.getLogger(__name__)

_BASE_SELECT = "SELECT t.* FROM tasks t WHERE t.workspace_id = $1"

_STATUS_RANK = (
    "CASE t.status WHEN 'in_progress' THEN 1 WHEN 'paused' THEN 1 "
    "WHEN 'todo' THEN 3 WHEN 'done' THEN 4 END"
)
_PRIORITY_RANK = (
    "CASE t.priority WHEN 'urgent' THEN 1 WHEN 'high' THEN 2 "
    "WHEN 'normal' THEN 3 WHEN 'low' THEN 4 END"
)
_TRACKER_STATUS_RANK = (
    "CASE t.status WHEN 'done' THEN 1 WHEN 'in_progress' THEN 2 "
    "WHEN 'paused' THEN 3 WHEN 'todo' THEN 4 END"
)

_ORDER_BY: dict[ViewMode | None, str] = {
    ViewMode.planner: f"{_STATUS_RANK}, {_PRIORITY_RANK}, t.title ASC",
    ViewMode.tracker: f"t.category_id, {_TRACKER_STATUS_RANK}, t.title ASC",
    None: "t.title ASC",
}


def build_task_query(
    workspace_id: int,
    predicate: CompiledPredicate,
    view: ViewMode | None = None,
) -> tuple[str, list[Any]]:
    """Assemble the listing SQL and its positional parameters.

    Args:
        workspace_id: Bound at ``$1``.
        predicate: Compiled with ``start_index=2``.
        view: Selects the ordering.

    Returns:
        (sql, params) ready for a ``$n`` driver.
    """
    sql = _BASE_SELECT
    if predicate.where_sql is not None:
        sql += f" AND ({predicate.where_sql})"
    sql += f" ORDER BY {_ORDER_BY[view]}"
    return sql, [workspace_id, *predicate.params]


class TaskService:
    """List tasks for a user, applying enabled and custom filters."""

    def __init__(
        self,
        db: AsyncSession,
        compiler: FilterQueryCompiler,
        filters: FilterService,
    ) -> None:
        self.db = db
        self.compiler = compiler
        self.filters = filters

    async def list_tasks(
        self,
        user_id: int,
        workspace_id: int,
        filter_ids: Sequence[int] = (),
        custom_filters: Sequence[CustomFilter] = (),
        threshold_overrides: Mapping[str, Any] | None = None,
        view: ViewMode | None = None,
    ) -> list[dict[str, Any]]:
        """Return task rows matching every enabled filter.

        Raises:
            NotFoundError: If a filter id is not owned by this user/workspace.
            FilterFetchError: If filter definitions could not be loaded.
            UnsupportedDatabaseError: If the session is not bound to PostgreSQL.
        """
        conn = await self.db.connection()
        if conn.dialect.name != "postgresql":
            raise UnsupportedDatabaseError(conn.dialect.name)

        ids = list(dict.fromkeys(filter_ids))
        owned = await self.filters.owned_filter_ids(ids, user_id, workspace_id)
        missing = [i for i in ids if i not in owned]
        if missing:
            raise NotFoundError("Filter", ",".join(str(i) for i in missing))

        predicate = await self.compiler.compile(
            filter_ids=ids,
            custom_filters=custom_filters,
            user_id=user_id,
            threshold_overrides=threshold_overrides,
            start_index=2,
        )
        sql, params = build_task_query(workspace_id, predicate, view)
        logger.debug(
            "task_list workspace=%d filters=%d custom=%d dropped=%d params=%d",
            workspace_id, len(ids), len(custom_filters),
            predicate.dropped_conditions, len(params),
        )
        result = await conn.exec_driver_sql(sql, tuple(params))
        return [dict(row._mapping) for row in result]
