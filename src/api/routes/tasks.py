"""API routes for filtered task listing.

Endpoints use the /api/v1/tasks prefix. Enabled filters and inline
custom filters are compiled into one predicate; a task is returned only
if it satisfies every enabled filter. FilterFetchError is translated to
503 by the application-level handler in src/api/main.py.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import get_current_user_id
from src.api.schemas import TaskListResponse, TaskQuery, TaskResponse
from src.db.connection import get_async_db
from src.errors.domain import NotFoundError, UnsupportedDatabaseError
from src.filters.models import ViewMode
from src.services.filter_provider import get_filter_cache, get_filter_compiler
from src.services.filter_service import FilterService
from src.services.task_service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _get_service(db: AsyncSession = Depends(get_async_db)) -> TaskService:
    """Dependency injector for TaskService."""
    return TaskService(
        db,
        compiler=get_filter_compiler(),
        filters=FilterService(db, get_filter_cache()),
    )


async def _list(service: TaskService, user_id: int, query: TaskQuery) -> TaskListResponse:
    try:
        rows = await service.list_tasks(
            user_id=user_id,
            workspace_id=query.workspace_id,
            filter_ids=query.filter_ids,
            custom_filters=query.custom_filters,
            threshold_overrides=query.threshold_overrides,
            view=query.view,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except UnsupportedDatabaseError as e:
        logger.error("task_list_unavailable dialect=%s", e.dialect)
        raise HTTPException(status_code=503, detail=str(e)) from None
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(r) for r in rows],
        total=len(rows),
    )


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    workspace_id: int = Query(..., gt=0),
    filter_ids: list[int] = Query([]),
    view: ViewMode | None = None,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(_get_service),
) -> TaskListResponse:
    """List tasks matching the enabled persisted filters.

    Args:
        workspace_id: Workspace to list.
        filter_ids: Enabled filter ids (repeat the parameter for several).
        view: Ordering preset (planner or tracker).
        user_id: Authenticated user (injected).
        service: TaskService (injected).

    Returns:
        Matching tasks with total count.

    Raises:
        HTTPException: 404 if a filter id is unknown or not owned.
    """
    query = TaskQuery(workspace_id=workspace_id, filter_ids=filter_ids, view=view)
    return await _list(service, user_id, query)


@router.post("/query", response_model=TaskListResponse)
async def query_tasks(
    query: TaskQuery,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(_get_service),
) -> TaskListResponse:
    """List tasks with persisted filters, custom filters and threshold overrides.

    Args:
        query: Filter selection for the listing.
        user_id: Authenticated user (injected).
        service: TaskService (injected).

    Returns:
        Matching tasks with total count.

    Raises:
        HTTPException: 404 if a filter id is unknown or not owned.
    """
    return await _list(service, user_id, query)
