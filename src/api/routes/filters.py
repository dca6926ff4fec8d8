"""API routes for persisted task filters.

Provides CRUD endpoints for a user's filters in a workspace plus preset
seeding. All endpoints use /api/v1/filters prefix. Every mutation is
committed through FilterService.commit, which clears the shared filter
cache once the commit has succeeded.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import get_current_user_id
from src.api.schemas import (
    FilterCreate,
    FilterListResponse,
    FilterResponse,
    FilterUpdate,
)
from src.db.connection import get_async_db
from src.db.models import FilterPreference
from src.errors.domain import ConflictError, NotFoundError, ValidationError
from src.filters.models import ViewMode
from src.services.filter_provider import get_filter_cache
from src.services.filter_service import FilterService, to_definition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/filters", tags=["filters"])


def _get_service(db: AsyncSession = Depends(get_async_db)) -> FilterService:
    """Dependency injector for FilterService."""
    return FilterService(db, get_filter_cache())


def _to_response(preference: FilterPreference) -> FilterResponse:
    return FilterResponse.model_validate(to_definition(preference).model_dump())


@router.get("", response_model=FilterListResponse)
async def list_filters(
    workspace_id: int = Query(..., gt=0),
    view_mode: ViewMode | None = None,
    user_id: int = Depends(get_current_user_id),
    service: FilterService = Depends(_get_service),
) -> FilterListResponse:
    """List the caller's filters in a workspace.

    Args:
        workspace_id: Workspace the filters belong to.
        view_mode: Optional planner/tracker restriction.
        user_id: Authenticated user (injected).
        service: FilterService (injected).

    Returns:
        Filters with total count, defaults first.
    """
    filters = await service.list_filters(user_id, workspace_id, view_mode=view_mode)
    return FilterListResponse(
        filters=[_to_response(f) for f in filters],
        total=len(filters),
    )


@router.get("/{filter_id}", response_model=FilterResponse)
async def get_filter(
    filter_id: int,
    workspace_id: int = Query(..., gt=0),
    user_id: int = Depends(get_current_user_id),
    service: FilterService = Depends(_get_service),
) -> FilterResponse:
    """Get one filter with its conditions.

    Raises:
        HTTPException: 404 if not found or not owned.
    """
    try:
        return _to_response(await service.get_filter(filter_id, user_id, workspace_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None


@router.post("", response_model=FilterResponse, status_code=201)
async def create_filter(
    data: FilterCreate,
    user_id: int = Depends(get_current_user_id),
    service: FilterService = Depends(_get_service),
    db: AsyncSession = Depends(get_async_db),
) -> FilterResponse:
    """Create a new filter.

    Args:
        data: Filter creation data.
        user_id: Authenticated user (injected).
        service: FilterService (injected).
        db: Database session (injected).

    Returns:
        Created filter details.

    Raises:
        HTTPException: 400 if validation fails, 409 if the name exists.
    """
    try:
        preference = await service.create_filter(
            user_id=user_id,
            workspace_id=data.workspace_id,
            name=data.name,
            view_mode=data.view_mode,
            operator=data.operator,
            is_default=data.is_default,
            conditions=[c.to_spec() for c in data.conditions],
        )
        await service.commit()
        return _to_response(preference)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Filter with this name already exists") from None


@router.patch("/{filter_id}", response_model=FilterResponse)
async def update_filter(
    filter_id: int,
    data: FilterUpdate,
    workspace_id: int = Query(..., gt=0),
    user_id: int = Depends(get_current_user_id),
    service: FilterService = Depends(_get_service),
    db: AsyncSession = Depends(get_async_db),
) -> FilterResponse:
    """Partially update a filter.

    Raises:
        HTTPException: 404 if not found, 400 if validation fails, 409 on name conflict.
    """
    try:
        preference = await service.update_filter(
            filter_id,
            user_id,
            workspace_id,
            name=data.name,
            view_mode=data.view_mode,
            operator=data.operator,
            is_default=data.is_default,
            conditions=(
                [c.to_spec() for c in data.conditions]
                if data.conditions is not None
                else None
            ),
        )
        await service.commit()
        return _to_response(preference)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Filter name already in use") from None


@router.delete("/{filter_id}")
async def delete_filter(
    filter_id: int,
    workspace_id: int = Query(..., gt=0),
    user_id: int = Depends(get_current_user_id),
    service: FilterService = Depends(_get_service),
) -> dict:
    """Delete a filter.

    Raises:
        HTTPException: 404 if not found.
    """
    try:
        await service.delete_filter(filter_id, user_id, workspace_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    await service.commit()
    return {"status": "deleted", "filter_id": filter_id}


@router.post("/presets", response_model=FilterListResponse, status_code=201)
async def seed_presets(
    workspace_id: int = Query(..., gt=0),
    user_id: int = Depends(get_current_user_id),
    service: FilterService = Depends(_get_service),
) -> FilterListResponse:
    """Create the built-in preset filters the caller does not have yet.

    Returns:
        The newly created filters (empty when all presets already exist).
    """
    created = await service.seed_presets(user_id, workspace_id)
    await service.commit()
    return FilterListResponse(
        filters=[_to_response(f) for f in created],
        total=len(created),
    )
