"""Service for persisted filter CRUD and preset seeding.

Mutations are flushed, not committed. ``commit()`` commits the session
and then clears the whole shared FilterCache, since cache keys are id
combinations rather than single filters.

Example:
    svc = FilterService(db, cache)
    created = await svc.create_filter(user_id=1, workspace_id=2, name="Mine", ...)
    await svc.commit()
"""

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.db.models import FilterConditionRecord, FilterPreference
from src.errors.domain import DuplicateFilterNameError, NotFoundError, ValidationError
from src.filters.cache import FilterCache
from src.filters.fields import ConditionKind, ConditionOperator, parse_kind, parse_operator
from src.filters.models import (
    CombiningOperator,
    FilterConditionSpec,
    FilterDefinition,
    ViewMode,
)
from src.filters.presets import PRESET_FILTERS

logger = logging.getLogger(__name__)


def to_definition(preference: FilterPreference) -> FilterDefinition:
    """Convert an ORM filter (with conditions loaded) to a FilterDefinition."""
    return FilterDefinition(
        id=preference.id,
        name=preference.name,
        operator=CombiningOperator(preference.operator),
        view_mode=ViewMode(preference.view_mode),
        is_default=preference.is_default,
        created_at=preference.created_at,
        conditions=[
            FilterConditionSpec(
                id=record.id,
                kind=record.condition_type,
                field=record.field,
                operator=record.operator,
                values=record.value_list,
                date_from=record.date_from,
                date_to=record.date_to,
                unit=record.unit,
                include_null=record.include_null,
            )
            for record in preference.conditions
        ],
    )


class FilterService:
    """CRUD for filters owned by a (user, workspace) pair.

    Mutating methods do NOT commit; the caller (route) calls ``commit()``.
    """

    def __init__(self, db: AsyncSession, cache: FilterCache) -> None:
        """Initialize with an async session and the shared filter cache.

        Args:
            db: Active database session.
            cache: FilterCache to invalidate after a committed mutation.
        """
        self.db = db
        self.cache = cache
        self._dirty = False

    async def commit(self) -> None:
        """Commit the session, then invalidate the cache if anything changed."""
        await self.db.commit()
        if self._dirty:
            self.cache.invalidate_all()
            self._dirty = False

    async def list_filters(
        self,
        user_id: int,
        workspace_id: int,
        view_mode: ViewMode | None = None,
    ) -> list[FilterPreference]:
        """List a user's filters in a workspace, defaults first then by name."""
        stmt = (
            select(FilterPreference)
            .options(selectinload(FilterPreference.conditions))
            .where(
                FilterPreference.user_id == user_id,
                FilterPreference.workspace_id == workspace_id,
            )
            .order_by(FilterPreference.is_default.desc(), FilterPreference.name)
        )
        if view_mode is not None:
            stmt = stmt.where(FilterPreference.view_mode == view_mode.value)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_filter(
        self,
        filter_id: int,
        user_id: int,
        workspace_id: int,
    ) -> FilterPreference:
        """Return one owned filter.

        Raises:
            NotFoundError: If the filter does not exist or is not owned.
        """
        stmt = (
            select(FilterPreference)
            .options(selectinload(FilterPreference.conditions))
            .where(
                FilterPreference.id == filter_id,
                FilterPreference.user_id == user_id,
                FilterPreference.workspace_id == workspace_id,
            )
        )
        preference = (await self.db.execute(stmt)).scalar_one_or_none()
        if preference is None:
            raise NotFoundError("Filter", str(filter_id))
        return preference

    async def owned_filter_ids(
        self,
        filter_ids: Iterable[int],
        user_id: int,
        workspace_id: int,
    ) -> set[int]:
        """Return the subset of ``filter_ids`` owned by this user and workspace."""
        ids = set(filter_ids)
        if not ids:
            return set()
        stmt = select(FilterPreference.id).where(
            FilterPreference.id.in_(ids),
            FilterPreference.user_id == user_id,
            FilterPreference.workspace_id == workspace_id,
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def create_filter(
        self,
        user_id: int,
        workspace_id: int,
        name: str,
        view_mode: ViewMode,
        operator: CombiningOperator = CombiningOperator.AND,
        is_default: bool = False,
        conditions: Sequence[FilterConditionSpec] = (),
    ) -> FilterPreference:
        """Create a filter with its conditions.

        Raises:
            ValidationError: If the name is blank or a condition is unusable.
            DuplicateFilterNameError: If the name is already taken.
        """
        clean_name = _require_name(name)
        await self._ensure_name_free(user_id, workspace_id, clean_name)
        preference = FilterPreference(
            user_id=user_id,
            workspace_id=workspace_id,
            name=clean_name,
            view_mode=view_mode.value,
            operator=operator.value,
            is_default=is_default,
            conditions=_build_records(conditions),
        )
        self.db.add(preference)
        await self.db.flush()
        self._dirty = True
        logger.info(
            "Created filter %d %r for user=%d workspace=%d",
            preference.id, clean_name, user_id, workspace_id,
        )
        return preference

    async def update_filter(
        self,
        filter_id: int,
        user_id: int,
        workspace_id: int,
        name: str | None = None,
        view_mode: ViewMode | None = None,
        operator: CombiningOperator | None = None,
        is_default: bool | None = None,
        conditions: Sequence[FilterConditionSpec] | None = None,
    ) -> FilterPreference:
        """Partially update a filter; ``conditions`` replaces the whole set.

        Raises:
            NotFoundError: If the filter does not exist or is not owned.
            ValidationError: If the new name is blank or a condition is unusable.
            DuplicateFilterNameError: If the new name is already taken.
        """
        preference = await self.get_filter(filter_id, user_id, workspace_id)
        if name is not None:
            clean_name = _require_name(name)
            if clean_name != preference.name:
                await self._ensure_name_free(user_id, workspace_id, clean_name)
            preference.name = clean_name
        if view_mode is not None:
            preference.view_mode = view_mode.value
        if operator is not None:
            preference.operator = operator.value
        if is_default is not None:
            preference.is_default = is_default
        if conditions is not None:
            preference.conditions = _build_records(conditions)
        await self.db.flush()
        self._dirty = True
        logger.info("Updated filter %d", filter_id)
        return preference

    async def delete_filter(self, filter_id: int, user_id: int, workspace_id: int) -> None:
        """Delete a filter and its conditions.

        Raises:
            NotFoundError: If the filter does not exist or is not owned.
        """
        preference = await self.get_filter(filter_id, user_id, workspace_id)
        await self.db.delete(preference)
        await self.db.flush()
        self._dirty = True
        logger.info("Deleted filter %d", filter_id)

    async def seed_presets(self, user_id: int, workspace_id: int) -> list[FilterPreference]:
        """Create the built-in preset filters that this user does not have yet."""
        existing = {p.name for p in await self.list_filters(user_id, workspace_id)}
        created: list[FilterPreference] = []
        for preset in PRESET_FILTERS:
            if preset.name in existing:
                continue
            preference = FilterPreference(
                user_id=user_id,
                workspace_id=workspace_id,
                name=preset.name,
                view_mode=preset.view_mode,
                operator=preset.operator,
                is_default=preset.is_default,
                conditions=[
                    _record(
                        kind=c.kind,
                        field=c.field,
                        operator=c.operator,
                        values=c.values,
                        date_from=c.date_from,
                        date_to=c.date_to,
                        unit=c.unit,
                    )
                    for c in preset.conditions
                ],
            )
            self.db.add(preference)
            created.append(preference)
        if created:
            await self.db.flush()
            self._dirty = True
        logger.info(
            "Seeded %d preset filters for user=%d workspace=%d",
            len(created), user_id, workspace_id,
        )
        return created

    async def _ensure_name_free(self, user_id: int, workspace_id: int, name: str) -> None:
        stmt = select(FilterPreference.id).where(
            FilterPreference.user_id == user_id,
            FilterPreference.workspace_id == workspace_id,
            FilterPreference.name == name,
        )
        if (await self.db.execute(stmt)).first() is not None:
            raise DuplicateFilterNameError(name)


def _require_name(name: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise ValidationError("Filter name must not be blank")
    return clean


def _build_records(conditions: Sequence[FilterConditionSpec]) -> list[FilterConditionRecord]:
    records = []
    for spec in conditions:
        if parse_kind(spec.kind) == ConditionKind.UNSUPPORTED:
            raise ValidationError(f"Unsupported condition kind '{spec.kind}'")
        if parse_operator(spec.operator) == ConditionOperator.UNSUPPORTED:
            raise ValidationError(f"Unsupported operator '{spec.operator}'")
        records.append(
            _record(
                kind=spec.kind,
                field=spec.field,
                operator=spec.operator,
                values=spec.values,
                date_from=spec.date_from,
                date_to=spec.date_to,
                unit=spec.unit,
                include_null=spec.include_null,
            )
        )
    return records


def _record(
    kind: str,
    operator: str,
    values: list,
    field: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    unit: str | None = None,
    include_null: bool = False,
) -> FilterConditionRecord:
    record = FilterConditionRecord(
        condition_type=kind,
        field=field,
        operator=operator,
        date_from=date_from,
        date_to=date_to,
        unit=unit,
        include_null=include_null,
    )
    record.value_list = values
    return record
