"""Pytest fixtures for API tests.

Routes are exercised through TestClient with their service dependencies
overridden by in-memory fakes, so no database or event-loop sharing is
involved. The lifespan is not entered.
"""

from collections.abc import Generator
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.routes import filters as filter_routes
from src.api.routes import tasks as task_routes
from src.db.connection import get_async_db
from src.db.models import FilterConditionRecord, FilterPreference
from src.errors.domain import DuplicateFilterNameError, NotFoundError, ValidationError
from src.filters.fields import ConditionOperator, parse_operator
from src.services.filter_provider import reset_filter_singletons


class FakeSession:
    """Stands in for AsyncSession; records commits."""

    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeFilterService:
    """In-memory FilterService with the same error contract."""

    def __init__(self, session: FakeSession) -> None:
        self.session = session
        self.filters: dict[int, FilterPreference] = {}
        self._next_id = 1

    async def commit(self) -> None:
        await self.session.commit()

    def _owned(self, filter_id, user_id, workspace_id) -> FilterPreference:
        pref = self.filters.get(filter_id)
        if pref is None or pref.user_id != user_id or pref.workspace_id != workspace_id:
            raise NotFoundError("Filter", str(filter_id))
        return pref

    def _records(self, conditions) -> list[FilterConditionRecord]:
        records = []
        for i, spec in enumerate(conditions, start=1):
            if parse_operator(spec.operator) == ConditionOperator.UNSUPPORTED:
                raise ValidationError(f"Unsupported operator '{spec.operator}'")
            record = FilterConditionRecord(
                id=i,
                condition_type=spec.kind,
                field=spec.field,
                operator=spec.operator,
                date_from=spec.date_from,
                date_to=spec.date_to,
                unit=spec.unit,
                include_null=spec.include_null,
            )
            record.value_list = spec.values
            records.append(record)
        return records

    async def list_filters(self, user_id, workspace_id, view_mode=None):
        return [
            p for p in self.filters.values()
            if p.user_id == user_id and p.workspace_id == workspace_id
            and (view_mode is None or p.view_mode == view_mode.value)
        ]

    async def get_filter(self, filter_id, user_id, workspace_id):
        return self._owned(filter_id, user_id, workspace_id)

    async def create_filter(self, user_id, workspace_id, name, view_mode,
                            operator, is_default, conditions):
        for p in await self.list_filters(user_id, workspace_id):
            if p.name == name:
                raise DuplicateFilterNameError(name)
        pref = FilterPreference(
            id=self._next_id,
            user_id=user_id,
            workspace_id=workspace_id,
            name=name,
            view_mode=view_mode.value,
            operator=operator.value,
            is_default=is_default,
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
            conditions=self._records(conditions),
        )
        self.filters[pref.id] = pref
        self._next_id += 1
        return pref

    async def update_filter(self, filter_id, user_id, workspace_id, name=None,
                            view_mode=None, operator=None, is_default=None,
                            conditions=None):
        pref = self._owned(filter_id, user_id, workspace_id)
        if name is not None:
            pref.name = name
        if operator is not None:
            pref.operator = operator.value
        if conditions is not None:
            pref.conditions = self._records(conditions)
        return pref

    async def delete_filter(self, filter_id, user_id, workspace_id):
        self._owned(filter_id, user_id, workspace_id)
        del self.filters[filter_id]

    async def seed_presets(self, user_id, workspace_id):
        return []


@pytest.fixture
def fake_db() -> FakeSession:
    return FakeSession()


@pytest.fixture
def filter_service(fake_db: FakeSession) -> FakeFilterService:
    return FakeFilterService(fake_db)


@pytest.fixture
def client(fake_db: FakeSession, filter_service: FakeFilterService) -> Generator[TestClient, None, None]:
    """Create a TestClient with overridden database and service dependencies.

    Yields:
        TestClient configured for testing.
    """

    async def override_get_async_db():
        yield fake_db

    app.dependency_overrides[get_async_db] = override_get_async_db
    app.dependency_overrides[filter_routes._get_service] = lambda: filter_service
    reset_filter_singletons()
    yield TestClient(app)
    app.dependency_overrides.clear()
    reset_filter_singletons()


@pytest.fixture
def override_task_service():
    """Install a TaskService replacement for the tasks routes."""

    def _install(service) -> None:
        app.dependency_overrides[task_routes._get_service] = lambda: service

    return _install
