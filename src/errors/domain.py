"""Typed domain exceptions for API error mapping.

These exceptions give routes a typed contract instead of string
matching. Routes catch specific exception types to return the
appropriate HTTP status codes.

Usage:
    # In service layer
    raise NotFoundError("Filter", str(filter_id))

    # In route handler
    try:
        definition = await service.get_filter(filter_id, ...)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class NotFoundError(DomainError):
    """Resource was not found. Maps to HTTP 404."""

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(f"{resource_type} '{identifier}' not found")
        self.resource_type = resource_type
        self.identifier = identifier


class ConflictError(DomainError):
    """Resource conflict (e.g., duplicate). Maps to HTTP 409."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ValidationError(DomainError):
    """Validation failure. Maps to HTTP 400."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class DuplicateFilterNameError(ConflictError):
    """Filter name already used by this user in this workspace. Maps to HTTP 409."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Filter '{name}' already exists")
        self.name = name


class FilterFetchError(DomainError):
    """Persisted filter definitions could not be read. Maps to HTTP 503.

    Callers must not fall back to an unfiltered query: the user's filter
    scope is unknown.
    """

    def __init__(self, filter_ids: list[int], message: str = "") -> None:
        detail = message or "storage read failed"
        super().__init__(f"Could not load filters {filter_ids}: {detail}")
        self.filter_ids = filter_ids


class UnsupportedDatabaseError(DomainError):
    """Task listing was attempted on a database it cannot run against. Maps to HTTP 503.

    The listing SQL uses PostgreSQL placeholders, date arithmetic and
    array membership; other dialects accept parts of it with different
    meaning.
    """

    def __init__(self, dialect: str) -> None:
        super().__init__(
            f"Task listing requires PostgreSQL; configured database is '{dialect}'"
        )
        self.dialect = dialect
