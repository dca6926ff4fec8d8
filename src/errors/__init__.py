"""Error types for Taskboard.

Domain errors raised by services and the filter compiler, mapped to HTTP
status codes by the API layer.
"""

from src.errors.domain import (
    ConflictError,
    DomainError,
    DuplicateFilterNameError,
    FilterFetchError,
    NotFoundError,
    UnsupportedDatabaseError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "DuplicateFilterNameError",
    "FilterFetchError",
    "UnsupportedDatabaseError",
]
