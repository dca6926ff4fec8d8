"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from src.api.routes import filters, tasks

__all__ = [
    "filters",
    "tasks",
]
