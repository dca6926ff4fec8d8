"""Positional parameter accumulation for one compiled statement."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class ParameterBuilder:
    """Issues ``$n`` placeholders and collects the values bound to them.

    Indices start at ``start_index`` and increase by one per bound value,
    so the predicate can be appended to a statement that already owns
    ``$1 .. $start_index-1``.
    """

    def __init__(self, start_index: int = 1) -> None:
        if start_index < 1:
            raise ValueError(f"start_index must be >= 1, got {start_index}")
        self._start_index = start_index
        self._values: list[Any] = []

    @property
    def start_index(self) -> int:
        return self._start_index

    @property
    def next_index(self) -> int:
        """Index the next bound value will receive."""
        return self._start_index + len(self._values)

    def add(self, value: Any) -> str:
        """Bind one scalar and return its placeholder."""
        token = f"${self.next_index}"
        self._values.append(value)
        return token

    def add_array(self, values: Iterable[Any]) -> str:
        """Bind a whole list as a single parameter for set membership."""
        token = f"${self.next_index}"
        self._values.append(list(values))
        return token

    def values(self) -> list[Any]:
        """Return a copy of the bound values in placeholder order."""
        return list(self._values)

    def checkpoint(self) -> int:
        """Return a marker that ``rollback`` can restore to."""
        return len(self._values)

    def rollback(self, marker: int) -> None:
        """Discard every value bound after ``marker``."""
        del self._values[marker:]

    def __len__(self) -> int:
        return len(self._values)
