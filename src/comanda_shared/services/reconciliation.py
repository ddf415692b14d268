"""
Versioned in-memory collections.

Local patches (after a gateway write) and push events (from the change
registry) both land here. A row is only applied when its ``updated_at`` is
strictly newer than the copy already held, so the two paths converge to the
same state regardless of arrival order. Deleted ids are remembered until the
next wholesale replace so a late update cannot bring a row back.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Generic, TypeVar

from comanda_shared.rows import Row

T = TypeVar("T", bound=Row)


def is_newer(incoming: Row, current: Row | None) -> bool:
    if current is None:
        return True
    if incoming.version is None:
        # Tables without an updated_at column fall back to last write wins.
        return current.version is None
    if current.version is None:
        return True
    return incoming.version > current.version


class VersionedCollection(Generic[T]):
    def __init__(self, model: type[T], sort_key: Callable[[T], Any] | None = None):
        self._model = model
        self._sort_key = sort_key
        self._rows: dict[str, T] = {}
        self._tombstones: set[str] = set()

    def parse(self, record: dict[str, Any] | T) -> T:
        if isinstance(record, self._model):
            return record
        return self._model.model_validate(record)

    def replace_all(self, records: Iterable[dict[str, Any] | T]) -> None:
        rows = [self.parse(record) for record in records]
        self._rows = {row.id: row for row in rows}
        self._tombstones = set()

    def apply(self, record: dict[str, Any] | T) -> bool:
        """Insert or update; returns False when the row is stale or deleted."""
        row = self.parse(record)
        if row.id in self._tombstones:
            return False
        if not is_newer(row, self._rows.get(row.id)):
            return False
        self._rows[row.id] = row
        return True

    def remove(self, row_id: str) -> T | None:
        self._tombstones.add(row_id)
        return self._rows.pop(row_id, None)

    def remove_where(self, predicate: Callable[[T], bool]) -> list[T]:
        dropped = [row for row in self._rows.values() if predicate(row)]
        for row in dropped:
            self.remove(row.id)
        return dropped

    def get(self, row_id: str) -> T | None:
        return self._rows.get(row_id)

    def values(self) -> list[T]:
        rows = list(self._rows.values())
        if self._sort_key is not None:
            rows.sort(key=self._sort_key)
        return rows

    def where(self, predicate: Callable[[T], bool]) -> list[T]:
        return [row for row in self.values() if predicate(row)]

    def snapshot(self) -> list[dict[str, Any]]:
        return [row.to_record() for row in self.values()]

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._rows

    def __iter__(self) -> Iterator[T]:
        return iter(self.values())

    def __len__(self) -> int:
        return len(self._rows)
