"""
Per-session UI state: the current route and the status/table filters of the
tables page survive navigation by living in the session under a common
prefix. Page snapshots expire after half an hour.
"""

from __future__ import annotations

import time
from collections.abc import Callable, MutableMapping
from typing import Any

from comanda_shared.constants import PAGE_STATE_MAX_AGE_SECONDS, SESSION_STATE_PREFIX

CURRENT_ROUTE_KEY = "current_route"
STATUS_FILTER_KEY = "status_filter"
TABLE_FILTER_KEY = "table_filter"

DEFAULT_STATUS_FILTER = "todos"


class SessionState:
    def __init__(
        self,
        store: MutableMapping[str, Any],
        prefix: str = SESSION_STATE_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._prefix = prefix
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def save(self, key: str, value: Any) -> None:
        self._store[self._key(key)] = value

    def load(self, key: str, default: Any = None) -> Any:
        return self._store.get(self._key(key), default)

    def remove(self, key: str) -> None:
        self._store.pop(self._key(key), None)

    def clear(self) -> None:
        for key in [key for key in self._store if key.startswith(self._prefix)]:
            del self._store[key]

    def as_dict(self) -> dict[str, Any]:
        return {
            key[len(self._prefix) :]: value
            for key, value in self._store.items()
            if key.startswith(self._prefix)
        }

    # Named entries ------------------------------------------------------

    @property
    def current_route(self) -> str | None:
        return self.load(CURRENT_ROUTE_KEY)

    @current_route.setter
    def current_route(self, route: str) -> None:
        self.save(CURRENT_ROUTE_KEY, route)

    @property
    def status_filter(self) -> str:
        return self.load(STATUS_FILTER_KEY, DEFAULT_STATUS_FILTER)

    @status_filter.setter
    def status_filter(self, value: str) -> None:
        self.save(STATUS_FILTER_KEY, value)

    @property
    def table_filter(self) -> str | None:
        return self.load(TABLE_FILTER_KEY)

    @table_filter.setter
    def table_filter(self, value: str | None) -> None:
        if value is None:
            self.remove(TABLE_FILTER_KEY)
        else:
            self.save(TABLE_FILTER_KEY, value)

    # Page snapshots -----------------------------------------------------

    def save_page_state(self, page: str, state: dict[str, Any]) -> None:
        self.save(f"page_{page}", {**state, "timestamp": self._clock()})

    def load_page_state(
        self,
        page: str,
        default: dict[str, Any] | None = None,
        max_age: float = PAGE_STATE_MAX_AGE_SECONDS,
    ) -> dict[str, Any]:
        """Saved state merged over ``default``, or ``default`` once it is stale."""
        default = dict(default or {})
        saved = self.load(f"page_{page}")
        if not saved or "timestamp" not in saved:
            return default
        if self._clock() - saved["timestamp"] > max_age:
            return default
        state = {key: value for key, value in saved.items() if key != "timestamp"}
        return {**default, **state}
