"""
In-memory stand-in for the Supabase client used by the gateway tests.

It understands the subset of the query builder the gateway calls
(select/insert/update/upsert/delete, eq/gte/lt, order, limit), resolves
dotted filters and embedded resources through the foreign keys below, and
lets tests queue failures per table and operation.
"""

from __future__ import annotations

import copy
import itertools
import uuid
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

RELATIONS = {
    "mesa": ("mesas", "mesa_id"),
    "comanda": ("comandas", "comanda_id"),
    "produto": ("produtos", "produto_id"),
}

_MISSING = object()
BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client: FakeSupabaseClient, table: str):
        self.client = client
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.on_conflict: str | None = None
        self.filters: list[tuple[str, str, Any]] = []
        self.order_by: list[tuple[str, bool]] = []
        self.limit_n: int | None = None

    def select(self, columns: str = "*"):
        self.columns = columns
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict: str | None = None):
        self.op = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append((column, "eq", value))
        return self

    def gte(self, column: str, value: Any):
        self.filters.append((column, "gte", value))
        return self

    def lt(self, column: str, value: Any):
        self.filters.append((column, "lt", value))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by.append((column, desc))
        return self

    def limit(self, count: int):
        self.limit_n = count
        return self

    def execute(self):
        return FakeResponse(self.client._run(self))


class FakeRpc:
    def __init__(self, client: FakeSupabaseClient, function: str, params: dict):
        self.client = client
        self.function = function
        self.params = params

    def execute(self):
        return FakeResponse(self.client._run_rpc(self.function, self.params))


class FakeAdmin:
    def __init__(self):
        self.created: list[dict] = []
        self.deleted: list[str] = []
        self.create_error: Exception | None = None

    def create_user(self, attributes: dict):
        if self.create_error is not None:
            raise self.create_error
        user_id = f"auth-{len(self.created) + 1}"
        self.created.append({"id": user_id, **attributes})
        return SimpleNamespace(user=SimpleNamespace(id=user_id))

    def delete_user(self, user_id: str):
        self.deleted.append(user_id)


class FakeBucket:
    def __init__(self, storage: FakeStorage, name: str):
        self.storage = storage
        self.name = name

    def upload(self, path, content, options):
        self.storage.uploads.append(
            {"bucket": self.name, "path": path, "size": len(content), "options": options}
        )
        return SimpleNamespace(path=path)

    def remove(self, paths):
        self.storage.removed.extend(paths)
        return SimpleNamespace(data=[{"name": path} for path in paths])


class FakeStorage:
    def __init__(self):
        self.uploads: list[dict] = []
        self.removed: list[str] = []

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeSupabaseClient:
    def __init__(self):
        self.rows: dict[str, list[dict]] = defaultdict(list)
        self.rpc_handlers: dict[str, Any] = {}
        self.calls: list[tuple[str, str]] = []
        self.rpc_calls: list[tuple[str, dict]] = []
        self._failures: dict[tuple[str, str], list[Exception]] = defaultdict(list)
        self._clock = itertools.count(1)
        self.auth = SimpleNamespace(admin=FakeAdmin())
        self.storage = FakeStorage()
        self.rpc_handlers["finalizar_pagamento_mesa"] = self._finalize_payment

    # Test helpers -------------------------------------------------------

    def tick(self) -> str:
        return (BASE_TIME + timedelta(seconds=next(self._clock))).isoformat()

    def seed(self, table: str, **values) -> dict:
        stamp = self.tick()
        row = {"id": str(uuid.uuid4()), "created_at": stamp, "updated_at": stamp, **values}
        self.rows[table].append(row)
        return copy.deepcopy(row)

    def fail(self, table: str, op: str, error: Exception, times: int = 1) -> None:
        """Raise ``error`` on the next ``times`` calls of ``op`` on ``table``."""
        self._failures[(table, op)].extend([error] * times)

    def find(self, table: str, row_id: Any) -> dict | None:
        for row in self.rows[table]:
            if row.get("id") == row_id:
                return row
        return None

    def count_calls(self, table: str, op: str) -> int:
        return sum(1 for call in self.calls if call == (table, op))

    # Client surface -----------------------------------------------------

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, function: str, params: dict) -> FakeRpc:
        return FakeRpc(self, function, params)

    # Execution ----------------------------------------------------------

    def _raise_queued(self, key: tuple[str, str]) -> None:
        queued = self._failures.get(key)
        if queued:
            raise queued.pop(0)

    def _run(self, query: FakeQuery) -> list[dict]:
        self.calls.append((query.table, query.op))
        self._raise_queued((query.table, query.op))

        if query.op == "insert":
            payloads = query.payload if isinstance(query.payload, list) else [query.payload]
            return [copy.deepcopy(self._insert(query.table, payload)) for payload in payloads]

        if query.op == "upsert":
            return [copy.deepcopy(self._upsert(query.table, query.payload, query.on_conflict))]

        matched = [row for row in self.rows[query.table] if self._matches(row, query.filters)]

        if query.op == "update":
            stamp = self.tick()
            for row in matched:
                row.update(copy.deepcopy(query.payload))
                row["updated_at"] = stamp
            return copy.deepcopy(matched)

        if query.op == "delete":
            self.rows[query.table] = [row for row in self.rows[query.table] if row not in matched]
            return copy.deepcopy(matched)

        for column, desc in reversed(query.order_by):
            matched.sort(key=lambda row, c=column: _sort_key(row.get(c)), reverse=desc)
        if query.limit_n is not None:
            matched = matched[: query.limit_n]
        return [self._embed(copy.deepcopy(row), query.columns) for row in matched]

    def _run_rpc(self, function: str, params: dict) -> Any:
        self.rpc_calls.append((function, params))
        self._raise_queued(("rpc", function))
        handler = self.rpc_handlers.get(function)
        if callable(handler):
            return handler(params)
        return copy.deepcopy(handler)

    def _insert(self, table: str, payload: dict) -> dict:
        stamp = self.tick()
        row = {"id": str(uuid.uuid4()), "created_at": stamp, "updated_at": stamp}
        row.update(copy.deepcopy(payload))
        self.rows[table].append(row)
        return row

    def _upsert(self, table: str, payload: dict, on_conflict: str | None) -> dict:
        keys = [key.strip() for key in (on_conflict or "id").split(",")]
        for row in self.rows[table]:
            if all(row.get(key) == payload.get(key) for key in keys):
                row.update(copy.deepcopy(payload))
                row["updated_at"] = self.tick()
                return row
        return self._insert(table, payload)

    def _resolve(self, row: dict, path: str) -> Any:
        parts = path.split(".")
        current: dict | None = row
        for part in parts[:-1]:
            if part not in RELATIONS or current is None:
                return _MISSING
            table, foreign_key = RELATIONS[part]
            current = self.find(table, current.get(foreign_key))
        if current is None:
            return _MISSING
        return current.get(parts[-1], _MISSING)

    def _matches(self, row: dict, filters) -> bool:
        for column, op, value in filters:
            actual = self._resolve(row, column)
            if actual is _MISSING:
                return False
            if op == "eq" and actual != value:
                return False
            if op == "gte" and not (actual is not None and str(actual) >= str(value)):
                return False
            if op == "lt" and not (actual is not None and str(actual) < str(value)):
                return False
        return True

    def _embed(self, row: dict, columns: str) -> dict:
        for alias, (table, foreign_key) in RELATIONS.items():
            if f"{alias}:" not in columns or foreign_key not in row:
                continue
            related = self.find(table, row.get(foreign_key))
            if related is not None:
                related = self._embed(copy.deepcopy(related), columns)
            row[alias] = related
        return row

    # Stored procedures --------------------------------------------------

    def _finalize_payment(self, params: dict) -> dict:
        table = self.find("mesas", params["p_mesa_id"])
        order = next(
            (
                row
                for row in self.rows["comandas"]
                if row.get("mesa_id") == params["p_mesa_id"] and row.get("status") == "aberta"
            ),
            None,
        )
        total = Decimal("0")
        if order is not None:
            for item in self.rows["itens_comanda"]:
                if item.get("comanda_id") == order["id"] and item.get("status") not in {
                    "entregue",
                    "cancelado",
                }:
                    total += Decimal(str(item["preco_unitario"])) * item["quantidade"]
            order.update({"status": "fechada", "valor_total": float(total), "updated_at": self.tick()})

        sale = self._insert(
            "vendas",
            {
                "restaurante_id": table["restaurante_id"],
                "mesa_id": table["id"],
                "comanda_id": order["id"] if order else None,
                "valor_total": float(total),
                "forma_pagamento": params["p_forma_pagamento"],
                "usuario_id": params["p_usuario_id"],
                "status": "concluida",
            },
        )
        table.update(
            {
                "status": "livre",
                "garcom": None,
                "horario_abertura": None,
                "valor_total": 0,
                "updated_at": self.tick(),
            }
        )
        return copy.deepcopy({"venda": sale, "mesa": table, "comanda": order})


def _sort_key(value: Any):
    return (value is None, value)
