"""
Remote data gateway over the Supabase client.

Generic row CRUD by table name plus helpers for the joins and stored
procedures the back office needs. Every call either returns rows or raises a
``GatewayError`` carrying the platform error; nothing here retries.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

import httpx
from postgrest.exceptions import APIError
from supabase import AuthError as SupabaseAuthError
from supabase import Client

from comanda_shared.constants import (
    NO_ROWS_ERROR_CODE,
    TOP_PRODUCTS_ROW_CAP,
    ChangeEvent,
    OrderStatus,
    Tables,
)
from comanda_shared.supabase.errors import GatewayError, NoRowsError, TransportError

logger = logging.getLogger(__name__)

Record = dict[str, Any]

OPEN_ITEMS_SELECT = (
    "*, produto:produtos(nome, categoria, preco), "
    "comanda:comandas!inner(id, status, mesa_id, mesa:mesas!inner(id, numero, restaurante_id))"
)

TOP_PRODUCTS_SELECT = (
    "produto_id, quantidade, preco_unitario, "
    "produto:produtos!inner(nome, categoria, preco), "
    "comanda:comandas!inner(mesa:mesas!inner(restaurante_id))"
)


class ChangePublisher(Protocol):
    def publish_change(
        self, table: str, event: ChangeEvent, new: Record | None, old: Record | None
    ) -> None: ...


def _utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return value


def _table_name(table: str | Tables) -> str:
    return table.value if isinstance(table, Tables) else table


class SupabaseGateway:
    """Typed-ish access to the hosted database."""

    def __init__(self, client: Client, publisher: ChangePublisher | None = None):
        self._client = client
        self._publisher = publisher

    @property
    def client(self) -> Client:
        return self._client

    def set_publisher(self, publisher: ChangePublisher | None) -> None:
        self._publisher = publisher

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _execute(self, operation: str, builder) -> Any:
        try:
            response = builder.execute()
        except APIError as exc:
            code = getattr(exc, "code", None)
            message = getattr(exc, "message", None) or str(exc)
            logger.error(
                "Gateway operation failed: %s",
                message,
                extra={"operation": operation, "code": code},
            )
            if code == NO_ROWS_ERROR_CODE:
                raise NoRowsError(message, operation=operation) from exc
            raise GatewayError(
                message, code=code, details=getattr(exc, "details", None), operation=operation
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Gateway transport error: %s", exc, extra={"operation": operation}
            )
            raise TransportError(str(exc) or exc.__class__.__name__, operation=operation) from exc
        return response.data if response is not None else None

    def _publish(
        self, table: str, event: ChangeEvent, new: Record | None, old: Record | None = None
    ) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher.publish_change(table, event, new, old)
        except Exception as exc:
            logger.warning(f"Error publishing change for '{table}' (continuing): {exc}")

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    def create(self, table: str | Tables, payload: Record) -> Record:
        name = _table_name(table)
        data = self._execute(
            f"create:{name}", self._client.table(name).insert(_jsonable(payload))
        )
        if not data:
            raise NoRowsError(f"Insert into {name} returned no row", operation=f"create:{name}")
        row = data[0]
        self._publish(name, ChangeEvent.INSERT, row)
        return row

    def read(
        self,
        table: str | Tables,
        filters: Record | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[Record]:
        name = _table_name(table)
        query = self._client.table(name).select(columns)
        for key, value in (filters or {}).items():
            if value is not None:
                query = query.eq(key, _jsonable(value))
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit:
            query = query.limit(limit)
        return self._execute(f"read:{name}", query) or []

    def read_one(self, table: str | Tables, filters: Record) -> Record:
        rows = self.read(table, filters, limit=1)
        if not rows:
            raise NoRowsError(
                f"No row in {_table_name(table)} matching {sorted(filters)}",
                operation=f"read_one:{_table_name(table)}",
            )
        return rows[0]

    def _scoped(self, query, row_id: str, scope: Record | None):
        query = query.eq("id", row_id)
        for key, value in (scope or {}).items():
            query = query.eq(key, _jsonable(value))
        return query

    def update(
        self, table: str | Tables, row_id: str, payload: Record, scope: Record | None = None
    ) -> Record:
        """
        Update one row by id. ``scope`` adds owner columns that must match,
        so a row of another tenant reads as missing.
        """
        name = _table_name(table)
        body = {**_jsonable(payload), "updated_at": _utcnow_iso()}
        data = self._execute(
            f"update:{name}", self._scoped(self._client.table(name).update(body), row_id, scope)
        )
        if not data:
            raise NoRowsError(f"No row {row_id} in {name}", operation=f"update:{name}")
        row = data[0]
        self._publish(name, ChangeEvent.UPDATE, row)
        return row

    def upsert(self, table: str | Tables, payload: Record, on_conflict: str) -> Record:
        name = _table_name(table)
        data = self._execute(
            f"upsert:{name}",
            self._client.table(name).upsert(_jsonable(payload), on_conflict=on_conflict),
        )
        if not data:
            raise NoRowsError(f"Upsert into {name} returned no row", operation=f"upsert:{name}")
        row = data[0]
        self._publish(name, ChangeEvent.UPDATE, row)
        return row

    def delete(self, table: str | Tables, row_id: str, scope: Record | None = None) -> None:
        name = _table_name(table)
        data = self._execute(
            f"delete:{name}", self._scoped(self._client.table(name).delete(), row_id, scope)
        )
        if scope and not data:
            raise NoRowsError(f"No row {row_id} in {name}", operation=f"delete:{name}")
        old = data[0] if data else {"id": row_id}
        self._publish(name, ChangeEvent.DELETE, None, old)

    def rpc(self, function: str, params: Record) -> Any:
        return self._execute(f"rpc:{function}", self._client.rpc(function, _jsonable(params)))

    # ------------------------------------------------------------------
    # Restaurant scoped reads
    # ------------------------------------------------------------------

    def find_restaurant_by_user(self, user_id: str) -> Record | None:
        rows = self.read(Tables.RESTAURANTS, {"user_id": user_id}, limit=1)
        return rows[0] if rows else None

    def get_tables_by_restaurant(self, restaurant_id: str) -> list[Record]:
        return self.read(Tables.TABLES, {"restaurante_id": restaurant_id}, order_by="numero")

    def get_products_by_restaurant(self, restaurant_id: str) -> list[Record]:
        return self.read(Tables.PRODUCTS, {"restaurante_id": restaurant_id}, order_by="nome")

    def get_products_by_category(self, restaurant_id: str, category: str) -> list[Record]:
        return self.read(
            Tables.PRODUCTS,
            {"restaurante_id": restaurant_id, "categoria": category, "disponivel": True},
            order_by="nome",
        )

    def get_categories_by_restaurant(self, restaurant_id: str) -> list[Record]:
        return self.read(Tables.CATEGORIES, {"restaurante_id": restaurant_id}, order_by="nome")

    def get_open_orders_by_restaurant(self, restaurant_id: str) -> list[Record]:
        query = (
            self._client.table(Tables.ORDERS.value)
            .select("*, mesa:mesas!inner(restaurante_id)")
            .eq("mesa.restaurante_id", restaurant_id)
            .eq("status", OrderStatus.OPEN.value)
            .order("created_at")
        )
        rows = self._execute("read:open_orders", query) or []
        return [{key: value for key, value in row.items() if key != "mesa"} for row in rows]

    def get_open_order_by_table(self, table_id: str) -> Record | None:
        rows = self.read(
            Tables.ORDERS, {"mesa_id": table_id, "status": OrderStatus.OPEN.value}, limit=1
        )
        return rows[0] if rows else None

    def get_open_items_by_restaurant(self, restaurant_id: str) -> list[Record]:
        """
        Items of open orders joined with their product and order -> table.

        The nested join payload is flattened into ``produto_nome``,
        ``categoria``, ``mesa_id`` and ``mesa_numero``.
        """
        query = (
            self._client.table(Tables.ORDER_ITEMS.value)
            .select(OPEN_ITEMS_SELECT)
            .eq("comanda.mesa.restaurante_id", restaurant_id)
            .eq("comanda.status", OrderStatus.OPEN.value)
            .order("created_at")
        )
        rows = self._execute("read:open_items", query) or []
        return [self._flatten_item(row) for row in rows]

    @staticmethod
    def _flatten_item(row: Record) -> Record:
        product = row.get("produto") or {}
        order = row.get("comanda") or {}
        table = order.get("mesa") or {}
        flat = {key: value for key, value in row.items() if key not in {"produto", "comanda"}}
        flat["produto_nome"] = product.get("nome")
        flat["categoria"] = product.get("categoria")
        flat["mesa_id"] = table.get("id") or order.get("mesa_id")
        flat["mesa_numero"] = table.get("numero")
        return flat

    def get_items_by_order(self, order_id: str) -> list[Record]:
        return self.read(Tables.ORDER_ITEMS, {"comanda_id": order_id}, order_by="created_at")

    def get_sales_by_period(self, restaurant_id: str, start: str, end: str) -> list[Record]:
        query = (
            self._client.table(Tables.SALES.value)
            .select("*")
            .eq("restaurante_id", restaurant_id)
            .eq("status", "concluida")
            .gte("created_at", start)
            .lt("created_at", end)
            .order("created_at", desc=True)
        )
        return self._execute("read:sales_by_period", query) or []

    def get_cash_registers_by_period(
        self, restaurant_id: str, start: str, end: str
    ) -> list[Record]:
        query = (
            self._client.table(Tables.CASH_REGISTERS.value)
            .select("*")
            .eq("restaurante_id", restaurant_id)
            .gte("data_abertura", start)
            .lt("data_abertura", end)
            .order("data_abertura", desc=True)
        )
        return self._execute("read:cash_registers_by_period", query) or []

    def get_cash_movements(self, register_id: str) -> list[Record]:
        return self.read(
            Tables.CASH_MOVEMENTS,
            {"caixa_operador_id": register_id},
            order_by="created_at",
            descending=True,
        )

    def get_sold_items_since(self, restaurant_id: str, since: str) -> list[Record]:
        query = (
            self._client.table(Tables.ORDER_ITEMS.value)
            .select(TOP_PRODUCTS_SELECT)
            .eq("comanda.mesa.restaurante_id", restaurant_id)
            .gte("created_at", since)
            .limit(TOP_PRODUCTS_ROW_CAP)
        )
        return self._execute("read:sold_items", query) or []

    def get_notifications_by_user(self, user_id: str, limit: int) -> list[Record]:
        return self.read(
            Tables.NOTIFICATIONS,
            {"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )

    def get_employees_by_company(self, company_id: str) -> list[Record]:
        rows = self.read(Tables.EMPLOYEES, {"company_id": company_id}, order_by="name")
        return [{**row, "has_auth": bool(row.get("auth_user_id"))} for row in rows]

    def get_online_menu(self, restaurant_id: str, public_only: bool = False) -> list[Record]:
        query = (
            self._client.table(Tables.ONLINE_MENU.value)
            .select("*")
            .eq("restaurante_id", restaurant_id)
        )
        if public_only:
            query = query.eq("ativo", True).eq("disponivel_online", True)
        return self._execute("read:online_menu", query.order("ordem")) or []

    # ------------------------------------------------------------------
    # Auth administration (service role key required)
    # ------------------------------------------------------------------

    def create_auth_user(self, email: str, password: str, metadata: Record) -> str:
        """Create a confirmed login and return its user id."""
        try:
            response = self._client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": metadata,
                }
            )
        except SupabaseAuthError as exc:
            logger.error(f"Auth user creation failed: {exc}", extra={"operation": "auth:create"})
            raise GatewayError(
                str(exc), code=getattr(exc, "code", None), operation="auth:create"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc), operation="auth:create") from exc
        if response is None or response.user is None:
            raise NoRowsError("Usuário não foi criado", operation="auth:create")
        return response.user.id

    def delete_auth_user(self, user_id: str) -> None:
        try:
            self._client.auth.admin.delete_user(user_id)
        except SupabaseAuthError as exc:
            logger.error(f"Auth user deletion failed: {exc}", extra={"operation": "auth:delete"})
            raise GatewayError(
                str(exc), code=getattr(exc, "code", None), operation="auth:delete"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc), operation="auth:delete") from exc

    # ------------------------------------------------------------------
    # Stored procedures
    # ------------------------------------------------------------------

    def finalize_payment(self, table_id: str, payment_method: str, actor_id: str) -> Record:
        """
        Atomically total the active items, record the sale, close the order
        and free the table.

        Returns ``{"venda": ..., "mesa": ..., "comanda": ...}``.
        """
        data = self.rpc(
            "finalizar_pagamento_mesa",
            {
                "p_mesa_id": table_id,
                "p_forma_pagamento": payment_method,
                "p_usuario_id": actor_id,
            },
        )
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise NoRowsError(
                f"Payment procedure returned nothing for table {table_id}",
                operation="rpc:finalizar_pagamento_mesa",
            )
        if data.get("mesa"):
            self._publish(Tables.TABLES.value, ChangeEvent.UPDATE, data["mesa"])
        if data.get("comanda"):
            self._publish(Tables.ORDERS.value, ChangeEvent.UPDATE, data["comanda"])
        if data.get("venda"):
            self._publish(Tables.SALES.value, ChangeEvent.INSERT, data["venda"])
        return data

    def calculate_cmv(
        self,
        restaurant_id: str,
        product_id: str,
        unit_cost: Decimal,
        period_start: str,
        period_end: str,
    ) -> Record:
        data = self.rpc(
            "calcular_cmv_produto",
            {
                "p_restaurante_id": restaurant_id,
                "p_produto_id": product_id,
                "p_custo_unitario": unit_cost,
                "p_periodo_inicio": period_start,
                "p_periodo_fim": period_end,
            },
        )
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise NoRowsError(
                f"CMV procedure returned nothing for product {product_id}",
                operation="rpc:calcular_cmv_produto",
            )
        return data

    def get_cmv_report(self, restaurant_id: str, period_start: str, period_end: str) -> list[Record]:
        return (
            self.rpc(
                "get_cmv_report",
                {
                    "p_restaurante_id": restaurant_id,
                    "p_periodo_inicio": period_start,
                    "p_periodo_fim": period_end,
                },
            )
            or []
        )

    def get_dashboard_data(self, restaurant_id: str) -> Record:
        data = self.rpc("get_dashboard_data", {"p_restaurante_id": restaurant_id})
        if isinstance(data, list):
            data = data[0] if data else {}
        return data or {}

    def get_sales_report(self, restaurant_id: str, start: str, end: str) -> list[Record]:
        return (
            self.rpc(
                "get_sales_report",
                {"p_restaurante_id": restaurant_id, "p_start_date": start, "p_end_date": end},
            )
            or []
        )

    def get_stock_alerts(self, restaurant_id: str) -> list[Record]:
        return self.rpc("get_stock_alerts", {"p_restaurante_id": restaurant_id}) or []

    def run_employee_diagnostics(self, employee_user_id: str) -> Record:
        """Run the three access-introspection procedures for one employee login."""
        params = {"employee_user_id": employee_user_id}
        return {
            "employee": self.rpc("debug_employee_data", params),
            "produtos_access": self.rpc("debug_employee_produtos_access", params),
            "insumos_access": self.rpc("debug_employee_insumos_access", params),
        }
