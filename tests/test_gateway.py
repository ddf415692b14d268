from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
from postgrest.exceptions import APIError

from comanda_shared.constants import Tables
from comanda_shared.supabase.errors import GatewayError, NoRowsError, TransportError
from comanda_shared.supabase.gateway import SupabaseGateway


def test_create_serializes_values_and_returns_row(gateway, fake_client, restaurant):
    row = gateway.create(
        Tables.PRODUCTS,
        {"restaurante_id": restaurant["id"], "nome": "Café", "preco": Decimal("4.50")},
    )

    assert row["nome"] == "Café"
    assert row["preco"] == 4.5
    assert row["id"]
    assert fake_client.find("produtos", row["id"]) is not None


def test_read_applies_filters_order_and_limit(gateway, seed_table, restaurant):
    seed_table(3)
    seed_table(1)
    seed_table(2)

    rows = gateway.get_tables_by_restaurant(restaurant["id"])
    assert [row["numero"] for row in rows] == [1, 2, 3]

    limited = gateway.read(Tables.TABLES, {"restaurante_id": restaurant["id"]}, limit=1)
    assert len(limited) == 1


def test_update_stamps_updated_at(gateway, seed_table):
    table = seed_table(1)

    updated = gateway.update(Tables.TABLES, table["id"], {"status": "ocupada"})

    assert updated["status"] == "ocupada"
    assert updated["updated_at"] > table["updated_at"]


def test_update_of_missing_row_raises_no_rows(gateway):
    with pytest.raises(NoRowsError):
        gateway.update(Tables.TABLES, "missing", {"status": "ocupada"})


def test_scoped_writes_only_touch_the_owners_rows(gateway, seed_table, fake_client, restaurant):
    table = seed_table(1)

    with pytest.raises(NoRowsError):
        gateway.update(Tables.TABLES, table["id"], {"status": "ocupada"}, scope={"restaurante_id": "other"})
    with pytest.raises(NoRowsError):
        gateway.delete(Tables.TABLES, table["id"], scope={"restaurante_id": "other"})
    assert fake_client.find("mesas", table["id"])["status"] == "livre"

    scope = {"restaurante_id": restaurant["id"]}
    assert gateway.update(Tables.TABLES, table["id"], {"status": "ocupada"}, scope=scope)[
        "status"
    ] == "ocupada"
    gateway.delete(Tables.TABLES, table["id"], scope=scope)
    assert fake_client.find("mesas", table["id"]) is None


def test_read_one_without_match_raises_no_rows(gateway):
    with pytest.raises(NoRowsError):
        gateway.read_one(Tables.RESTAURANTS, {"id": "missing"})


def test_platform_error_becomes_gateway_error(gateway, fake_client):
    fake_client.fail(
        "mesas",
        "insert",
        APIError({"message": "duplicate key", "code": "23505", "hint": None, "details": None}),
    )

    with pytest.raises(GatewayError) as exc_info:
        gateway.create(Tables.TABLES, {"numero": 1})

    assert exc_info.value.code == "23505"
    assert exc_info.value.operation == "create:mesas"
    assert not isinstance(exc_info.value, TransportError)


def test_no_rows_code_becomes_no_rows_error(gateway, fake_client):
    fake_client.fail(
        "restaurantes",
        "select",
        APIError({"message": "no rows", "code": "PGRST116", "hint": None, "details": None}),
    )

    with pytest.raises(NoRowsError):
        gateway.read(Tables.RESTAURANTS, {"user_id": "x"})


def test_network_failure_becomes_transport_error(gateway, fake_client):
    fake_client.fail("mesas", "select", httpx.ConnectError("connection refused"))

    with pytest.raises(TransportError):
        gateway.read(Tables.TABLES)


def test_find_restaurant_by_user_returns_none_when_absent(gateway):
    assert gateway.find_restaurant_by_user("nobody") is None


def test_writes_publish_change_events(gateway, registry, seed_table):
    table = seed_table(1)
    seen = []
    registry.subscribe(
        "mesas",
        on_insert=lambda row: seen.append(("INSERT", row["numero"])),
        on_update=lambda row: seen.append(("UPDATE", row["status"])),
        on_delete=lambda row: seen.append(("DELETE", row["id"])),
    )

    created = gateway.create(Tables.TABLES, {"restaurante_id": "r", "numero": 9, "capacidade": 2})
    gateway.update(Tables.TABLES, table["id"], {"status": "ocupada"})
    gateway.delete(Tables.TABLES, created["id"])

    assert seen == [("INSERT", 9), ("UPDATE", "ocupada"), ("DELETE", created["id"])]


def test_publish_failure_does_not_fail_the_write(fake_client, seed_table):
    class BrokenPublisher:
        def publish_change(self, table, event, new, old=None):
            raise RuntimeError("redis down")

    gateway = SupabaseGateway(fake_client, publisher=BrokenPublisher())
    table = seed_table(1)

    updated = gateway.update(Tables.TABLES, table["id"], {"status": "ocupada"})
    assert updated["status"] == "ocupada"


def test_open_items_are_flattened_with_product_and_table(
    gateway, fake_client, seed_table, seed_product, restaurant
):
    table = seed_table(5)
    product = seed_product("Feijoada", "42.00", "Pratos")
    order = fake_client.seed("comandas", mesa_id=table["id"], status="aberta", valor_total=0)
    closed = fake_client.seed("comandas", mesa_id=table["id"], status="fechada", valor_total=0)
    fake_client.seed(
        "itens_comanda",
        comanda_id=order["id"],
        produto_id=product["id"],
        quantidade=2,
        preco_unitario=42.0,
        status="pendente",
    )
    fake_client.seed(
        "itens_comanda",
        comanda_id=closed["id"],
        produto_id=product["id"],
        quantidade=1,
        preco_unitario=42.0,
        status="entregue",
    )

    items = gateway.get_open_items_by_restaurant(restaurant["id"])

    assert len(items) == 1
    assert items[0]["produto_nome"] == "Feijoada"
    assert items[0]["categoria"] == "Pratos"
    assert items[0]["mesa_id"] == table["id"]
    assert items[0]["mesa_numero"] == 5
    assert "comanda" not in items[0]


def test_open_orders_are_scoped_to_restaurant(gateway, fake_client, seed_table, restaurant):
    table = seed_table(1)
    other_table = fake_client.seed(
        "mesas", restaurante_id="other", numero=1, capacidade=2, status="ocupada"
    )
    mine = fake_client.seed("comandas", mesa_id=table["id"], status="aberta", valor_total=0)
    fake_client.seed("comandas", mesa_id=other_table["id"], status="aberta", valor_total=0)

    orders = gateway.get_open_orders_by_restaurant(restaurant["id"])

    assert [order["id"] for order in orders] == [mine["id"]]
    assert "mesa" not in orders[0]


def test_finalize_payment_publishes_table_and_order(gateway, registry, fake_client, seed_table):
    table = seed_table(1, status="ocupada")
    fake_client.seed("comandas", mesa_id=table["id"], status="aberta", valor_total=0)
    events = []
    registry.subscribe("mesas", on_update=lambda row: events.append(("mesas", row["status"])))
    registry.subscribe("comandas", on_update=lambda row: events.append(("comandas", row["status"])))

    result = gateway.finalize_payment(table["id"], "pix", "owner-1")

    assert result["mesa"]["status"] == "livre"
    assert ("mesas", "livre") in events
    assert ("comandas", "fechada") in events


def test_finalize_payment_without_result_raises_no_rows(gateway, fake_client):
    fake_client.rpc_handlers["finalizar_pagamento_mesa"] = []

    with pytest.raises(NoRowsError):
        gateway.finalize_payment("table", "pix", "owner-1")


def test_employee_rows_carry_has_auth(gateway, fake_client):
    fake_client.seed("employees", company_id="c1", name="Bia", role="waiter", auth_user_id="u1")
    fake_client.seed("employees", company_id="c1", name="Caio", role="kitchen", auth_user_id=None)

    rows = gateway.get_employees_by_company("c1")

    assert {row["name"]: row["has_auth"] for row in rows} == {"Bia": True, "Caio": False}


def test_public_online_menu_hides_inactive_items(gateway, fake_client, restaurant):
    fake_client.seed(
        "cardapio_online", restaurante_id=restaurant["id"], nome="A", preco=1.0, ordem=1,
        ativo=True, disponivel_online=True,
    )
    fake_client.seed(
        "cardapio_online", restaurante_id=restaurant["id"], nome="B", preco=1.0, ordem=0,
        ativo=False, disponivel_online=True,
    )

    public = gateway.get_online_menu(restaurant["id"], public_only=True)
    everything = gateway.get_online_menu(restaurant["id"])

    assert [item["nome"] for item in public] == ["A"]
    assert [item["nome"] for item in everything] == ["B", "A"]


def test_create_auth_user_returns_new_user_id(gateway, fake_client):
    user_id = gateway.create_auth_user("bia@example.com", "secret1", {"role": "waiter"})

    assert user_id == "auth-1"
    created = fake_client.auth.admin.created[0]
    assert created["email_confirm"] is True
    assert created["user_metadata"] == {"role": "waiter"}
