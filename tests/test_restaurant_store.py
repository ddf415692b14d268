from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
from postgrest.exceptions import APIError

from comanda_shared.actor import Actor
from comanda_shared.constants import ChangeEvent, ItemStatus, OrderStatus, TableStatus
from comanda_shared.services.restaurant_store import RestaurantStore
from comanda_shared.services.state_machine import StateTransitionError
from comanda_shared.supabase.errors import GatewayError, TransportError
from comanda_shared.validation import ValidationError


def _api_error(message="boom", code="XX000"):
    return APIError({"message": message, "code": code, "hint": None, "details": None})


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def test_refresh_loads_restaurant_state(make_store, seed_table, seed_product, fake_client, restaurant):
    table = seed_table(1, status="ocupada")
    seed_table(2)
    product = seed_product("Feijoada", "42.00")
    fake_client.seed("categorias", restaurante_id=restaurant["id"], nome="Pratos", ativo=True)
    order = fake_client.seed("comandas", mesa_id=table["id"], status="aberta", valor_total=42.0)
    fake_client.seed(
        "itens_comanda",
        comanda_id=order["id"],
        produto_id=product["id"],
        quantidade=1,
        preco_unitario=42.0,
        status="pendente",
    )

    store = make_store()

    assert store.restaurant_id == restaurant["id"]
    assert [t.numero for t in store.tables.values()] == [1, 2]
    assert store.open_order_for_table(table["id"]).id == order["id"]
    items = store.items_for_table(table["id"])
    assert len(items) == 1
    assert items[0].produto_nome == "Feijoada"
    assert items[0].mesa_numero == 1
    assert len(store.categories) == 1


def test_refresh_twice_yields_identical_snapshot(make_store, seed_table, seed_product, fake_client):
    table = seed_table(1, status="ocupada")
    product = seed_product("Suco", "8.00")
    order = fake_client.seed("comandas", mesa_id=table["id"], status="aberta", valor_total=8.0)
    fake_client.seed(
        "itens_comanda",
        comanda_id=order["id"],
        produto_id=product["id"],
        quantidade=1,
        preco_unitario=8.0,
        status="preparando",
    )
    store = make_store()
    first = store.snapshot()

    store.refresh()

    assert store.snapshot() == first


def test_first_login_provisions_restaurant(gateway, registry, fake_client):
    newcomer = Actor(user_id="new-user", email="bia@example.com", name="Bia")
    store = RestaurantStore(gateway, registry=registry, actor=newcomer)

    store.refresh()

    assert store.restaurant.nome == "Restaurante de Bia"
    assert store.restaurant.user_id == "new-user"
    assert fake_client.count_calls("restaurantes", "insert") == 1

    store.refresh()
    assert fake_client.count_calls("restaurantes", "insert") == 1


def test_refresh_failure_notifies_and_raises(make_store, fake_client, notices):
    store = make_store(start=False)
    fake_client.fail("mesas", "select", _api_error())

    with pytest.raises(GatewayError):
        store.refresh()

    assert notices[-1] == ("error", "Erro ao carregar dados do restaurante")


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def test_add_table_and_reject_duplicate_number(store, notices):
    table = store.add_table(7, 4)

    assert table.status is TableStatus.FREE
    assert store.get_table(table.id).numero == 7
    assert notices[-1] == ("success", "Mesa 7 adicionada com sucesso!")

    with pytest.raises(ValidationError):
        store.add_table(7, 2)
    assert notices[-1] == ("error", "Mesa 7 já existe!")


def test_add_table_rejects_non_positive_capacity(store):
    with pytest.raises(ValidationError):
        store.add_table(1, 0)


def test_occupy_table_opens_an_order(store, seed_table):
    table = seed_table(1)
    store.refresh()

    order = store.occupy_table(table["id"], waiter="Carlos")

    current = store.get_table(table["id"])
    assert current.status is TableStatus.OCCUPIED
    assert current.garcom == "Carlos"
    assert current.horario_abertura is not None
    assert order.status is OrderStatus.OPEN
    assert store.open_order_for_table(table["id"]).id == order.id


def test_occupy_occupied_table_is_rejected(store, seed_table):
    table = seed_table(1, status="ocupada")
    store.refresh()

    with pytest.raises(StateTransitionError):
        store.occupy_table(table["id"])


def test_release_table_cancels_open_order(store, seed_table, seed_product, fake_client):
    table = seed_table(1)
    product = seed_product("Pastel", "12.00")
    store.refresh()
    store.add_item(table["id"], product["id"], 2)
    order_id = store.open_order_for_table(table["id"]).id

    released = store.release_table(table["id"])

    assert released.status is TableStatus.FREE
    assert released.valor_total == 0
    assert released.garcom is None
    assert store.open_order_for_table(table["id"]) is None
    assert store.items_for_table(table["id"]) == []
    assert fake_client.find("comandas", order_id)["status"] == "cancelada"


def test_request_payment_moves_table_to_awaiting(store, seed_table):
    table = seed_table(1, status="ocupada")
    store.refresh()

    updated = store.request_payment(table["id"])

    assert updated.status is TableStatus.AWAITING_PAYMENT


def test_delete_table_requires_free_table(store, seed_table, notices):
    busy = seed_table(1, status="ocupada")
    free = seed_table(2)
    store.refresh()

    with pytest.raises(ValidationError):
        store.delete_table(busy["id"])
    assert notices[-1] == ("error", "Não é possível excluir uma mesa ocupada")

    store.delete_table(free["id"])
    assert free["id"] not in store.tables


def test_unknown_table_is_a_validation_error(store):
    with pytest.raises(ValidationError):
        store.occupy_table("missing")


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def test_add_item_occupies_free_table_and_syncs_totals(store, seed_table, seed_product, fake_client):
    table = seed_table(3)
    product = seed_product("Feijoada", "42.00")
    store.refresh()

    item = store.add_item(table["id"], product["id"], 2, "sem cebola")

    assert item.preco_unitario == Decimal("42")
    assert item.produto_nome == "Feijoada"
    assert item.mesa_numero == 3
    assert item.observacao == "sem cebola"
    current = store.get_table(table["id"])
    assert current.status is TableStatus.OCCUPIED
    assert current.valor_total == Decimal("84")
    assert fake_client.find("mesas", table["id"])["valor_total"] == 84.0


def test_add_item_keeps_price_at_time_of_order(store, seed_table, seed_product):
    table = seed_table(1)
    product = seed_product("Café", "5.00")
    store.refresh()
    item = store.add_item(table["id"], product["id"])

    store.update_product(product["id"], {"preco": "6.50"})

    assert store.items.get(item.id).preco_unitario == Decimal("5")
    assert store.get_product(product["id"]).preco == Decimal("6.5")


def test_add_unavailable_product_is_rejected(store, seed_table, seed_product):
    table = seed_table(1)
    product = seed_product("Sorvete", "9.00", disponivel=False)
    store.refresh()

    with pytest.raises(ValidationError):
        store.add_item(table["id"], product["id"])


def test_item_status_moves_forward_only(store, seed_table, seed_product, notices):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    item = store.add_item(table["id"], product["id"])

    preparing = store.update_item_status(item.id, ItemStatus.PREPARING)
    assert preparing.status is ItemStatus.PREPARING
    assert preparing.produto_nome == "Pizza"

    with pytest.raises(StateTransitionError):
        store.update_item_status(item.id, "pendente")
    assert notices[-1][0] == "error"


def test_delivered_item_is_frozen(store, seed_table, seed_product):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    item = store.add_item(table["id"], product["id"])
    store.update_item_status(item.id, ItemStatus.DELIVERED)

    with pytest.raises(StateTransitionError):
        store.update_item_status(item.id, ItemStatus.CANCELLED)
    with pytest.raises(StateTransitionError):
        store.remove_item(item.id)


def test_cancelled_items_leave_the_total(store, seed_table, seed_product):
    table = seed_table(1)
    pizza = seed_product("Pizza", "50.00")
    soda = seed_product("Refrigerante", "7.00")
    store.refresh()
    store.add_item(table["id"], pizza["id"])
    soda_item = store.add_item(table["id"], soda["id"], 2)

    store.update_item_status(soda_item.id, ItemStatus.CANCELLED)

    assert store.get_table(table["id"]).valor_total == Decimal("50")


def test_remove_item_updates_totals(store, seed_table, seed_product, fake_client):
    table = seed_table(1)
    product = seed_product("Pastel", "12.00")
    store.refresh()
    first = store.add_item(table["id"], product["id"])
    store.add_item(table["id"], product["id"])

    store.remove_item(first.id)

    assert first.id not in store.items
    assert fake_client.find("itens_comanda", first.id) is None
    assert store.get_table(table["id"]).valor_total == Decimal("12")


def test_advance_item_walks_the_kitchen_flow(store, seed_table, seed_product):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    item = store.add_item(table["id"], product["id"])

    statuses = [store.advance_item(item.id).status for _ in range(3)]

    assert statuses == [ItemStatus.PREPARING, ItemStatus.READY, ItemStatus.DELIVERED]
    with pytest.raises(StateTransitionError):
        store.advance_item(item.id)


def test_kitchen_queue_lists_active_items_with_next_status(store, seed_table, seed_product):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    waiting = store.add_item(table["id"], product["id"])
    served = store.add_item(table["id"], product["id"])
    store.update_item_status(served.id, ItemStatus.DELIVERED)

    queue = store.kitchen_queue()

    assert [entry["id"] for entry in queue] == [waiting.id]
    assert queue[0]["proximo_status"] == "preparando"


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


def test_finalize_payment_records_sale_and_frees_table(
    store, seed_table, seed_product, fake_client, owner, notices
):
    table = seed_table(4)
    pizza = seed_product("Pizza", "50.00")
    soda = seed_product("Refrigerante", "7.00")
    store.refresh()
    store.add_item(table["id"], pizza["id"])
    store.add_item(table["id"], soda["id"], 2)
    cancelled = store.add_item(table["id"], soda["id"])
    store.update_item_status(cancelled.id, ItemStatus.CANCELLED)
    order_id = store.open_order_for_table(table["id"]).id

    result = store.finalize_payment(table["id"], "pix")

    assert result.sale["valor_total"] == 64.0
    assert result.sale["forma_pagamento"] == "pix"
    assert result.sale["usuario_id"] == owner.user_id
    assert result.table.status is TableStatus.FREE
    assert store.get_table(table["id"]).status is TableStatus.FREE
    assert store.open_order_for_table(table["id"]) is None
    assert store.items_for_order(order_id) == []
    assert fake_client.find("comandas", order_id)["status"] == "fechada"
    assert len(fake_client.rows["vendas"]) == 1
    assert notices[-1] == ("success", "Pagamento finalizado com sucesso!")


def test_finalize_payment_from_awaiting_status(store, seed_table, seed_product):
    table = seed_table(1)
    product = seed_product("Café", "5.00")
    store.refresh()
    store.add_item(table["id"], product["id"])
    store.request_payment(table["id"])

    result = store.finalize_payment(table["id"], "cartao")

    assert result.table.status is TableStatus.FREE


def test_finalize_payment_on_free_table_is_rejected(store, seed_table, fake_client):
    table = seed_table(1)
    store.refresh()

    with pytest.raises(StateTransitionError):
        store.finalize_payment(table["id"], "pix")
    assert fake_client.rpc_calls == []


def test_finalize_payment_rejects_unknown_method(store, seed_table):
    table = seed_table(1, status="ocupada")
    store.refresh()

    with pytest.raises(ValidationError):
        store.finalize_payment(table["id"], "cheque")


def test_bill_for_table_applies_fee_cover_and_discount(store, seed_table, seed_product):
    table = seed_table(1, capacidade=2)
    product = seed_product("Picanha", "100.00")
    store.refresh()
    store.add_item(table["id"], product["id"])

    bill = store.bill_for_table(
        table["id"], service_fee=True, cover_charge=True, discount_type="percent", discount_value=10
    )

    assert bill.subtotal == Decimal("100.00")
    assert bill.service_fee == Decimal("10.00")
    assert bill.cover_charge == Decimal("30.00")
    assert bill.gross_total == Decimal("140.00")
    assert bill.discount == Decimal("14.00")
    assert bill.total == Decimal("126.00")


def test_dashboard_counters(store, seed_table, seed_product):
    busy = seed_table(1)
    seed_table(2)
    seed_table(3, status="aguardando")
    product = seed_product("Pizza", "50.00")
    store.refresh()
    store.add_item(busy["id"], product["id"])

    counters = store.dashboard_counters()

    assert counters["total_tables"] == 3
    assert counters["occupied_tables"] == 2
    assert counters["free_tables"] == 1
    assert counters["awaiting_payment"] == 1
    assert counters["open_orders"] == 1
    assert counters["pending_items"] == 1
    assert counters["open_amount"] == 50.0
    assert counters["average_ticket"] == 50.0


# ---------------------------------------------------------------------------
# Products and restaurant
# ---------------------------------------------------------------------------


def test_product_crud(store):
    product = store.create_product({"nome": "Pudim", "preco": "9.90", "categoria": "Sobremesas"})
    assert product.preco == Decimal("9.9")
    assert product.disponivel is True

    updated = store.update_product(product.id, {"disponivel": False, "ignored": "x"})
    assert updated.disponivel is False

    store.delete_product(product.id)
    assert product.id not in store.products


def test_product_validation(store):
    with pytest.raises(ValidationError):
        store.create_product({"nome": "", "preco": "1.00"})
    with pytest.raises(ValidationError):
        store.create_product({"nome": "X", "preco": "-1"})
    with pytest.raises(ValidationError):
        store.create_product({"nome": "X", "preco": "1", "estoque": -3})


def test_update_restaurant(store, notices):
    restaurant = store.update_restaurant({"nome": "Cantina Nova", "user_id": "hijack"})

    assert restaurant.nome == "Cantina Nova"
    assert restaurant.user_id == store.restaurant.user_id
    assert notices[-1] == ("success", "Dados do restaurante atualizados!")


# ---------------------------------------------------------------------------
# Push events and versioning
# ---------------------------------------------------------------------------


def test_stale_push_event_is_ignored(store, seed_table, registry):
    table = seed_table(1)
    store.refresh()

    registry.publish_change(
        "mesas",
        ChangeEvent.UPDATE,
        {**table, "status": "ocupada", "updated_at": "2020-01-01T00:00:00+00:00"},
    )
    assert store.get_table(table["id"]).status is TableStatus.FREE

    registry.publish_change(
        "mesas",
        ChangeEvent.UPDATE,
        {**table, "status": "ocupada", "updated_at": "2030-01-01T00:00:00+00:00"},
    )
    assert store.get_table(table["id"]).status is TableStatus.OCCUPIED


def test_deleted_row_is_not_resurrected_until_refresh(store, seed_table, registry):
    table = seed_table(1)
    store.refresh()

    registry.publish_change("mesas", ChangeEvent.DELETE, None, table)
    registry.publish_change(
        "mesas", ChangeEvent.UPDATE, {**table, "updated_at": "2030-01-01T00:00:00+00:00"}
    )
    assert table["id"] not in store.tables

    store.refresh()
    assert table["id"] in store.tables


def test_push_events_of_other_restaurants_are_ignored(store, registry):
    registry.publish_change(
        "mesas",
        ChangeEvent.INSERT,
        {
            "id": "foreign",
            "restaurante_id": "someone-else",
            "numero": 1,
            "capacidade": 2,
            "updated_at": "2030-01-01T00:00:00+00:00",
        },
    )

    assert "foreign" not in store.tables


def test_push_order_for_unknown_table_is_ignored(store, registry):
    registry.publish_change(
        "comandas",
        ChangeEvent.INSERT,
        {"id": "o1", "mesa_id": "not-mine", "status": "aberta", "valor_total": 0},
    )

    assert "o1" not in store.orders


def test_push_item_is_enriched_for_display(store, seed_table, seed_product, registry):
    table = seed_table(2)
    product = seed_product("Coxinha", "6.00", "Salgados")
    store.refresh()
    order = store.occupy_table(table["id"])

    registry.publish_change(
        "itens_comanda",
        ChangeEvent.INSERT,
        {
            "id": "i1",
            "comanda_id": order.id,
            "produto_id": product["id"],
            "quantidade": 3,
            "preco_unitario": 6.0,
            "status": "pendente",
            "updated_at": "2030-01-01T00:00:00+00:00",
        },
    )

    item = store.items.get("i1")
    assert item.produto_nome == "Coxinha"
    assert item.categoria == "Salgados"
    assert item.mesa_numero == 2


def test_closed_order_push_drops_order_and_items(store, seed_table, seed_product, registry):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    item = store.add_item(table["id"], product["id"])
    order = store.open_order_for_table(table["id"])

    registry.publish_change(
        "comandas",
        ChangeEvent.UPDATE,
        {**order.to_record(), "status": "fechada", "updated_at": "2030-01-01T00:00:00+00:00"},
    )

    assert order.id not in store.orders
    assert item.id not in store.items


@pytest.mark.parametrize("close", ["finalize", "release"])
def test_late_echo_does_not_reopen_a_closed_tab(store, seed_table, seed_product, registry, close):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    item = store.add_item(table["id"], product["id"])
    order = store.open_order_for_table(table["id"])
    stale_order = order.to_record()
    stale_item = store.items.get(item.id).to_record()

    if close == "finalize":
        store.finalize_payment(table["id"], "dinheiro")
    else:
        store.release_table(table["id"])

    registry.publish_change("comandas", ChangeEvent.UPDATE, stale_order)
    registry.publish_change("itens_comanda", ChangeEvent.UPDATE, stale_item)

    assert store.open_order_for_table(table["id"]) is None
    assert order.id not in store.orders
    assert item.id not in store.items
    assert store.get_table(table["id"]).status is TableStatus.FREE

    reopened = store.add_item(table["id"], product["id"])
    assert reopened.comanda_id != order.id


def test_two_stores_converge_through_push_events(make_store, seed_table):
    table = seed_table(1)
    writer = make_store()
    reader = make_store()

    writer.occupy_table(table["id"], waiter="Carlos")

    assert reader.get_table(table["id"]).status is TableStatus.OCCUPIED
    assert reader.open_order_for_table(table["id"]) is not None


def test_stop_releases_subscriptions(make_store, transport):
    store = make_store()
    assert transport.open_count > 0

    store.stop()

    assert transport.open_count == 0


# ---------------------------------------------------------------------------
# Failure reporting
# ---------------------------------------------------------------------------


def test_gateway_failure_notifies_intent_message(store, seed_table, fake_client, notices):
    table = seed_table(1)
    store.refresh()
    fake_client.fail("mesas", "update", _api_error())

    with pytest.raises(GatewayError):
        store.occupy_table(table["id"])

    assert notices[-1] == ("error", "Erro ao ocupar mesa")
    assert store.get_table(table["id"]).status is TableStatus.FREE


def test_transport_failure_notifies_connection_message(store, seed_table, fake_client, notices):
    table = seed_table(1)
    store.refresh()
    fake_client.fail("mesas", "update", httpx.ReadTimeout("timed out"))

    with pytest.raises(TransportError):
        store.occupy_table(table["id"])

    assert notices[-1] == (
        "error",
        "Erro de conexão. Verifique sua internet e tente novamente.",
    )


def test_broken_notifier_does_not_break_intents(gateway, registry, owner, restaurant):
    def notifier(level, text):
        raise RuntimeError("toast failed")

    store = RestaurantStore(gateway, registry=registry, actor=owner, notifier=notifier)
    store.refresh()

    table = store.add_table(1, 2)

    assert table.numero == 1


def test_add_item_on_free_table_reports_once(store, seed_table, seed_product, notices):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    notices.clear()

    store.add_item(table["id"], product["id"])

    assert notices == [("success", "Item adicionado à comanda!")]


def test_add_item_occupy_failure_reports_once(store, seed_table, seed_product, fake_client, notices):
    table = seed_table(1)
    product = seed_product("Pizza", "50.00")
    store.refresh()
    notices.clear()
    fake_client.fail("mesas", "update", _api_error())

    with pytest.raises(GatewayError):
        store.add_item(table["id"], product["id"])

    assert notices == [("error", "Erro ao adicionar item")]


def test_intents_before_loading_report_a_validation_error(gateway, registry, owner):
    notices = []
    store = RestaurantStore(
        gateway,
        registry=registry,
        actor=owner,
        notifier=lambda level, text: notices.append((level, text)),
    )

    with pytest.raises(ValidationError):
        store.add_table(1, 4)

    assert notices == [("error", "Dados do restaurante ainda não foram carregados")]
