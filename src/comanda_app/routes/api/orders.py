"""
Orders API - Comandas, itens e fila da cozinha
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.error_catalog import message
from comanda_shared.jwt_middleware import login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import AddItemRequest, UpdateItemStatusRequest
from comanda_shared.serializers import success_response

from comanda_app.extensions import current_store

orders_bp = Blueprint("orders", __name__)
logger = get_logger(__name__)


@orders_bp.get("/orders")
@login_required
def list_open_orders():
    """Open orders with their active and finished items."""
    store = current_store()
    orders = [
        {
            **order.to_record(),
            "itens": [item.to_record() for item in store.items_for_order(order.id)],
        }
        for order in store.orders.values()
    ]
    return jsonify(success_response(orders))


@orders_bp.post("/tables/<table_id>/orders")
@login_required
def create_order(table_id: str):
    """Open an order for the table, or return the one already open."""
    order = current_store().create_order(table_id)
    return jsonify(success_response(order, message("order_created"))), HTTPStatus.CREATED


@orders_bp.post("/orders/items")
@login_required
def add_item():
    """
    Adiciona um produto à comanda aberta da mesa.

    Body: {mesa_id, produto_id, quantidade (padrão 1), observacao}
    """
    data = AddItemRequest(**(request.get_json(silent=True) or {}))
    item = current_store().add_item(
        data.mesa_id, data.produto_id, data.quantidade, data.observacao
    )
    return jsonify(success_response(item, message("item_added"))), HTTPStatus.CREATED


@orders_bp.delete("/orders/items/<item_id>")
@login_required
def remove_item(item_id: str):
    current_store().remove_item(item_id)
    return jsonify(success_response({"id": item_id}, message("item_removed")))


@orders_bp.patch("/orders/items/<item_id>/status")
@login_required
def update_item_status(item_id: str):
    data = UpdateItemStatusRequest(**(request.get_json(silent=True) or {}))
    item = current_store().update_item_status(item_id, data.status)
    return jsonify(
        success_response(item, message("item_status_updated", status=item.status.value))
    )


@orders_bp.post("/orders/items/<item_id>/advance")
@login_required
def advance_item(item_id: str):
    item = current_store().advance_item(item_id)
    return jsonify(
        success_response(item, message("item_status_updated", status=item.status.value))
    )


@orders_bp.get("/kitchen/queue")
@login_required
def kitchen_queue():
    return jsonify(success_response(current_store().kitchen_queue()))
