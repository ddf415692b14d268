"""
Tables API - Gestão das mesas do salão

Abertura, liberação, pedido de conta e exclusão de mesas. Toda mudança
passa pela loja de estado do restaurante, que grava no banco e mantém a
visão local sincronizada.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.constants import TableStatus
from comanda_shared.error_catalog import message
from comanda_shared.jwt_middleware import login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import AddTableRequest, OccupyTableRequest
from comanda_shared.serializers import error_response, success_response

from comanda_app.extensions import current_store

tables_bp = Blueprint("tables", __name__)
logger = get_logger(__name__)

STATUS_FILTER_ALL = "todos"


def _table_view(store, table) -> dict:
    order = store.open_order_for_table(table.id)
    return {
        **table.to_record(),
        "comanda_id": order.id if order else None,
        "itens": [item.to_record() for item in store.items_for_table(table.id)],
    }


@tables_bp.get("/tables")
@login_required
def list_tables():
    """
    Lista as mesas com a comanda aberta e os itens de cada uma.

    Query params:
    - status: livre, ocupada, aguardando ou todos (padrão)
    """
    status = request.args.get("status", STATUS_FILTER_ALL)
    if status != STATUS_FILTER_ALL and status not in {value.value for value in TableStatus}:
        return jsonify(error_response(f"Status inválido: {status}")), HTTPStatus.BAD_REQUEST

    store = current_store()
    tables = store.tables.values()
    if status != STATUS_FILTER_ALL:
        tables = [table for table in tables if table.status.value == status]
    return jsonify(success_response([_table_view(store, table) for table in tables]))


@tables_bp.get("/tables/<table_id>")
@login_required
def get_table(table_id: str):
    store = current_store()
    return jsonify(success_response(_table_view(store, store.get_table(table_id))))


@tables_bp.post("/tables")
@login_required
def add_table():
    """
    Cria uma mesa livre.

    Body: {numero: int >= 1, capacidade: int >= 1}
    """
    data = AddTableRequest(**(request.get_json(silent=True) or {}))
    table = current_store().add_table(data.numero, data.capacidade)
    return jsonify(
        success_response(table, message("table_added", numero=table.numero))
    ), HTTPStatus.CREATED


@tables_bp.post("/tables/<table_id>/occupy")
@login_required
def occupy_table(table_id: str):
    data = OccupyTableRequest(**(request.get_json(silent=True) or {}))
    store = current_store()
    order = store.occupy_table(table_id, data.garcom)
    return jsonify(
        success_response(
            {"mesa": store.get_table(table_id), "comanda": order}, message("table_occupied")
        )
    )


@tables_bp.post("/tables/<table_id>/release")
@login_required
def release_table(table_id: str):
    table = current_store().release_table(table_id)
    return jsonify(success_response(table, message("table_released")))


@tables_bp.post("/tables/<table_id>/request-payment")
@login_required
def request_payment(table_id: str):
    table = current_store().request_payment(table_id)
    return jsonify(success_response(table, message("payment_requested")))


@tables_bp.delete("/tables/<table_id>")
@login_required
def delete_table(table_id: str):
    current_store().delete_table(table_id)
    logger.info(f"Table {table_id} deleted")
    return jsonify(success_response({"id": table_id}, message("table_deleted")))
