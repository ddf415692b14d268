"""
Cash Registers API - Abertura, fechamento e movimentações de caixa

Cada usuário opera o próprio caixa; o dono da conta consulta todos os caixas
abertos e os relatórios por período e por operador.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.constants import OperatorType
from comanda_shared.error_catalog import message
from comanda_shared.jwt_middleware import admin_required, get_current_actor, login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import (
    CashMovementRequest,
    CloseCashRegisterRequest,
    OpenCashRegisterRequest,
)
from comanda_shared.serializers import error_response, success_response
from comanda_shared.services import cash_register_service

from comanda_app.extensions import current_restaurant_id, get_gateway

cash_registers_bp = Blueprint("cash_registers", __name__)
logger = get_logger(__name__)


def _period_args():
    start = request.args.get("inicio")
    end = request.args.get("fim")
    if not start or not end:
        return None
    return start, end


@cash_registers_bp.get("/cash-registers/current")
@login_required
def current_register():
    """O caixa aberto do usuário logado, ou null."""
    register = cash_register_service.get_open_register(
        get_gateway(), current_restaurant_id(), get_current_actor().user_id
    )
    return jsonify(success_response(register))


@cash_registers_bp.get("/cash-registers/open")
@admin_required
def open_registers():
    return jsonify(
        success_response(
            cash_register_service.list_open_registers(get_gateway(), current_restaurant_id())
        )
    )


@cash_registers_bp.post("/cash-registers")
@login_required
def open_register():
    data = OpenCashRegisterRequest(**(request.get_json(silent=True) or {}))
    actor = get_current_actor()
    register = cash_register_service.open_register(
        get_gateway(),
        current_restaurant_id(),
        actor.user_id,
        actor.display_name,
        OperatorType.USER if actor.is_admin else OperatorType.EMPLOYEE,
        data.valor_inicial,
    )
    return jsonify(success_response(register, message("cash_register_opened"))), HTTPStatus.CREATED


@cash_registers_bp.post("/cash-registers/<register_id>/close")
@login_required
def close_register(register_id: str):
    data = CloseCashRegisterRequest(**(request.get_json(silent=True) or {}))
    register = cash_register_service.close_register(
        get_gateway(), current_restaurant_id(), register_id, data.valor_final, data.observacao
    )
    return jsonify(success_response(register, message("cash_register_closed")))


@cash_registers_bp.get("/cash-registers/<register_id>/movements")
@login_required
def list_movements(register_id: str):
    movements = cash_register_service.list_movements(
        get_gateway(), current_restaurant_id(), register_id
    )
    return jsonify(success_response(movements))


@cash_registers_bp.post("/cash-registers/<register_id>/movements")
@login_required
def add_movement(register_id: str):
    """Body: tipo (entrada|saida), valor, motivo, observacao, forma_pagamento"""
    data = CashMovementRequest(**(request.get_json(silent=True) or {}))
    movement = cash_register_service.add_movement(
        get_gateway(),
        current_restaurant_id(),
        register_id,
        data.tipo,
        data.valor,
        data.motivo,
        get_current_actor().user_id,
        note=data.observacao,
        payment_method=data.forma_pagamento,
    )
    return jsonify(
        success_response(movement, message("cash_movement_added"))
    ), HTTPStatus.CREATED


@cash_registers_bp.get("/cash-registers")
@admin_required
def registers_by_period():
    """Query params: inicio, fim (YYYY-MM-DD)"""
    period = _period_args()
    if period is None:
        return jsonify(error_response("inicio e fim são obrigatórios")), HTTPStatus.BAD_REQUEST
    report = cash_register_service.registers_by_period(
        get_gateway(), current_restaurant_id(), *period
    )
    return jsonify(success_response(report))


@cash_registers_bp.get("/cash-registers/operators")
@admin_required
def operator_report():
    """Query params: inicio, fim (YYYY-MM-DD)"""
    period = _period_args()
    if period is None:
        return jsonify(error_response("inicio e fim são obrigatórios")), HTTPStatus.BAD_REQUEST
    report = cash_register_service.operator_report(
        get_gateway(), current_restaurant_id(), *period
    )
    return jsonify(success_response(report))
