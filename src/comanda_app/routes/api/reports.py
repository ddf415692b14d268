"""
Reports API - Dashboard, vendas, garçons, produtos mais vendidos, estoque e CMV
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.constants import DEFAULT_TOP_PRODUCTS_LIMIT
from comanda_shared.error_catalog import message
from comanda_shared.jwt_middleware import admin_required, login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import CmvRequest
from comanda_shared.serializers import error_response, success_response
from comanda_shared.services import cmv_service, reports_service

from comanda_app.extensions import current_restaurant_id, current_store, get_gateway

reports_bp = Blueprint("reports", __name__)
logger = get_logger(__name__)


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return 0


@reports_bp.get("/reports/dashboard")
@login_required
def dashboard():
    data = reports_service.dashboard(get_gateway(), current_restaurant_id())
    return jsonify(success_response(data))


@reports_bp.get("/reports/sales-by-day")
@login_required
def sales_by_day():
    """Query params: days (padrão 7)"""
    days = _int_arg("days", 7)
    if days < 1:
        return jsonify(error_response("days deve ser um inteiro positivo")), HTTPStatus.BAD_REQUEST
    report = reports_service.sales_by_day(get_gateway(), current_restaurant_id(), days=days)
    return jsonify(success_response(report))


@reports_bp.get("/reports/top-products")
@login_required
def top_products():
    """Query params: limit (padrão 10), days (padrão 30)"""
    limit = _int_arg("limit", DEFAULT_TOP_PRODUCTS_LIMIT)
    days = _int_arg("days", 30)
    if limit < 1 or days < 1:
        return jsonify(
            error_response("limit e days devem ser inteiros positivos")
        ), HTTPStatus.BAD_REQUEST
    report = reports_service.top_products(
        get_gateway(), current_restaurant_id(), limit=limit, days=days
    )
    return jsonify(success_response(report))


@reports_bp.get("/reports/stock-alerts")
@login_required
def stock_alerts():
    return jsonify(
        success_response(reports_service.stock_alerts(get_gateway(), current_restaurant_id()))
    )


@reports_bp.get("/reports/sales")
@login_required
def sales_report():
    """Query params: inicio, fim (YYYY-MM-DD)"""
    start = request.args.get("inicio")
    end = request.args.get("fim")
    if not start or not end:
        return jsonify(error_response("inicio e fim são obrigatórios")), HTTPStatus.BAD_REQUEST
    report = reports_service.sales_report(get_gateway(), current_restaurant_id(), start, end)
    return jsonify(success_response(report))


@reports_bp.get("/reports/waiters")
@admin_required
def waiter_report():
    """Query params: inicio, fim (YYYY-MM-DD)"""
    start = request.args.get("inicio")
    end = request.args.get("fim")
    if not start or not end:
        return jsonify(error_response("inicio e fim são obrigatórios")), HTTPStatus.BAD_REQUEST
    store = current_store()
    report = reports_service.waiter_report(get_gateway(), store.restaurant, start, end)
    return jsonify(success_response(report))


@reports_bp.get("/reports/employees/<employee_user_id>/diagnostics")
@admin_required
def employee_diagnostics(employee_user_id: str):
    return jsonify(
        success_response(reports_service.employee_diagnostics(get_gateway(), employee_user_id))
    )


# ---------------------------------------------------------------------------
# CMV
# ---------------------------------------------------------------------------


@reports_bp.get("/cmv")
@login_required
def cmv_report():
    """Query params: inicio, fim (YYYY-MM-DD)"""
    start = request.args.get("inicio")
    end = request.args.get("fim")
    if not start or not end:
        return jsonify(error_response("inicio e fim são obrigatórios")), HTTPStatus.BAD_REQUEST
    report = cmv_service.get_cmv_report(get_gateway(), current_restaurant_id(), start, end)
    return jsonify(success_response(report))


@reports_bp.post("/cmv")
@login_required
def save_cmv():
    data = CmvRequest(**(request.get_json(silent=True) or {}))
    record = cmv_service.save_product_cmv(
        get_gateway(),
        current_restaurant_id(),
        data.produto_id,
        data.custo_unitario,
        data.periodo_inicio,
        data.periodo_fim,
    )
    return jsonify(success_response(record, message("cmv_saved"))), HTTPStatus.CREATED


@reports_bp.put("/cmv/<record_id>")
@login_required
def update_cmv(record_id: str):
    data = CmvRequest(**(request.get_json(silent=True) or {}))
    record = cmv_service.save_product_cmv(
        get_gateway(),
        current_restaurant_id(),
        data.produto_id,
        data.custo_unitario,
        data.periodo_inicio,
        data.periodo_fim,
        record_id=record_id,
    )
    return jsonify(success_response(record, message("cmv_saved")))


@reports_bp.delete("/cmv/<record_id>")
@login_required
def delete_cmv(record_id: str):
    cmv_service.delete_product_cmv(get_gateway(), current_restaurant_id(), record_id)
    logger.info(f"CMV record {record_id} deleted")
    return jsonify(success_response({"id": record_id}))
