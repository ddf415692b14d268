"""
Payments API - Conta da mesa e fechamento
"""

from flask import Blueprint, jsonify, request

from comanda_shared.error_catalog import message
from comanda_shared.jwt_middleware import get_current_actor, login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import BillRequest, FinalizePaymentRequest
from comanda_shared.serializers import success_response
from comanda_shared.supabase.errors import GatewayError

from comanda_app.extensions import current_store, get_services

payments_bp = Blueprint("payments", __name__)
logger = get_logger(__name__)


@payments_bp.post("/tables/<table_id>/bill")
@login_required
def bill_for_table(table_id: str):
    """
    Calcula a conta da mesa sem gravar nada.

    Body: {taxa_servico, couvert, desconto_tipo (percent|amount), desconto_valor}
    """
    data = BillRequest(**(request.get_json(silent=True) or {}))
    bill = current_store().bill_for_table(
        table_id,
        service_fee=data.taxa_servico,
        cover_charge=data.couvert,
        discount_type=data.desconto_tipo,
        discount_value=data.desconto_valor,
    )
    return jsonify(success_response(bill))


@payments_bp.post("/tables/<table_id>/payment")
@login_required
def finalize_payment(table_id: str):
    """
    Fecha a conta: registra a venda, fecha a comanda e libera a mesa numa
    única transação no banco.

    Body: {forma_pagamento: pix|dinheiro|cartao}
    """
    data = FinalizePaymentRequest(**(request.get_json(silent=True) or {}))
    actor = get_current_actor()
    result = current_store().finalize_payment(table_id, data.forma_pagamento, actor)

    amount = result.sale.get("valor_total")
    if amount is not None:
        try:
            get_services().notifications.send_payment_notification(
                actor.user_id, amount, data.forma_pagamento.value
            )
        except GatewayError as exc:
            logger.warning(f"Payment notification failed for table {table_id}: {exc}")

    return jsonify(
        success_response(
            {"venda": result.sale, "mesa": result.table, "comanda": result.order},
            message("payment_finalized"),
        )
    )
