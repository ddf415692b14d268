"""
Cost of goods sold (CMV) per product and period.

The database procedure computes quantity sold, revenue, cost, margin and the
CMV percentage; the result is stored in ``cmv_produtos`` keyed by restaurant,
product and period so recalculating the same period overwrites the record.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from comanda_shared.constants import Tables
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.validation import validate_money, validate_period, validate_required

logger = logging.getLogger(__name__)

CMV_CONFLICT_COLUMNS = "restaurante_id,produto_id,periodo_inicio,periodo_fim"

RESULT_FIELDS = (
    "quantidade_vendida",
    "receita_total",
    "custo_total",
    "margem_lucro",
    "percentual_cmv",
)


def _period(period_start: date | str, period_end: date | str) -> tuple[str, str]:
    start, end = validate_period(period_start, period_end)
    return start.isoformat(), end.isoformat()


def save_product_cmv(
    gateway: SupabaseGateway,
    restaurant_id: str,
    product_id: str,
    unit_cost: Decimal | float | str,
    period_start: date | str,
    period_end: date | str,
    record_id: str | None = None,
) -> dict[str, Any]:
    """
    Calculate and store the CMV of one product for a period.

    With ``record_id`` the existing record is updated in place; otherwise
    the record is upserted on (restaurant, product, period).
    """
    validate_required(product_id, "Produto")
    cost = validate_money(unit_cost, "Custo unitário", allow_zero=True)
    start, end = _period(period_start, period_end)

    result = gateway.calculate_cmv(restaurant_id, product_id, cost, start, end)
    record = {
        "restaurante_id": restaurant_id,
        "produto_id": product_id,
        "custo_unitario": cost,
        "periodo_inicio": start,
        "periodo_fim": end,
        **{field: result.get(field) for field in RESULT_FIELDS},
        "ativo": True,
    }
    if record_id:
        saved = gateway.update(
            Tables.CMV_PRODUCTS, record_id, record, scope={"restaurante_id": restaurant_id}
        )
    else:
        saved = gateway.upsert(Tables.CMV_PRODUCTS, record, on_conflict=CMV_CONFLICT_COLUMNS)

    logger.info(
        "CMV saved",
        extra={
            "restaurant_id": restaurant_id,
            "product_id": product_id,
            "periodo_inicio": start,
            "periodo_fim": end,
        },
    )
    return saved


def get_cmv_report(
    gateway: SupabaseGateway,
    restaurant_id: str,
    period_start: date | str,
    period_end: date | str,
) -> dict[str, Any]:
    """Stored CMV rows for the period plus totals and each product's share of cost."""
    start, end = _period(period_start, period_end)

    rows = gateway.get_cmv_report(restaurant_id, start, end)
    total_cost = sum((Decimal(str(row.get("custo_total") or 0)) for row in rows), Decimal("0"))
    total_revenue = sum(
        (Decimal(str(row.get("receita_total") or 0)) for row in rows), Decimal("0")
    )
    products = []
    for row in rows:
        cost = Decimal(str(row.get("custo_total") or 0))
        share = (cost / total_cost * 100) if total_cost > 0 else Decimal("0")
        products.append({**row, "participacao_custo": float(round(share, 2))})

    return {
        "periodo_inicio": start,
        "periodo_fim": end,
        "produtos": products,
        "custo_total": float(total_cost),
        "receita_total": float(total_revenue),
        "percentual_cmv": float(round(total_cost / total_revenue * 100, 2))
        if total_revenue > 0
        else 0.0,
    }


def delete_product_cmv(gateway: SupabaseGateway, restaurant_id: str, record_id: str) -> None:
    gateway.delete(Tables.CMV_PRODUCTS, record_id, scope={"restaurante_id": restaurant_id})
