"""
Reports for the back office dashboard and the reports page.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from zoneinfo import ZoneInfo

from comanda_shared.constants import DEFAULT_TOP_PRODUCTS_LIMIT, SALES_REPORT_DAYS, EmployeeRole
from comanda_shared.rows import Restaurant
from comanda_shared.services import employee_service
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.validation import validate_period

logger = logging.getLogger(__name__)

REPORT_TIMEZONE = ZoneInfo("America/Sao_Paulo")
CENTS = Decimal("0.01")


def _money(value: Decimal) -> float:
    return float(value.quantize(CENTS, ROUND_HALF_UP))


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def sales_by_day(
    gateway: SupabaseGateway,
    restaurant_id: str,
    today: date | None = None,
    days: int = SALES_REPORT_DAYS,
    tz: ZoneInfo = REPORT_TIMEZONE,
) -> list[dict[str, Any]]:
    """
    Completed sales grouped per local calendar day, newest first.

    Every day of the window appears, with zeros where nothing was sold.
    """
    today = today or datetime.now(tz).date()
    first_day = today - timedelta(days=days - 1)
    start = datetime.combine(first_day, datetime.min.time(), tzinfo=tz)
    end = datetime.combine(today + timedelta(days=1), datetime.min.time(), tzinfo=tz)

    sales = gateway.get_sales_by_period(restaurant_id, start.isoformat(), end.isoformat())

    buckets: OrderedDict[date, list[Decimal]] = OrderedDict(
        (today - timedelta(days=offset), []) for offset in range(days)
    )
    for sale in sales:
        created = sale.get("created_at")
        if not created:
            continue
        day = _parse_timestamp(created).astimezone(tz).date()
        if day in buckets:
            buckets[day].append(Decimal(str(sale.get("valor_total") or 0)))

    report = []
    for day, amounts in buckets.items():
        total = sum(amounts, Decimal("0"))
        report.append(
            {
                "data": day.isoformat(),
                "total_vendas": _money(total),
                "quantidade_pedidos": len(amounts),
                "ticket_medio": _money(total / len(amounts)) if amounts else 0.0,
            }
        )
    return report


def top_products(
    gateway: SupabaseGateway,
    restaurant_id: str,
    limit: int = DEFAULT_TOP_PRODUCTS_LIMIT,
    days: int = 30,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Best sellers by quantity with each product's share of the listed revenue."""
    since = (now or datetime.now(UTC)) - timedelta(days=days)
    rows = gateway.get_sold_items_since(restaurant_id, since.isoformat())

    stats: dict[str, dict[str, Any]] = {}
    for row in rows:
        product = row.get("produto") or {}
        entry = stats.setdefault(
            row["produto_id"],
            {
                "id": row["produto_id"],
                "nome": product.get("nome"),
                "categoria": product.get("categoria"),
                "quantidade": 0,
                "valor": Decimal("0"),
            },
        )
        quantity = int(row.get("quantidade") or 0)
        entry["quantidade"] += quantity
        entry["valor"] += Decimal(str(row.get("preco_unitario") or 0)) * quantity

    ranked = sorted(stats.values(), key=lambda entry: entry["quantidade"], reverse=True)[:limit]
    total = sum((entry["valor"] for entry in ranked), Decimal("0"))
    return [
        {
            **entry,
            "valor": _money(entry["valor"]),
            "percentual": _money(entry["valor"] / total * 100) if total > 0 else 0.0,
        }
        for entry in ranked
    ]


def stock_alerts(gateway: SupabaseGateway, restaurant_id: str) -> list[dict[str, Any]]:
    return gateway.get_stock_alerts(restaurant_id)


def dashboard(gateway: SupabaseGateway, restaurant_id: str) -> dict[str, Any]:
    """Aggregate counters from the database plus this week's best sellers and stock alerts."""
    data = dict(gateway.get_dashboard_data(restaurant_id))
    data["produtos_mais_vendidos"] = top_products(gateway, restaurant_id, days=7)
    data["alertas_estoque"] = stock_alerts(gateway, restaurant_id)
    return data


def sales_report(
    gateway: SupabaseGateway, restaurant_id: str, start: date | str, end: date | str
) -> list[dict[str, Any]]:
    start_day, end_day = validate_period(start, end)
    return gateway.get_sales_report(restaurant_id, start_day.isoformat(), end_day.isoformat())


def waiter_report(
    gateway: SupabaseGateway,
    restaurant: Restaurant,
    start: date | str,
    end: date | str,
    tz: ZoneInfo = REPORT_TIMEZONE,
) -> list[dict[str, Any]]:
    """
    Completed sales per active waiter over an inclusive period of local days.

    A sale belongs to the waiter whose login closed it (``vendas.usuario_id``).
    ``percentual`` is each waiter's share of the listed total; best seller first.
    """
    start_day, end_day = validate_period(start, end)
    profile = employee_service.get_company_profile(gateway, restaurant.user_id)
    if profile is None:
        return []
    waiters = [
        row
        for row in gateway.get_employees_by_company(profile["id"])
        if row.get("role") == EmployeeRole.WAITER.value and row.get("active", True)
    ]
    if not waiters:
        return []

    period_start = datetime.combine(start_day, datetime.min.time(), tzinfo=tz)
    period_end = datetime.combine(end_day + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    sales = gateway.get_sales_by_period(
        restaurant.id, period_start.isoformat(), period_end.isoformat()
    )

    by_user: dict[str, list[dict[str, Any]]] = {}
    for sale in sales:
        by_user.setdefault(sale.get("usuario_id"), []).append(sale)

    entries = []
    for waiter in waiters:
        own = by_user.get(waiter.get("auth_user_id"), []) if waiter.get("auth_user_id") else []
        entries.append(
            {
                "id": waiter["id"],
                "nome": waiter.get("name"),
                "vendas": len(own),
                "total": sum(
                    (Decimal(str(sale.get("valor_total") or 0)) for sale in own), Decimal("0")
                ),
                "mesas": len({sale["mesa_id"] for sale in own if sale.get("mesa_id")}),
            }
        )

    grand_total = sum((entry["total"] for entry in entries), Decimal("0"))
    entries.sort(key=lambda entry: entry["total"], reverse=True)
    logger.info(
        "Waiter report built",
        extra={"restaurant_id": restaurant.id, "waiters": len(entries)},
    )
    return [
        {
            **entry,
            "total": _money(entry["total"]),
            "percentual": (
                int((entry["total"] / grand_total * 100).quantize(Decimal("1"), ROUND_HALF_UP))
                if grand_total > 0
                else 0
            ),
        }
        for entry in entries
    ]


def employee_diagnostics(gateway: SupabaseGateway, employee_user_id: str) -> dict[str, Any]:
    """Access introspection for a staff login; admin only at the route layer."""
    logger.info("Running employee diagnostics", extra={"employee_user_id": employee_user_id})
    return gateway.run_employee_diagnostics(employee_user_id)
