"""
Cash registers operated per person.

Each operator (the owner or a staff login) opens a register with a starting
float, records money going in and out during the shift and closes it with
the counted amount. ``valor_sistema`` is what the register should hold:
the starting float plus entries minus withdrawals. The difference between the
counted and the expected amount is reported per register and per operator.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from zoneinfo import ZoneInfo

from comanda_shared.constants import (
    CashMovementType,
    CashRegisterStatus,
    OperatorType,
    PaymentMethod,
    Tables,
)
from comanda_shared.logging_config import get_logger
from comanda_shared.services.reports_service import REPORT_TIMEZONE
from comanda_shared.services.state_machine import StateTransitionError
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.validation import (
    ValidationError,
    validate_choice,
    validate_money,
    validate_period,
    validate_required,
)

logger = get_logger(__name__)

CENTS = Decimal("0.01")
MOVEMENT_TYPES = {member.value for member in CashMovementType}
OPERATOR_TYPES = {member.value for member in OperatorType}
PAYMENT_METHODS = {member.value for member in PaymentMethod}


def _amount(value: Any) -> Decimal:
    return Decimal(str(value or 0))


def _money(value: Decimal) -> float:
    return float(value.quantize(CENTS, ROUND_HALF_UP))


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _get_register(gateway: SupabaseGateway, restaurant_id: str, register_id: str) -> dict:
    return gateway.read_one(
        Tables.CASH_REGISTERS, {"id": register_id, "restaurante_id": restaurant_id}
    )


def _require_open(register: dict, target: CashRegisterStatus) -> None:
    if register.get("status") != CashRegisterStatus.OPEN.value:
        raise StateTransitionError(
            "Este caixa já está fechado", register.get("status"), target.value
        )


def get_open_register(
    gateway: SupabaseGateway, restaurant_id: str, operator_id: str | None = None
) -> dict | None:
    """The open register of ``operator_id``, or any open one when no operator is given."""
    rows = gateway.read(
        Tables.CASH_REGISTERS,
        {
            "restaurante_id": restaurant_id,
            "status": CashRegisterStatus.OPEN.value,
            "operador_id": operator_id,
        },
        order_by="data_abertura",
        descending=True,
        limit=1,
    )
    return rows[0] if rows else None


def list_open_registers(gateway: SupabaseGateway, restaurant_id: str) -> list[dict]:
    return gateway.read(
        Tables.CASH_REGISTERS,
        {"restaurante_id": restaurant_id, "status": CashRegisterStatus.OPEN.value},
        order_by="data_abertura",
        descending=True,
    )


def open_register(
    gateway: SupabaseGateway,
    restaurant_id: str,
    operator_id: str,
    operator_name: str,
    operator_type: OperatorType | str,
    initial_amount: Decimal | float | str,
    now: datetime | None = None,
) -> dict:
    """Open a register for an operator; one open register per operator."""
    validate_required(operator_id, "Operador")
    validate_required(operator_name, "Nome do operador")
    operator_type = validate_choice(
        getattr(operator_type, "value", operator_type), OPERATOR_TYPES, "Tipo de operador"
    )
    initial = validate_money(initial_amount, "Valor inicial", allow_zero=True)

    if get_open_register(gateway, restaurant_id, operator_id) is not None:
        raise ValidationError("Este operador já possui um caixa aberto")

    register = gateway.create(
        Tables.CASH_REGISTERS,
        {
            "restaurante_id": restaurant_id,
            "operador_id": operator_id,
            "operador_nome": operator_name,
            "operador_tipo": operator_type,
            "valor_inicial": initial,
            "valor_sistema": initial,
            "status": CashRegisterStatus.OPEN.value,
            "data_abertura": (now or datetime.now(UTC)).isoformat(),
        },
    )
    logger.info(
        "Cash register opened",
        extra={"restaurant_id": restaurant_id, "register_id": register["id"]},
    )
    return register


def close_register(
    gateway: SupabaseGateway,
    restaurant_id: str,
    register_id: str,
    final_amount: Decimal | float | str,
    note: str | None = None,
    now: datetime | None = None,
) -> dict:
    counted = validate_money(final_amount, "Valor final", allow_zero=True)
    register = _get_register(gateway, restaurant_id, register_id)
    _require_open(register, CashRegisterStatus.CLOSED)

    closed = gateway.update(
        Tables.CASH_REGISTERS,
        register_id,
        {
            "status": CashRegisterStatus.CLOSED.value,
            "valor_final": counted,
            "data_fechamento": (now or datetime.now(UTC)).isoformat(),
            "observacao": note,
        },
        scope={"restaurante_id": restaurant_id},
    )
    logger.info(
        "Cash register closed",
        extra={"restaurant_id": restaurant_id, "register_id": register_id},
    )
    return closed


def add_movement(
    gateway: SupabaseGateway,
    restaurant_id: str,
    register_id: str,
    kind: CashMovementType | str,
    amount: Decimal | float | str,
    reason: str,
    user_id: str,
    note: str | None = None,
    payment_method: PaymentMethod | str | None = None,
) -> dict:
    """
    Record money going in or out of an open register and refresh its
    expected amount from every movement stored so far.
    """
    kind = validate_choice(getattr(kind, "value", kind), MOVEMENT_TYPES, "Tipo de movimentação")
    value = validate_money(amount, "Valor")
    validate_required(reason, "Motivo")
    if payment_method is not None:
        payment_method = validate_choice(
            getattr(payment_method, "value", payment_method), PAYMENT_METHODS, "Forma de pagamento"
        )

    register = _get_register(gateway, restaurant_id, register_id)
    _require_open(register, CashRegisterStatus.OPEN)

    movement = gateway.create(
        Tables.CASH_MOVEMENTS,
        {
            "caixa_operador_id": register_id,
            "tipo": kind,
            "valor": value,
            "motivo": reason.strip(),
            "observacao": note,
            "forma_pagamento": payment_method,
            "usuario_id": user_id,
        },
    )

    entries, withdrawals = _totals(gateway.get_cash_movements(register_id))
    expected = _amount(register.get("valor_inicial")) + entries - withdrawals
    gateway.update(
        Tables.CASH_REGISTERS,
        register_id,
        {"valor_sistema": expected},
        scope={"restaurante_id": restaurant_id},
    )
    return movement


def list_movements(gateway: SupabaseGateway, restaurant_id: str, register_id: str) -> list[dict]:
    _get_register(gateway, restaurant_id, register_id)
    return gateway.get_cash_movements(register_id)


def _totals(movements: list[dict]) -> tuple[Decimal, Decimal]:
    entries = Decimal("0")
    withdrawals = Decimal("0")
    for movement in movements:
        if movement.get("tipo") == CashMovementType.IN.value:
            entries += _amount(movement.get("valor"))
        elif movement.get("tipo") == CashMovementType.OUT.value:
            withdrawals += _amount(movement.get("valor"))
    return entries, withdrawals


def _hours_open(register: dict) -> float | None:
    opened = register.get("data_abertura")
    closed = register.get("data_fechamento")
    if not opened or not closed:
        return None
    elapsed = _parse_timestamp(closed) - _parse_timestamp(opened)
    hours = Decimal(elapsed.total_seconds()) / 3600
    return float(hours.quantize(CENTS, ROUND_HALF_UP))


def registers_by_period(
    gateway: SupabaseGateway,
    restaurant_id: str,
    start: date | str,
    end: date | str,
    tz: ZoneInfo = REPORT_TIMEZONE,
) -> list[dict[str, Any]]:
    """
    Registers opened during an inclusive period of local days, newest first,
    each with its movements and computed totals.
    """
    start_day, end_day = validate_period(start, end)
    period_start = datetime.combine(start_day, datetime.min.time(), tzinfo=tz)
    period_end = datetime.combine(end_day + timedelta(days=1), datetime.min.time(), tzinfo=tz)

    report = []
    for register in gateway.get_cash_registers_by_period(
        restaurant_id, period_start.isoformat(), period_end.isoformat()
    ):
        movements = gateway.get_cash_movements(register["id"])
        entries, withdrawals = _totals(movements)
        balance = _amount(register.get("valor_inicial")) + entries - withdrawals
        final = register.get("valor_final")
        report.append(
            {
                **register,
                "movimentacoes": movements,
                "entradas_total": _money(entries),
                "saidas_total": _money(withdrawals),
                "saldo_calculado": _money(balance),
                "diferenca": _money(_amount(final) - balance) if final is not None else None,
                "tempo_operacao_horas": _hours_open(register),
            }
        )
    return report


def operator_report(
    gateway: SupabaseGateway,
    restaurant_id: str,
    start: date | str,
    end: date | str,
    tz: ZoneInfo = REPORT_TIMEZONE,
) -> list[dict[str, Any]]:
    """Per operator totals over the registers opened in the period, by name."""
    grouped: dict[str, list[dict[str, Any]]] = {}
    for register in registers_by_period(gateway, restaurant_id, start, end, tz=tz):
        grouped.setdefault(register["operador_id"], []).append(register)

    report = []
    for operator_id, registers in grouped.items():
        closed = [
            register
            for register in registers
            if register.get("status") == CashRegisterStatus.CLOSED.value
        ]
        differences = [
            register["diferenca"] for register in closed if register["diferenca"] is not None
        ]
        hours = [
            register["tempo_operacao_horas"]
            for register in closed
            if register["tempo_operacao_horas"] is not None
        ]
        report.append(
            {
                "operador_id": operator_id,
                "operador_nome": registers[0].get("operador_nome"),
                "operador_tipo": registers[0].get("operador_tipo"),
                "total_caixas": len(registers),
                "caixas_fechados": len(closed),
                "total_entradas": _money(
                    sum((Decimal(str(r["entradas_total"])) for r in registers), Decimal("0"))
                ),
                "total_saidas": _money(
                    sum((Decimal(str(r["saidas_total"])) for r in registers), Decimal("0"))
                ),
                "total_diferencas": _money(
                    sum((Decimal(str(d)) for d in differences), Decimal("0"))
                ),
                "media_tempo_operacao": (
                    float(
                        (Decimal(str(sum(hours))) / len(hours)).quantize(CENTS, ROUND_HALF_UP)
                    )
                    if hours
                    else 0.0
                ),
                "maior_diferenca": max(differences) if differences else 0.0,
                "menor_diferenca": min(differences) if differences else 0.0,
            }
        )
    report.sort(key=lambda entry: (entry["operador_nome"] or "").lower())
    return report
