"""
Input validation utilities.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


def validate_required(value: Any, field_label: str) -> None:
    """Reject None and blank strings."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_label} é obrigatório")


def validate_positive_int(value: Any, field_label: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_label} deve ser um número inteiro")
    if number <= 0:
        raise ValidationError(f"{field_label} deve ser maior que zero")
    return number


def validate_money(value: Any, field_label: str, allow_zero: bool = False) -> Decimal:
    """
    Parse a monetary value into a Decimal.

    Zero is rejected unless ``allow_zero`` is set; negatives always are.
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field_label} inválido")
    if not amount.is_finite():
        raise ValidationError(f"{field_label} inválido")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field_label} inválido")
    return amount


def validate_choice(value: Any, allowed: set, field_label: str) -> str:
    if value not in allowed:
        options = ", ".join(sorted(allowed))
        raise ValidationError(f"{field_label} inválido: {value}. Opções: {options}")
    return value


def validate_period(start: Any, end: Any) -> tuple[date, date]:
    """Parse an inclusive pair of ISO dates; extra time parts are ignored."""
    try:
        start_day = date.fromisoformat(str(start)[:10])
        end_day = date.fromisoformat(str(end)[:10])
    except ValueError as exc:
        raise ValidationError(f"Data inválida: {exc}")
    if end_day < start_day:
        raise ValidationError("Período inválido: data final anterior à inicial")
    return start_day, end_day
