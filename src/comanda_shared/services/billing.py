"""
Bill calculation for a table's tab.

The subtotal only counts active items (not delivered, not cancelled). Service
fee and cover charge are optional add-ons chosen at checkout; the discount
applies to the sum of all three.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from comanda_shared.constants import (
    DEFAULT_COVER_CHARGE_PER_SEAT,
    DEFAULT_SERVICE_FEE_RATE,
    DiscountType,
)
from comanda_shared.rows import ItemComanda
from comanda_shared.validation import ValidationError

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, ROUND_HALF_UP)


@dataclass(frozen=True)
class BillBreakdown:
    subtotal: Decimal
    service_fee: Decimal
    cover_charge: Decimal
    gross_total: Decimal
    discount: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {key: float(value) for key, value in asdict(self).items()}


def active_items(items: Iterable[ItemComanda]) -> list[ItemComanda]:
    return [item for item in items if item.is_active]


def items_subtotal(items: Iterable[ItemComanda]) -> Decimal:
    """Sum of unit price x quantity over active items only."""
    return _money(sum((item.line_total for item in active_items(items)), Decimal("0")))


def calculate_discount(
    gross_total: Decimal, discount_type: DiscountType | str | None, discount_value: Decimal
) -> Decimal:
    """
    Percent discounts apply to the gross total; amount discounts are taken
    as-is. Amounts are not clamped to the gross total, so a large amount
    discount yields a negative bill.
    """
    if not discount_type or not discount_value:
        return Decimal("0.00")
    discount_value = Decimal(str(discount_value))
    if discount_value < 0:
        raise ValidationError("Desconto não pode ser negativo")
    kind = DiscountType(discount_type)
    if kind is DiscountType.PERCENT:
        return _money(gross_total * discount_value / Decimal("100"))
    return _money(discount_value)


def calculate_bill(
    items: Iterable[ItemComanda],
    capacity: int,
    service_fee: bool = False,
    cover_charge: bool = False,
    discount_type: DiscountType | str | None = None,
    discount_value: Decimal | float | str = Decimal("0"),
    service_fee_rate: Decimal = DEFAULT_SERVICE_FEE_RATE,
    cover_charge_per_seat: Decimal = DEFAULT_COVER_CHARGE_PER_SEAT,
) -> BillBreakdown:
    """
    Compute the bill for a table.

    Examples:
        Capacity 4, items 2 x 10.00 + 1 x 15.00, fee and cover on:
            subtotal = 35.00, service_fee = 3.50, cover_charge = 60.00
            gross_total = 98.50
        With a 10% discount: discount = 9.85, total = 88.65
    """
    subtotal = items_subtotal(items)
    fee = _money(subtotal * Decimal(str(service_fee_rate))) if service_fee else Decimal("0.00")
    cover = (
        _money(Decimal(str(cover_charge_per_seat)) * int(capacity))
        if cover_charge
        else Decimal("0.00")
    )
    gross = _money(subtotal + fee + cover)
    discount = calculate_discount(gross, discount_type, Decimal(str(discount_value)))
    return BillBreakdown(
        subtotal=subtotal,
        service_fee=fee,
        cover_charge=cover,
        gross_total=gross,
        discount=discount,
        total=_money(gross - discount),
    )
